"""
Browser signing bridge.

Hosts a short-lived loopback HTTP server that serves a signing page, opens it
in the user's browser, and waits for the page to report the hash of the
transaction the wallet extension broadcast (or an error).

Lifecycle per call:
- bind 127.0.0.1:0 and render the page for a fresh session nonce
- open the browser (best-effort) and start the timeout timer
- the first POST /result/<nonce> or the timer settles the session
- timer cancelled, server stopped and port released before returning
"""

from __future__ import annotations

import logging
import re
import socket
import sys
import threading
import time
import uuid
import webbrowser
from concurrent.futures import Future
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from errors import (
    AppError,
    BridgeTimeout,
    InvalidTxHashFromWallet,
    MalformedCallback,
    WalletReportedError,
    format_duration,
)
from observability import build_log_context, log_event

from .base import TxRequest
from .browser_page import build_html

TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

SERVER_START_TIMEOUT_SEC = 10.0
SERVER_STOP_TIMEOUT_SEC = 5.0


class BridgeCallback(BaseModel):
    """
    Body posted by the signing page.
    """

    txHash: Optional[str] = None
    error: Optional[str] = None


class BridgeSession:
    """
    One signing session: nonce plus a settle-once outcome.

    The outcome future is written at most once, by whichever of the callback
    handler or the timeout timer gets there first.
    """

    def __init__(self, nonce: str | None = None) -> None:
        self.nonce = nonce or str(uuid.uuid4())
        self._lock = threading.Lock()
        self._settled = False
        self._outcome: Future[str] = Future()

    @property
    def result_path(self) -> str:
        return f"/result/{self.nonce}"

    @property
    def settled(self) -> bool:
        with self._lock:
            return self._settled

    def resolve_once(self, tx_hash: str) -> bool:
        with self._lock:
            if self._settled:
                return False
            self._settled = True
        self._outcome.set_result(tx_hash)
        return True

    def reject_once(self, error: AppError) -> bool:
        with self._lock:
            if self._settled:
                return False
            self._settled = True
        self._outcome.set_exception(error)
        return True

    def wait(self, timeout: float | None = None) -> str:
        return self._outcome.result(timeout=timeout)


def build_bridge_app(session: BridgeSession, page_html: str) -> FastAPI:
    ctx = build_log_context(component="browser_bridge")
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/")
    async def index() -> HTMLResponse:
        return HTMLResponse(page_html)

    @app.post("/result/{token}")
    async def result(token: str, request: Request):
        if token != session.nonce:
            return PlainTextResponse("Not Found", status_code=404)
        if session.settled:
            log_event("bridge_callback_ignored", ctx=ctx)
            return {"ok": True, "ignored": True}

        raw = await request.body()
        try:
            body = BridgeCallback.model_validate_json(raw)
        except ValidationError as e:
            err = MalformedCallback(_validation_reason(e))
            if not session.reject_once(err):
                return {"ok": True, "ignored": True}
            log_event("bridge_callback_malformed", ctx=ctx, level=logging.ERROR, data={"reason": err.data["reason"]})
            return JSONResponse({"error": err.message}, status_code=400)

        if body.txHash:
            settled = session.resolve_once(body.txHash)
        else:
            settled = session.reject_once(WalletReportedError(body.error or "Unknown error from browser wallet"))
        if not settled:
            return {"ok": True, "ignored": True}
        log_event("bridge_callback_settled", ctx=ctx, data={"ok": bool(body.txHash)})
        return {"ok": True}

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"])
    async def not_found(path: str) -> PlainTextResponse:
        return PlainTextResponse("Not Found", status_code=404)

    return app


def _validation_reason(e: ValidationError) -> str:
    errs = e.errors()
    if not errs:
        return str(e)
    first = errs[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))


class LocalServer:
    """
    uvicorn on a pre-bound loopback socket, served from a daemon thread.

    Usable as a context manager; exit always stops the server and releases the port.
    """

    def __init__(self, app: FastAPI, host: str = "127.0.0.1") -> None:
        self._server = uvicorn.Server(uvicorn.Config(app, log_level="warning", lifespan="off", access_log=False))
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self._sock.bind((host, 0))
        except OSError:
            self._sock.close()
            raise
        self.host = host
        self.port: int = self._sock.getsockname()[1]
        self._thread = threading.Thread(target=self._server.run, kwargs={"sockets": [self._sock]}, daemon=True)

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self) -> None:
        self._thread.start()
        deadline = time.monotonic() + SERVER_START_TIMEOUT_SEC
        while not self._server.started:
            if not self._thread.is_alive():
                raise RuntimeError("Local signing server exited during startup")
            if time.monotonic() >= deadline:
                raise RuntimeError("Local signing server did not start in time")
            time.sleep(0.02)

    def stop(self) -> None:
        self._server.should_exit = True
        if self._thread.is_alive():
            self._thread.join(timeout=SERVER_STOP_TIMEOUT_SEC)
        self._sock.close()

    def __enter__(self) -> "LocalServer":
        try:
            self.start()
        except BaseException:
            self.stop()
            raise
        return self

    def __exit__(self, *exc) -> None:
        self.stop()


def _default_open_browser(url: str) -> bool:
    return webbrowser.open(url)


def sign_with_browser(
    tx: TxRequest,
    *,
    chain_id: int,
    chain_name: str,
    uri: str | None = None,
    timeout_sec: float | None = None,
    open_browser: Callable[[str], object] | None = None,
    nonce: str | None = None,
) -> str:
    """
    Run one bridge session and return the transaction hash reported by the wallet.

    Raises BridgeTimeout, WalletReportedError, MalformedCallback or
    InvalidTxHashFromWallet. The server and timer never outlive this call.
    """
    timeout = float(timeout_sec if timeout_sec is not None else settings.BRIDGE_TIMEOUT_SEC)
    session = BridgeSession(nonce)
    page = build_html(
        to=tx.to,
        data=tx.data,
        chain_id=chain_id,
        chain_name=chain_name,
        uri=uri,
        gas=tx.gas,
        nonce=session.nonce,
    )
    ctx = build_log_context(component="browser_bridge", chain_id=chain_id)
    app = build_bridge_app(session, page)

    timer = threading.Timer(timeout, session.reject_once, args=(BridgeTimeout(timeout),))
    timer.daemon = True

    with LocalServer(app, host=settings.BRIDGE_HOST) as server:
        log_event("bridge_started", ctx=ctx, data={"url": server.url, "timeout_sec": timeout})
        try:
            print(f"\nOpening browser wallet at {server.url}", file=sys.stderr)
            print(f"This page will remain available for {format_duration(timeout)}.", file=sys.stderr)
            print("If the browser doesn't open, visit the URL manually.\n", file=sys.stderr)
            _open(open_browser or _default_open_browser, server.url, ctx)

            timer.start()
            tx_hash = session.wait()
        finally:
            timer.cancel()
            log_event("bridge_stopped", ctx=ctx, data={"settled": session.settled})

    if not isinstance(tx_hash, str) or not TX_HASH_RE.match(tx_hash):
        raise InvalidTxHashFromWallet(tx_hash)
    return tx_hash


def _open(open_browser: Callable[[str], object], url: str, ctx: dict) -> None:
    try:
        opened = open_browser(url)
    except Exception as e:
        log_event("bridge_browser_open_failed", ctx=ctx, level=logging.WARNING, data={"error": str(e)})
        opened = False
    if opened is False:
        print(f"\nCould not open browser automatically. Please open this URL manually: {url}\n", file=sys.stderr)
