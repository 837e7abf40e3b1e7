from unittest.mock import MagicMock, patch

import pytest
import requests
from fastapi import FastAPI

from errors import BridgeTimeout, InvalidTxHashFromWallet, MalformedCallback, WalletReportedError
from signing.browser import BridgeSession, LocalServer, sign_with_browser

TX_HASH = "0x" + "11" * 32


class FakeBrowser:
    """
    Stands in for the user's browser: called with the bridge URL once the
    server is listening, then plays the page's side of the protocol.
    """

    def __init__(self, *posts, nonce="abc-123"):
        self.posts = posts
        self.nonce = nonce
        self.url = None
        self.responses = []

    def __call__(self, url):
        self.url = url
        for body in self.posts:
            if isinstance(body, (bytes, str)):
                r = requests.post(f"{url}/result/{self.nonce}", data=body, timeout=5)
            else:
                r = requests.post(f"{url}/result/{self.nonce}", json=body, timeout=5)
            self.responses.append(r)
        return True


def _assert_port_released(url):
    with pytest.raises(requests.ConnectionError):
        requests.get(url, timeout=2)


def test_resolves_with_tx_hash(tx_request):
    browser = FakeBrowser({"txHash": TX_HASH})
    tx_hash = sign_with_browser(
        tx_request, chain_id=11155111, chain_name="sepolia", open_browser=browser, nonce="abc-123", timeout_sec=30
    )
    assert tx_hash == TX_HASH
    assert browser.responses[0].status_code == 200
    assert browser.responses[0].json() == {"ok": True}
    _assert_port_released(browser.url)


def test_duplicate_callbacks_are_ignored(tx_request):
    other = "0x" + "22" * 32
    browser = FakeBrowser({"txHash": TX_HASH}, {"txHash": other}, {"error": "late failure"})
    tx_hash = sign_with_browser(
        tx_request, chain_id=11155111, chain_name="sepolia", open_browser=browser, nonce="abc-123", timeout_sec=30
    )
    assert tx_hash == TX_HASH
    assert browser.responses[0].json() == {"ok": True}
    for r in browser.responses[1:]:
        assert r.status_code == 200
        assert r.json() == {"ok": True, "ignored": True}


def test_wallet_reported_error(tx_request):
    browser = FakeBrowser({"error": "User rejected the request"})
    with pytest.raises(WalletReportedError) as e:
        sign_with_browser(
            tx_request, chain_id=11155111, chain_name="sepolia", open_browser=browser, nonce="abc-123", timeout_sec=30
        )
    assert str(e.value) == "User rejected the request"
    assert browser.responses[0].json() == {"ok": True}
    _assert_port_released(browser.url)


def test_empty_body_is_unknown_wallet_error(tx_request):
    browser = FakeBrowser({})
    with pytest.raises(WalletReportedError) as e:
        sign_with_browser(
            tx_request, chain_id=11155111, chain_name="sepolia", open_browser=browser, nonce="abc-123", timeout_sec=30
        )
    assert "Unknown error" in str(e.value)


def test_malformed_body_is_400_and_settles_once(tx_request):
    browser = FakeBrowser("not json {{{", "still not json", {"txHash": TX_HASH})
    with pytest.raises(MalformedCallback) as e:
        sign_with_browser(
            tx_request, chain_id=11155111, chain_name="sepolia", open_browser=browser, nonce="abc-123", timeout_sec=30
        )
    assert e.value.code == "malformed_callback"
    first, second, third = browser.responses
    assert first.status_code == 400
    assert "malformed" in first.json()["error"]
    assert second.status_code == 200
    assert second.json() == {"ok": True, "ignored": True}
    assert third.json() == {"ok": True, "ignored": True}


def test_wrong_shape_is_malformed(tx_request):
    browser = FakeBrowser({"txHash": 12345})
    with pytest.raises(MalformedCallback):
        sign_with_browser(
            tx_request, chain_id=11155111, chain_name="sepolia", open_browser=browser, nonce="abc-123", timeout_sec=30
        )
    assert browser.responses[0].status_code == 400


def test_invalid_hash_shape(tx_request):
    browser = FakeBrowser({"txHash": "0x1234"})
    with pytest.raises(InvalidTxHashFromWallet) as e:
        sign_with_browser(
            tx_request, chain_id=11155111, chain_name="sepolia", open_browser=browser, nonce="abc-123", timeout_sec=30
        )
    assert e.value.data["tx_hash"] == "0x1234"
    _assert_port_released(browser.url)


def test_timeout_releases_port(tx_request):
    browser = FakeBrowser()
    with pytest.raises(BridgeTimeout) as e:
        sign_with_browser(tx_request, chain_id=11155111, chain_name="sepolia", open_browser=browser, timeout_sec=0.3)
    assert e.value.code == "bridge_timeout"
    assert e.value.data["timeout_sec"] == 0.3
    _assert_port_released(browser.url)


def test_default_timeout_comes_from_settings(tx_request):
    browser = FakeBrowser()
    with patch("signing.browser.settings.BRIDGE_TIMEOUT_SEC", 0.2):
        with pytest.raises(BridgeTimeout):
            sign_with_browser(tx_request, chain_id=1, chain_name="mainnet", open_browser=browser)


def test_routes(tx_request):
    seen = {}

    def browser(url):
        seen["page"] = requests.get(url, timeout=5)
        seen["missing"] = requests.get(f"{url}/nope", timeout=5)
        seen["docs"] = requests.get(f"{url}/docs", timeout=5)
        seen["wrong_nonce"] = requests.post(f"{url}/result/not-the-nonce", json={"txHash": TX_HASH}, timeout=5)
        seen["get_result"] = requests.get(f"{url}/result/abc-123", timeout=5)
        seen["post_root"] = requests.post(url, json={"txHash": TX_HASH}, timeout=5)
        seen["final"] = requests.post(f"{url}/result/abc-123", json={"txHash": TX_HASH}, timeout=5)
        return True

    tx_hash = sign_with_browser(
        tx_request, chain_id=11155111, chain_name="sepolia", uri="ipfs://QmAgent", open_browser=browser, nonce="abc-123"
    )
    assert tx_hash == TX_HASH

    page = seen["page"]
    assert page.status_code == 200
    assert page.headers["content-type"].startswith("text/html")
    assert tx_request.to in page.text
    assert '"0x1234"' in page.text
    assert '"0xaa36a7"' in page.text
    assert '"/result/abc-123"' in page.text
    assert "ipfs://QmAgent" in page.text

    for key in ("missing", "docs", "wrong_nonce", "get_result", "post_root"):
        assert seen[key].status_code == 404, key
    assert seen["final"].json() == {"ok": True}


def test_browser_open_failure_is_not_fatal(tx_request, capsys):
    def broken_browser(url):
        requests.post(f"{url}/result/abc-123", json={"txHash": TX_HASH}, timeout=5)
        raise OSError("no display")

    tx_hash = sign_with_browser(
        tx_request, chain_id=11155111, chain_name="sepolia", open_browser=broken_browser, nonce="abc-123"
    )
    assert tx_hash == TX_HASH
    err = capsys.readouterr().err
    assert "Please open this URL manually" in err


def test_browser_not_opened_prints_url(tx_request, capsys):
    def no_browser(url):
        requests.post(f"{url}/result/abc-123", json={"txHash": TX_HASH}, timeout=5)
        return False

    sign_with_browser(tx_request, chain_id=11155111, chain_name="sepolia", open_browser=no_browser, nonce="abc-123")
    err = capsys.readouterr().err
    assert "Opening browser wallet at http://127.0.0.1:" in err
    assert "Please open this URL manually" in err


def test_interrupt_still_releases_port(tx_request):
    seen = {}

    def interrupted(url):
        seen["url"] = url
        raise KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        sign_with_browser(tx_request, chain_id=1, chain_name="mainnet", open_browser=interrupted, timeout_sec=30)
    _assert_port_released(seen["url"])


def test_session_settles_once():
    session = BridgeSession("abc-123")
    assert session.nonce == "abc-123"
    assert session.result_path == "/result/abc-123"
    assert session.settled is False

    assert session.reject_once(BridgeTimeout(300)) is True
    assert session.settled is True
    # a callback arriving after the timeout does not reopen the session
    assert session.resolve_once(TX_HASH) is False
    assert session.reject_once(WalletReportedError("late")) is False
    with pytest.raises(BridgeTimeout) as e:
        session.wait(timeout=1)
    assert str(e.value) == "Browser wallet timed out after 5 minutes"


def test_session_nonce_is_random():
    a, b = BridgeSession(), BridgeSession()
    assert a.nonce != b.nonce
    assert len(a.nonce) >= 32


def test_local_server_setup_failure_binds_nothing():
    with patch("signing.browser.uvicorn.Server", side_effect=RuntimeError("bad config")), patch(
        "signing.browser.socket.socket"
    ) as make_socket:
        with pytest.raises(RuntimeError):
            LocalServer(FastAPI())
    make_socket.assert_not_called()


def test_local_server_bind_failure_closes_socket():
    sock = MagicMock()
    sock.bind.side_effect = OSError("address in use")
    with patch("signing.browser.socket.socket", return_value=sock):
        with pytest.raises(OSError):
            LocalServer(FastAPI())
    sock.close.assert_called_once_with()
