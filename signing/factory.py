from __future__ import annotations

import logging
import os
from typing import Optional

from app.core.config import settings
from errors import ConflictingOptions, NoSigningMethod
from observability import build_log_context, log_event

from . import prompt
from .base import BrowserMethod, KeystoreMethod, PrivateKeyMethod, Signer, WalletMethod
from .encrypted_keystore import EncryptedKeystoreSigner
from .env_private_key import PrivateKeySigner

CTX = build_log_context(component="strategy_selector")

# Foundry's `cast wallet import` location.
DEFAULT_KEYSTORE_PATH = os.path.join(os.path.expanduser("~"), ".foundry", "keystores", "default")


def take_env_secret(name: str) -> Optional[str]:
    """
    Read a secret from the environment and remove it in the same step.

    Later code and child processes never see the variable.
    """
    value = os.environ.pop(name, None)
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_browser_rpc_conflict(browser: bool | None, rpc_url: str | None) -> None:
    if browser and rpc_url:
        raise ConflictingOptions(
            "--rpc-url cannot be used with browser wallet. The browser wallet uses its own RPC endpoint.",
            {"options": ["--rpc-url", "--browser"]},
        )


def select_wallet_method(
    keystore: str | None = None,
    browser: bool = False,
    *,
    rpc_url: str | None = None,
) -> WalletMethod:
    """
    Select exactly one wallet method.

    Precedence:
    - explicit keystore path
    - explicit browser flag
    - private key from PRIVATE_KEY (consumed and cleared)
    - interactive prompt (requires a terminal)
    """
    validate_browser_rpc_conflict(browser and not keystore, rpc_url)
    method = _select(keystore, browser)
    validate_browser_rpc_conflict(isinstance(method, BrowserMethod), rpc_url)
    log_event("wallet_method_selected", ctx=CTX, data={"type": method.type})
    return method


def _select(keystore: str | None, browser: bool) -> WalletMethod:
    if keystore:
        return KeystoreMethod(path=keystore)
    if browser:
        return BrowserMethod()

    env_name = settings.PRIVATE_KEY_ENV
    secret = take_env_secret(env_name)
    if secret is not None:
        log_event(
            "insecure_private_key_env",
            ctx=CTX,
            level=logging.WARNING,
            data={
                "env": env_name,
                "message": f"Using {env_name} from the environment is insecure; prefer --keystore or --browser.",
            },
        )
        return PrivateKeyMethod(resolve_key=lambda: secret)

    if not prompt.is_interactive():
        raise NoSigningMethod(env_name)

    choice = prompt.prompt_select(
        "Select signing method:",
        [
            ("Keystore file", "keystore"),
            ("Browser wallet (any EIP-6963 compatible wallets)", "browser"),
            ("Private key (not recommended)", "privatekey"),
        ],
    )
    if choice == "keystore":
        return KeystoreMethod(path=prompt.prompt_text("Enter keystore path:", default=DEFAULT_KEYSTORE_PATH))
    if choice == "browser":
        return BrowserMethod()
    log_event(
        "insecure_private_key_prompt",
        ctx=CTX,
        level=logging.WARNING,
        data={"message": "Using a raw private key is not recommended for production."},
    )
    return PrivateKeyMethod(resolve_key=lambda: prompt.prompt_secret("Enter private key:"))


def signer_for(method: WalletMethod) -> Signer:
    """
    Build the local signer for a key-based wallet method.
    """
    if isinstance(method, KeystoreMethod):
        return EncryptedKeystoreSigner(method.path)
    if isinstance(method, PrivateKeyMethod):
        return PrivateKeySigner(method.resolve_key)
    if isinstance(method, BrowserMethod):
        raise TypeError("Browser wallet method has no local signer")
    raise TypeError(f"Unsupported wallet method: {method!r}")
