from __future__ import annotations

import re
from typing import Callable

from eth_account import Account

from errors import InvalidPrivateKeyFormat

from .base import LocalAccountSigner

_PRIVATE_KEY_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def validate_private_key(key: str) -> str:
    """
    Normalize a raw private key to its 0x-prefixed form.

    Accepts 64 hex characters with or without the 0x prefix.
    """
    k = (key or "").strip()
    normalized = k if k.startswith("0x") else f"0x{k}"
    if not _PRIVATE_KEY_RE.match(normalized):
        raise InvalidPrivateKeyFormat()
    return normalized


class PrivateKeySigner(LocalAccountSigner):
    """
    Signer backed by a raw hex private key (from PRIVATE_KEY or an interactive prompt).
    """

    def __init__(self, resolve_key: Callable[[], str]) -> None:
        self._account = Account.from_key(validate_private_key(resolve_key()))
