from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from eth_account import Account

from errors import DecryptionFailed, InvalidKeystoreFormat, KeystoreNotFound

from .base import LocalAccountSigner
from .prompt import prompt_secret

_CRYPTO_FIELDS = ("cipher", "cipherparams", "ciphertext", "kdf", "kdfparams", "mac")


def is_keystore_json(doc: Any) -> bool:
    """
    Shape check for a Web3 Secret Storage (v3) keyfile.
    """
    if not isinstance(doc, dict):
        return False
    if doc.get("version") != 3:
        return False
    crypto = doc.get("crypto") or doc.get("Crypto")
    if not isinstance(crypto, dict):
        return False
    return all(crypto.get(f) for f in _CRYPTO_FIELDS)


def load_keystore(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise KeystoreNotFound(str(path))
    try:
        doc = json.loads(path.read_text())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidKeystoreFormat(str(path), "not valid JSON") from e
    if not is_keystore_json(doc):
        raise InvalidKeystoreFormat(str(path), "not a version 3 encrypted key file")
    return doc


class EncryptedKeystoreSigner(LocalAccountSigner):
    """
    Decrypts an Ethereum keystore JSON using a passphrase prompted from the terminal.

    The decrypted key lives only inside the eth_account LocalAccount held by
    this signer; nothing is written back to disk.
    """

    def __init__(self, keystore_path: str, *, password_prompt: Optional[Callable[[str], str]] = None) -> None:
        path = Path(keystore_path).expanduser()
        keystore = load_keystore(path)

        password = (password_prompt or prompt_secret)("Enter keystore password:")
        try:
            pk_bytes = Account.decrypt(keystore, password)
        except ValueError as e:
            raise DecryptionFailed(str(path), str(e)) from e
        self._account = Account.from_key(pk_bytes)
