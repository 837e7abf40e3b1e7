from .base import (
    BrowserMethod,
    KeystoreMethod,
    LocalAccountSigner,
    PrivateKeyMethod,
    Sent,
    Signed,
    SignedTx,
    Signer,
    SignResult,
    TxRequest,
    WalletMethod,
)
from .browser import BridgeSession, sign_with_browser
from .encrypted_keystore import EncryptedKeystoreSigner
from .env_private_key import PrivateKeySigner, validate_private_key
from .factory import select_wallet_method, signer_for, take_env_secret, validate_browser_rpc_conflict
from .sign import sign_transaction

__all__ = [
    "BridgeSession",
    "BrowserMethod",
    "EncryptedKeystoreSigner",
    "KeystoreMethod",
    "LocalAccountSigner",
    "PrivateKeyMethod",
    "PrivateKeySigner",
    "Sent",
    "SignResult",
    "Signed",
    "SignedTx",
    "Signer",
    "TxRequest",
    "WalletMethod",
    "select_wallet_method",
    "sign_transaction",
    "sign_with_browser",
    "signer_for",
    "take_env_secret",
    "validate_browser_rpc_conflict",
    "validate_private_key",
]
