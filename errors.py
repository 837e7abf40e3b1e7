from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class AppError(Exception):
    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


# Configuration errors: raised before any network or filesystem access.


class ConfigurationError(AppError):
    def __init__(self, message: str, data: Dict[str, Any] | None = None, *, code: str = "configuration_error") -> None:
        super().__init__(code, message, data or {})


class NoSigningMethod(ConfigurationError):
    def __init__(self, private_key_env: str = "PRIVATE_KEY") -> None:
        super().__init__(
            "No signing method available: no terminal is attached for interactive selection. "
            f"Pass --keystore <path> or --browser, or set {private_key_env}.",
            {"options": ["--keystore", "--browser"], "env": private_key_env},
            code="no_signing_method",
        )


class ConflictingOptions(ConfigurationError):
    def __init__(self, message: str, data: Dict[str, Any] | None = None) -> None:
        super().__init__(message, data, code="conflicting_options")


class UnsupportedChain(ConfigurationError):
    def __init__(self, chain: str, supported: list[str]) -> None:
        super().__init__(
            f"Unsupported chain: {chain}. Supported chains: {', '.join(supported)}",
            {"chain": chain, "supported": supported},
            code="unsupported_chain",
        )


# Local resource errors.


class KeystoreNotFound(AppError):
    def __init__(self, path: str) -> None:
        super().__init__("keystore_not_found", f"Keystore file not found: {path}", {"path": path})


class InvalidKeystoreFormat(AppError):
    def __init__(self, path: str, reason: str = "") -> None:
        msg = f"Invalid keystore file: {path}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__("invalid_keystore_format", msg, {"path": path, "reason": reason})


class DecryptionFailed(AppError):
    def __init__(self, path: str, reason: str = "") -> None:
        super().__init__(
            "decryption_failed",
            f"Failed to decrypt keystore {path}: wrong password or corrupted file",
            {"path": path, "reason": reason},
        )


class InvalidPrivateKeyFormat(AppError):
    def __init__(self) -> None:
        super().__init__(
            "invalid_private_key_format",
            "Invalid private key format. Expected 64 hex characters (with or without 0x prefix).",
            {"expected_hex_chars": 64},
        )


# Browser bridge protocol errors: terminal for the session.


class BridgeTimeout(AppError):
    def __init__(self, timeout_sec: float) -> None:
        super().__init__(
            "bridge_timeout",
            f"Browser wallet timed out after {format_duration(timeout_sec)}",
            {"timeout_sec": timeout_sec},
        )


class WalletReportedError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__("wallet_reported_error", message, {"stage": "browser_wallet"})


class MalformedCallback(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__(
            "malformed_callback",
            f"Received malformed response from browser wallet: {reason}",
            {"reason": reason, "expected": '{"txHash": "0x..."} or {"error": "..."}'},
        )


class InvalidTxHashFromWallet(AppError):
    def __init__(self, tx_hash: Any) -> None:
        super().__init__(
            "invalid_tx_hash_from_wallet",
            f"Invalid transaction hash received from browser wallet: {tx_hash}",
            {"tx_hash": tx_hash, "expected": "0x followed by 64 hex characters"},
        )


# Network errors: surfaced with the node's reason, never retried.


class RpcUnavailable(AppError):
    def __init__(self, chain: str, url: str) -> None:
        super().__init__("rpc_unreachable", f"RPC not reachable for chain '{chain}' ({url})", {"chain": chain, "url": url})


class BroadcastRejected(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__("broadcast_rejected", f"Transaction rejected by the network: {reason}", {"reason": reason})

    @property
    def reason(self) -> str:
        return self.data["reason"]


class ConfirmationFailed(AppError):
    def __init__(self, reason: str, tx_hash: str | None = None) -> None:
        target = f"transaction {tx_hash}" if tx_hash else "transaction"
        super().__init__(
            "confirmation_failed",
            f"Failed to confirm {target}: {reason}",
            {"reason": reason, "tx_hash": tx_hash},
        )

    @property
    def reason(self) -> str:
        return self.data["reason"]


def format_duration(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds:g} seconds"


def rpc_error_reason(e: Exception) -> str:
    """
    Map web3 / JSON-RPC failures to the node's own reason string.

    web3 raises with either a plain message or the JSON-RPC error object
    ({"code": -32000, "message": "insufficient funds ..."}) as first arg.
    AppErrors already carry a readable message.
    """
    if isinstance(e, AppError):
        return e.message
    rpc_response = getattr(e, "rpc_response", None)
    if isinstance(rpc_response, dict):
        err = rpc_response.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    if e.args:
        first = e.args[0]
        if isinstance(first, dict) and first.get("message"):
            return str(first["message"])
        if isinstance(first, str) and first:
            return first
    return str(e) or e.__class__.__name__
