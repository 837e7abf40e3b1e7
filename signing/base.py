from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol, Union

from eth_account.signers.local import LocalAccount


class SignedTx(Protocol):
    raw_transaction: bytes


class Signer(ABC):
    """
    A minimal signing interface for EVM transactions.
    """

    @abstractmethod
    def get_address(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def sign_transaction(self, tx: Dict[str, Any], *, chain_id: int | None = None) -> SignedTx:
        raise NotImplementedError


class LocalAccountSigner(Signer):
    """
    Signs with an in-memory eth_account LocalAccount set by the subclass.
    """

    _account: LocalAccount

    def get_address(self) -> str:
        return self._account.address

    def sign_transaction(self, tx: Dict[str, Any], *, chain_id: int | None = None) -> SignedTx:
        if chain_id is not None:
            tx = dict(tx)
            tx["chainId"] = chain_id
        return self._account.sign_transaction(tx)


@dataclass(frozen=True)
class TxRequest:
    """
    An encoded contract call produced by a registry command.
    """

    to: str
    data: str
    gas: Optional[int] = None


# Wallet methods: how a signature will be produced.


@dataclass(frozen=True)
class KeystoreMethod:
    path: str
    type: str = field(default="keystore", init=False)


@dataclass(frozen=True)
class BrowserMethod:
    type: str = field(default="browser", init=False)


@dataclass(frozen=True)
class PrivateKeyMethod:
    """
    Deferred access to a raw private key.

    resolve_key is only called when signing is attempted, so the key is not
    materialized during strategy selection.
    """

    resolve_key: Callable[[], str] = field(repr=False)
    type: str = field(default="privatekey", init=False)


WalletMethod = Union[KeystoreMethod, BrowserMethod, PrivateKeyMethod]


# Sign results: the unified output of every strategy.


@dataclass(frozen=True)
class Signed:
    """
    A complete serialized transaction that has not been submitted yet.
    """

    raw_transaction: bytes
    from_address: str
    kind: str = field(default="signed", init=False)

    @property
    def raw_hex(self) -> str:
        return "0x" + self.raw_transaction.hex()


@dataclass(frozen=True)
class Sent:
    """
    A transaction already broadcast by an external actor (the browser wallet).
    """

    tx_hash: str
    kind: str = field(default="sent", init=False)


SignResult = Union[Signed, Sent]
