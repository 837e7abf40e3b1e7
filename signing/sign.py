from __future__ import annotations

from typing import Optional

from errors import ConfigurationError
from execution.evm import ChainConfig, EvmRpc, is_hex_address
from observability import build_log_context, log_event

from .base import BrowserMethod, KeystoreMethod, PrivateKeyMethod, Sent, Signed, SignResult, TxRequest, WalletMethod
from .browser import sign_with_browser
from .factory import signer_for


def sign_transaction(
    method: WalletMethod,
    tx: TxRequest,
    chain: ChainConfig,
    *,
    rpc_url: str | None = None,
    rpc: Optional[EvmRpc] = None,
    uri: str | None = None,
    bridge_timeout_sec: float | None = None,
) -> SignResult:
    """
    Produce a SignResult for `tx` with the selected wallet method.

    Key-based methods return Signed (not broadcast). The browser method
    returns Sent: the wallet extension has already broadcast it.
    """
    if not is_hex_address(tx.to):
        raise ConfigurationError(f"Invalid destination address: {tx.to}", {"to": tx.to})

    ctx = build_log_context(component="signer", chain=chain.name, method=getattr(method, "type", None))

    if isinstance(method, BrowserMethod):
        tx_hash = sign_with_browser(
            tx,
            chain_id=chain.chain_id,
            chain_name=chain.name,
            uri=uri,
            timeout_sec=bridge_timeout_sec,
        )
        log_event("transaction_signed", ctx=ctx, data={"kind": "sent", "tx_hash": tx_hash})
        return Sent(tx_hash=tx_hash)

    if isinstance(method, (KeystoreMethod, PrivateKeyMethod)):
        signer = signer_for(method)
        address = signer.get_address()
        if rpc is None:
            rpc = EvmRpc(chain, rpc_url)
        prepared = rpc.prepare_transaction(address, tx)
        signed = signer.sign_transaction(prepared, chain_id=chain.chain_id)
        log_event("transaction_signed", ctx=ctx, data={"kind": "signed", "from": address})
        return Signed(raw_transaction=bytes(signed.raw_transaction), from_address=address)

    raise TypeError(f"Unsupported wallet method: {method!r}")
