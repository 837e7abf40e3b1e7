from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import AppError, BroadcastRejected, ConfirmationFailed, rpc_error_reason
from observability import build_log_context, log_event
from signing.base import Sent, Signed, SignResult

from .evm import ChainConfig, EvmRpc


@dataclass(frozen=True)
class TxReceipt:
    block_number: int
    gas_used: int
    effective_gas_price: int
    logs: List[Any] = field(default_factory=list)

    @classmethod
    def from_rpc(cls, receipt: Dict[str, Any]) -> "TxReceipt":
        return cls(
            block_number=int(receipt["blockNumber"]),
            gas_used=int(receipt["gasUsed"]),
            effective_gas_price=int(receipt.get("effectiveGasPrice") or 0),
            logs=list(receipt.get("logs") or []),
        )


@dataclass(frozen=True)
class BroadcastResult:
    tx_hash: str
    receipt: TxReceipt
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txHash": self.tx_hash,
            "blockNumber": self.receipt.block_number,
            "gasUsed": self.receipt.gas_used,
            "effectiveGasPrice": self.receipt.effective_gas_price,
            "timestamp": self.timestamp,
        }


def broadcast_and_confirm(
    result: SignResult,
    chain: ChainConfig,
    *,
    rpc_url: str | None = None,
    rpc: Optional[EvmRpc] = None,
) -> BroadcastResult:
    """
    Submit a Signed transaction (Sent ones are already on the network) and
    wait for its receipt.

    No retries: rejection raises BroadcastRejected, any failure while waiting
    raises ConfirmationFailed. An unreachable endpoint raises RpcUnavailable
    as is. Receipt waiting uses web3's own timeout.
    """
    if rpc is None:
        rpc = EvmRpc(chain, rpc_url)
    ctx = build_log_context(component="broadcast", chain=chain.name)

    if isinstance(result, Sent):
        tx_hash = result.tx_hash
    elif isinstance(result, Signed):
        try:
            tx_hash = rpc.send_raw_transaction(result.raw_transaction)
        except AppError:
            raise
        except Exception as e:
            reason = rpc_error_reason(e)
            log_event("broadcast_rejected", ctx=ctx, data={"reason": reason})
            raise BroadcastRejected(reason) from e
        log_event("transaction_broadcast", ctx=ctx, data={"tx_hash": tx_hash, "from": result.from_address})
    else:
        raise TypeError(f"Unsupported sign result: {result!r}")

    log_event("awaiting_confirmation", ctx=ctx, data={"tx_hash": tx_hash, "explorer": chain.explorer_tx_url(tx_hash)})

    try:
        receipt = TxReceipt.from_rpc(rpc.wait_for_receipt(tx_hash))
        timestamp = rpc.get_block_timestamp(receipt.block_number)
    except AppError:
        raise
    except Exception as e:
        reason = rpc_error_reason(e)
        log_event("confirmation_failed", ctx=ctx, data={"tx_hash": tx_hash, "reason": reason})
        raise ConfirmationFailed(reason, tx_hash) from e

    log_event("transaction_confirmed", ctx=ctx, data={"tx_hash": tx_hash, "block_number": receipt.block_number})
    return BroadcastResult(tx_hash=tx_hash, receipt=receipt, timestamp=timestamp)
