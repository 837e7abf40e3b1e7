from .broadcast import BroadcastResult, TxReceipt, broadcast_and_confirm
from .evm import CHAINS, ChainConfig, EvmRpc, resolve_chain_config, rpc_url_for

__all__ = [
    "CHAINS",
    "BroadcastResult",
    "ChainConfig",
    "EvmRpc",
    "TxReceipt",
    "broadcast_and_confirm",
    "resolve_chain_config",
    "rpc_url_for",
]
