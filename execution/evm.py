from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, Optional

from web3 import Web3
from web3.providers.rpc import HTTPProvider

from app.core.config import settings
from errors import RpcUnavailable, UnsupportedChain

if TYPE_CHECKING:
    from signing.base import TxRequest


@dataclass(frozen=True)
class ChainConfig:
    name: str
    chain_id: int
    default_rpc_url: str
    explorer_url: Optional[str] = None

    def explorer_tx_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/tx/{tx_hash}"


CHAINS: Dict[str, ChainConfig] = {
    "mainnet": ChainConfig("mainnet", 1, "https://eth.merkle.io", "https://etherscan.io"),
    "sepolia": ChainConfig("sepolia", 11155111, "https://sepolia.drpc.org", "https://sepolia.etherscan.io"),
    "base-sepolia": ChainConfig("base-sepolia", 84532, "https://sepolia.base.org", "https://sepolia.basescan.org"),
    "localhost": ChainConfig("localhost", 31337, "http://127.0.0.1:8545"),
}


def resolve_chain_config(chain: str) -> ChainConfig:
    c = (chain or "").strip().lower()
    if c in CHAINS:
        return CHAINS[c]
    raise UnsupportedChain(chain, list(CHAINS))


def _env(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


def rpc_url_for(chain: ChainConfig, override: str | None = None) -> str:
    """
    Resolve RPC URL for a chain.

    Precedence (chain=base-sepolia -> BASE_SEPOLIA):
    - explicit override (--rpc-url)
    - EVM_RPC_URL_<CHAIN>
    - RPC_URL_<CHAIN>
    - the chain's public default
    """
    if override and override.strip():
        return override.strip()
    key = chain.name.upper().replace("-", "_")
    return _env(f"EVM_RPC_URL_{key}") or _env(f"RPC_URL_{key}") or chain.default_rpc_url


@lru_cache(maxsize=16)
def get_web3(url: str) -> Web3:
    return Web3(HTTPProvider(url, request_kwargs={"timeout": settings.HTTP_TIMEOUT_SEC}))


class EvmRpc:
    """
    The blockchain RPC collaborator used by signing and broadcasting.

    Retries and request timeouts are left to web3's provider.
    """

    def __init__(self, chain: ChainConfig, rpc_url: str | None = None) -> None:
        self.chain = chain
        self.url = rpc_url_for(chain, rpc_url)
        self._w3: Optional[Web3] = None

    @property
    def w3(self) -> Web3:
        if self._w3 is None:
            w3 = get_web3(self.url)
            if not w3.is_connected():
                raise RpcUnavailable(self.chain.name, self.url)
            self._w3 = w3
        return self._w3

    def prepare_transaction(self, sender: str, tx: TxRequest) -> Dict[str, Any]:
        """
        Fill nonce, gas and fee fields for a transaction from `sender`.

        EIP-1559 fees when the latest block has a base fee, legacy gasPrice otherwise.
        """
        w3 = self.w3
        out: Dict[str, Any] = {
            "from": sender,
            "to": Web3.to_checksum_address(tx.to),
            "data": tx.data,
            "value": 0,
            "chainId": self.chain.chain_id,
            "nonce": w3.eth.get_transaction_count(sender, "pending"),
        }
        out["gas"] = int(tx.gas) if tx.gas else int(w3.eth.estimate_gas(out))

        latest = w3.eth.get_block("latest")
        base_fee = latest.get("baseFeePerGas")
        if base_fee is not None:
            priority = int(w3.eth.max_priority_fee)
            out["type"] = 2
            out["maxPriorityFeePerGas"] = priority
            out["maxFeePerGas"] = int(base_fee) * 2 + priority
        else:
            out["gasPrice"] = int(w3.eth.gas_price)
        return out

    def send_raw_transaction(self, raw_tx: bytes) -> str:
        tx_hash = self.w3.eth.send_raw_transaction(raw_tx)
        # tx_hash is HexBytes
        return Web3.to_hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        return dict(self.w3.eth.wait_for_transaction_receipt(tx_hash))

    def get_block_timestamp(self, block_number: int) -> int:
        block = self.w3.eth.get_block(block_number)
        return int(block["timestamp"])


def is_hex_address(s: str) -> bool:
    v = (s or "").strip()
    if not (v.startswith("0x") and len(v) == 42):
        return False
    try:
        int(v[2:], 16)
        return True
    except ValueError:
        return False
