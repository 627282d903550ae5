# infrastructure/rpc.py
"""
Chain descriptors and RPC connections.
One Web3 connection per chain id, created on first use.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from web3 import Web3

from .config import get_config
from .errors import BlockchainError

logger = logging.getLogger("SubgraphKit.RPC")


@dataclass(frozen=True)
class Chain:
    """Network descriptor: id, display name and RPC endpoint"""
    id: int
    name: str
    rpc_url: str


# Public endpoints, overridable with RPC_URL_<CHAIN_ID>
KNOWN_CHAINS: Dict[int, Chain] = {
    1: Chain(1, "Ethereum", "https://eth.llamarpc.com"),
    10: Chain(10, "OP Mainnet", "https://mainnet.optimism.io"),
    100: Chain(100, "Gnosis", "https://rpc.gnosischain.com"),
    137: Chain(137, "Polygon", "https://polygon-rpc.com"),
    8453: Chain(8453, "Base", "https://mainnet.base.org"),
    42161: Chain(42161, "Arbitrum One", "https://arb1.arbitrum.io/rpc"),
    11155111: Chain(11155111, "Sepolia", "https://rpc.sepolia.org"),
}


def get_chain(chain_id: int, rpc_url: Optional[str] = None) -> Chain:
    """Resolve a chain id to a descriptor, applying configured RPC overrides."""
    override = rpc_url or get_config().rpc_urls.get(chain_id)
    known = KNOWN_CHAINS.get(chain_id)

    if known is None:
        if not override:
            raise BlockchainError(str(chain_id), f"Unknown chain {chain_id}: set RPC_URL_{chain_id}")
        return Chain(chain_id, f"Chain {chain_id}", override)

    if override:
        return Chain(known.id, known.name, override)
    return known


_connections: Dict[Tuple[int, str], Web3] = {}
_connections_lock = threading.Lock()


def get_web3(chain: Chain) -> Web3:
    """Get cached Web3 instance for a chain (lazy initialization)."""
    key = (chain.id, chain.rpc_url)
    with _connections_lock:
        w3 = _connections.get(key)
        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(chain.rpc_url))
            _connections[key] = w3
            logger.debug(f"Opened RPC connection for {chain.name} ({chain.id})")
        return w3


def clear_connections():
    """Drop all cached connections."""
    with _connections_lock:
        _connections.clear()
