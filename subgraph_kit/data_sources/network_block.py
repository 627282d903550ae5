"""
Network Block Number
Live chain head height, polled through the query client
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from web3.exceptions import Web3Exception

from subgraph_kit.infrastructure.errors import BlockchainError
from subgraph_kit.infrastructure.query_client import QueryClient, QueryOptions
from subgraph_kit.infrastructure.rpc import Chain, get_web3

logger = logging.getLogger("SubgraphKit.NetworkBlock")

DEFAULT_REFETCH_INTERVAL = 5.0


def network_block_number_key(chain_id: int) -> tuple:
    return ("networkBlockNumber", chain_id)


async def fetch_block_number(chain: Chain) -> int:
    """Read `eth_blockNumber` from the chain's RPC without blocking the loop."""
    w3 = get_web3(chain)
    loop = asyncio.get_running_loop()
    try:
        block_number = await loop.run_in_executor(None, lambda: w3.eth.block_number)
    except (Web3Exception, OSError) as e:
        raise BlockchainError(chain.name, f"eth_blockNumber failed on {chain.name}: {e}") from e
    return int(block_number)


async def get_network_block_number(
    client: QueryClient,
    chain: Chain,
    options: Optional[Dict[str, Any]] = None,
) -> int:
    """
    Current block number of `chain`, whether or not any subgraph is mapped on it.

    The first call awaits the RPC; later calls return the latest polled value.
    Polls every 5 seconds unless `options` overrides `refetch_interval`.
    """
    return await client.fetch_query(
        network_block_number_key(chain.id),
        lambda: fetch_block_number(chain),
        QueryOptions.build(options, refetch_interval=DEFAULT_REFETCH_INTERVAL),
    )
