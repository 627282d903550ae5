"""
Subgraph Sync Status
Compares an indexer's head block with the chain head

A subgraph is synced only when both block numbers are exactly equal.
The two underlying polls (5s chain, 10s subgraph) are independent, so a
briefly unsynced status between ticks is normal.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional

from subgraph_kit.infrastructure.config import SchemaMappingConfig
from subgraph_kit.infrastructure.query_client import QueryClient
from subgraph_kit.infrastructure.rpc import Chain
from subgraph_kit.data_sources.network_block import (
    get_network_block_number,
    network_block_number_key,
)
from subgraph_kit.data_sources.subgraph_metadata import (
    get_subgraph_metadata,
    subgraph_metadata_key,
)

logger = logging.getLogger("SubgraphKit.SyncStatus")


@dataclass(frozen=True)
class SyncStatus:
    chain: Chain
    resource: str
    subgraph_block_number: int
    network_block_number: int
    is_synced: bool
    has_indexing_errors: bool

    @property
    def blocks_behind(self) -> int:
        return self.network_block_number - self.subgraph_block_number

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready status without the chain RPC URL, which can carry an API key"""
        return {
            "chain_id": self.chain.id,
            "chain": self.chain.name,
            "resource": self.resource,
            "subgraph_block_number": self.subgraph_block_number,
            "network_block_number": self.network_block_number,
            "blocks_behind": self.blocks_behind,
            "is_synced": self.is_synced,
            "has_indexing_errors": self.has_indexing_errors,
        }


async def get_subgraph_indexing_status(
    client: QueryClient,
    chain: Chain,
    resource: str,
    schema_config: SchemaMappingConfig,
    metadata_options: Optional[Dict[str, Any]] = None,
    block_number_options: Optional[Dict[str, Any]] = None,
) -> SyncStatus:
    """Indexing status of `resource` on `chain`."""
    meta, network_block_number = await asyncio.gather(
        get_subgraph_metadata(client, chain.id, resource, schema_config, metadata_options),
        get_network_block_number(client, chain, block_number_options),
    )
    subgraph_block_number = int(meta.block.number)

    return SyncStatus(
        chain=chain,
        resource=resource,
        subgraph_block_number=subgraph_block_number,
        network_block_number=network_block_number,
        is_synced=subgraph_block_number == network_block_number,
        has_indexing_errors=meta.has_indexing_errors,
    )


async def watch_subgraph_indexing_status(
    client: QueryClient,
    chain: Chain,
    resource: str,
    schema_config: SchemaMappingConfig,
    metadata_options: Optional[Dict[str, Any]] = None,
    block_number_options: Optional[Dict[str, Any]] = None,
) -> AsyncIterator[SyncStatus]:
    """
    Yield the indexing status now and again after every poll of either the
    chain head or the subgraph metadata.

    Usage:
        async for status in watch_subgraph_indexing_status(client, chain, "uniswap", config):
            if status.is_synced:
                break
    """
    async def current() -> SyncStatus:
        return await get_subgraph_indexing_status(
            client, chain, resource, schema_config, metadata_options, block_number_options
        )

    status = await current()
    updates: asyncio.Queue = asyncio.Queue()
    unsubscribers = [
        client.subscribe(key, updates.put_nowait)
        for key in (subgraph_metadata_key(resource, chain.id), network_block_number_key(chain.id))
    ]

    try:
        yield status
        while True:
            await updates.get()
            status = await current()
            logger.debug(
                f"[{resource}@{chain.id}] subgraph={status.subgraph_block_number} "
                f"network={status.network_block_number} synced={status.is_synced}"
            )
            yield status
    finally:
        for unsubscribe in unsubscribers:
            unsubscribe()
