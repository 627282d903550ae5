"""
Subgraph Status Router
Block heights, subgraph metadata, sync status and codegen config endpoints
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, Request

from subgraph_kit.infrastructure.config import SubgraphConfigs, SubgraphKitConfig, get_config
from subgraph_kit.infrastructure.query_client import QueryClient
from subgraph_kit.infrastructure.rpc import get_chain
from subgraph_kit.data_sources.network_block import get_network_block_number
from subgraph_kit.data_sources.schemas import generate_schemas_mapping
from subgraph_kit.data_sources.subgraph_metadata import get_subgraph_metadata
from subgraph_kit.services.codegen import generate_codegen_config
from subgraph_kit.services.sync_status import get_subgraph_indexing_status

router = APIRouter(prefix="/api/subgraphs", tags=["Subgraphs"])


def get_query_client(request: Request) -> QueryClient:
    return request.app.state.query_client


def get_kit_config() -> SubgraphKitConfig:
    return get_config()


def _block_number_options(config: SubgraphKitConfig) -> Dict[str, Any]:
    return {"refetch_interval": config.polling.block_number_interval}


def _metadata_options(config: SubgraphKitConfig) -> Dict[str, Any]:
    return {"refetch_interval": config.polling.subgraph_metadata_interval}


@router.get("/schemas")
async def get_schemas(config: SubgraphKitConfig = Depends(get_kit_config)):
    """Endpoint URL per subgraph and chain for the active environment."""
    return {
        "environment": config.environment.value,
        "schemas": generate_schemas_mapping(config.schema_mapping_config()),
    }


@router.get("/codegen")
async def get_codegen_config(config: SubgraphKitConfig = Depends(get_kit_config)):
    """GraphQL codegen config for the configured subgraphs."""
    return generate_codegen_config(SubgraphConfigs(subgraphs=[config.subgraph_config()]))


@router.get("/chains/{chain_id}/block-number")
async def get_block_number(
    chain_id: int,
    client: QueryClient = Depends(get_query_client),
    config: SubgraphKitConfig = Depends(get_kit_config),
):
    chain = get_chain(chain_id)
    block_number = await get_network_block_number(client, chain, _block_number_options(config))
    return {
        "chain_id": chain.id,
        "chain": chain.name,
        "block_number": block_number,
        "timestamp": datetime.now().isoformat(),
    }


@router.get("/{resource}/meta")
async def get_metadata(
    resource: str,
    chain_id: int = Query(..., description="Chain the subgraph is deployed on"),
    client: QueryClient = Depends(get_query_client),
    config: SubgraphKitConfig = Depends(get_kit_config),
):
    meta = await get_subgraph_metadata(
        client, chain_id, resource, config.schema_mapping_config(), _metadata_options(config)
    )
    return {
        "resource": resource,
        "chain_id": chain_id,
        "meta": meta.model_dump(by_alias=True),
    }


@router.get("/{resource}/status")
async def get_sync_status(
    resource: str,
    chain_id: int = Query(..., description="Chain the subgraph is deployed on"),
    client: QueryClient = Depends(get_query_client),
    config: SubgraphKitConfig = Depends(get_kit_config),
):
    """
    Whether the subgraph has indexed up to the chain head.
    `is_synced` requires an exact block match.
    """
    status = await get_subgraph_indexing_status(
        client,
        get_chain(chain_id),
        resource,
        config.schema_mapping_config(),
        _metadata_options(config),
        _block_number_options(config),
    )
    return {
        **status.to_dict(),
        "timestamp": datetime.now().isoformat(),
    }
