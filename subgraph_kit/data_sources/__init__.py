"""
Subgraph and chain data sources
"""

from .schemas import (
    parse_resource_ids,
    generate_schemas_mapping,
    resolve_subgraph_url,
)
from .subgraph_metadata import (
    SubgraphMetadata,
    SUBGRAPH_METADATA_QUERY,
    fetch_subgraph_metadata,
    get_subgraph_metadata,
)
from .network_block import (
    fetch_block_number,
    get_network_block_number,
)

__all__ = [
    "parse_resource_ids",
    "generate_schemas_mapping",
    "resolve_subgraph_url",
    "SubgraphMetadata",
    "SUBGRAPH_METADATA_QUERY",
    "fetch_subgraph_metadata",
    "get_subgraph_metadata",
    "fetch_block_number",
    "get_network_block_number",
]
