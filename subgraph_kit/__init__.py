"""
subgraph-kit
Subgraph endpoint mapping, GraphQL codegen config and indexer sync status
"""

from .infrastructure import (
    Chain,
    ConfigurationError,
    Environment,
    QueryClient,
    QueryOptions,
    SchemaLookupError,
    SchemaMappingConfig,
    SubgraphConfig,
    SubgraphConfigs,
    get_chain,
)
from .data_sources import (
    SubgraphMetadata,
    generate_schemas_mapping,
    get_network_block_number,
    get_subgraph_metadata,
    parse_resource_ids,
)
from .services import (
    SyncStatus,
    generate_codegen_config,
    get_subgraph_indexing_status,
    watch_subgraph_indexing_status,
)

__version__ = "0.1.0"

__all__ = [
    "Chain",
    "ConfigurationError",
    "Environment",
    "QueryClient",
    "QueryOptions",
    "SchemaLookupError",
    "SchemaMappingConfig",
    "SubgraphConfig",
    "SubgraphConfigs",
    "get_chain",
    "SubgraphMetadata",
    "generate_schemas_mapping",
    "get_network_block_number",
    "get_subgraph_metadata",
    "parse_resource_ids",
    "SyncStatus",
    "generate_codegen_config",
    "get_subgraph_indexing_status",
    "watch_subgraph_indexing_status",
]
