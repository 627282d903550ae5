"""
subgraph-kit infrastructure
Configuration, errors, RPC connections and the query client
"""

from .errors import (
    SubgraphKitError,
    ConfigurationError,
    SchemaLookupError,
    ExternalAPIError,
    BlockchainError,
    ErrorCode,
    retry,
    register_exception_handlers,
)

from .config import (
    SubgraphKitConfig,
    SubgraphConfig,
    SubgraphConfigs,
    SchemaMappingConfig,
    PollingConfig,
    Environment,
    configure_logging,
    get_config,
    reload_config,
)

from .rpc import (
    Chain,
    KNOWN_CHAINS,
    get_chain,
    get_web3,
)

from .query_client import (
    QueryClient,
    QueryOptions,
    QueryState,
)

__all__ = [
    # Errors
    "SubgraphKitError",
    "ConfigurationError",
    "SchemaLookupError",
    "ExternalAPIError",
    "BlockchainError",
    "ErrorCode",
    "retry",
    "register_exception_handlers",

    # Config
    "SubgraphKitConfig",
    "SubgraphConfig",
    "SubgraphConfigs",
    "SchemaMappingConfig",
    "PollingConfig",
    "Environment",
    "configure_logging",
    "get_config",
    "reload_config",

    # RPC
    "Chain",
    "KNOWN_CHAINS",
    "get_chain",
    "get_web3",

    # Queries
    "QueryClient",
    "QueryOptions",
    "QueryState",
]
