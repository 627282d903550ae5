"""
Services built on the data sources: sync status and codegen config
"""

from .sync_status import (
    SyncStatus,
    get_subgraph_indexing_status,
    watch_subgraph_indexing_status,
)
from .codegen import (
    generate_codegen_config,
    dump_codegen_config,
)

__all__ = [
    "SyncStatus",
    "get_subgraph_indexing_status",
    "watch_subgraph_indexing_status",
    "generate_codegen_config",
    "dump_codegen_config",
]
