"""
GraphQL Codegen Config
Builds the `@graphql-codegen/cli` configuration for every mapped subgraph

Field names and nesting (`generates`, `preset`, `schema`, `documents`,
`overwrite`) are read by the codegen CLI and must not change.
"""

import json
import logging
from typing import Any, Dict

from subgraph_kit.infrastructure.config import SubgraphConfigs
from subgraph_kit.data_sources.schemas import generate_schemas_mapping

logger = logging.getLogger("SubgraphKit.Codegen")

OUTPUT_PATH = "./src/subgraphs/gql/{subgraph_id}/"
DOCUMENTS_GLOB = "{queries_directory}/{subgraph_id}/**/*"
PRESET = "client"


def generate_codegen_config(config: SubgraphConfigs) -> Dict[str, Any]:
    """
    Generate a codegen config with one output per subgraph id.

    The schema of each output is the URL of the first chain listed for that
    subgraph. Later configs override earlier ones sharing a subgraph id.
    """
    generates: Dict[str, Dict[str, str]] = {}

    for subgraph in config.subgraphs:
        queries_directory = subgraph.queries_directory
        schemas = generate_schemas_mapping(subgraph.schema_mapping_config())

        for subgraph_id, chains in schemas.items():
            entry = {
                "preset": PRESET,
                "schema": next(iter(chains.values())),
            }
            if queries_directory:
                entry["documents"] = DOCUMENTS_GLOB.format(
                    queries_directory=queries_directory, subgraph_id=subgraph_id
                )
            generates[OUTPUT_PATH.format(subgraph_id=subgraph_id)] = entry

    logger.debug(f"Codegen config generated for {len(generates)} subgraphs")

    return {
        "generates": generates,
        "overwrite": True,
    }


def dump_codegen_config(config: SubgraphConfigs, indent: int = 2) -> str:
    """Codegen config as JSON, for `graphql-codegen --config codegen.json`."""
    return json.dumps(generate_codegen_config(config), indent=indent)
