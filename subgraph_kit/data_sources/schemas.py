"""
Subgraph Schema Mapping
Turns a compact `chainId:subgraphId:resourceId` list into endpoint URLs

URL templates carry three tokens, each replaced once:
    [apiKey]      - API key from the config
    [subgraphId]  - subgraph identifier
    [resourceId]  - deployment / resource identifier for the chain

Example:
    https://api.studio.thegraph.com/query/[apiKey]/[subgraphId]/[resourceId]
"""

import logging
from typing import Dict, Optional, Union

from subgraph_kit.infrastructure.config import Environment, SchemaMappingConfig
from subgraph_kit.infrastructure.errors import ConfigurationError, SchemaLookupError

logger = logging.getLogger("SubgraphKit.Schemas")

ChainId = Union[int, str, None]
ParsedResourceIds = Dict[Optional[str], Dict[ChainId, Optional[str]]]
SchemasMapping = Dict[Optional[str], Dict[ChainId, str]]


def _chain_id(raw: str) -> ChainId:
    return int(raw) if raw.isdecimal() else raw


def parse_resource_ids(resource_ids: str) -> ParsedResourceIds:
    """
    Parse `chainId:subgraphId:resourceId` triples into a nested mapping.

    Spaces are stripped, triples split on commas. Triples sharing a subgraph
    id are merged under it. Numeric chain ids become ints.

    Malformed triples are not rejected: missing parts come back as None and
    fail later, when the URL is used.

        >>> parse_resource_ids("1:uniswap:3,10:uniswap:4,137:aave:5")
        {'uniswap': {1: '3', 10: '4'}, 'aave': {137: '5'}}
    """
    parsed: ParsedResourceIds = {}

    for segment in resource_ids.replace(" ", "").split(","):
        parts = segment.split(":")
        if len(parts) != 3:
            logger.warning(f"Malformed resource id segment: {segment!r}")

        chain_id, subgraph_id, resource_id = (parts + [None, None])[:3]
        parsed.setdefault(subgraph_id, {})[_chain_id(chain_id)] = resource_id

    return parsed


def _substitute(template: str, token: str, value) -> str:
    return template.replace(token, "" if value is None else str(value), 1)


def select_url(config: SchemaMappingConfig) -> str:
    """URL template for the config's environment."""
    environment = getattr(config.environment, "value", config.environment)
    if environment == Environment.DEVELOPMENT.value:
        url = config.development_url
    else:
        url = config.production_url

    if not url:
        raise ConfigurationError(environment)
    return url


def generate_schemas_mapping(config: SchemaMappingConfig) -> SchemasMapping:
    """
    Build subgraph -> chain -> endpoint URL from a mapping config.

    Raises ConfigurationError when the URL template for the config's
    environment is not set.

        >>> generate_schemas_mapping(SchemaMappingConfig(
        ...     api_key="MyApiKey",
        ...     chains_resource_ids="1:uniswap:3,10:uniswap:4,137:aave:5",
        ...     environment=Environment.DEVELOPMENT,
        ...     development_url="https://api.studio.thegraph.com/query/[apiKey]/[subgraphId]/[resourceId]",
        ... ))["uniswap"][10]
        'https://api.studio.thegraph.com/query/MyApiKey/uniswap/4'
    """
    url = select_url(config)
    parsed = parse_resource_ids(config.chains_resource_ids)

    return {
        subgraph_id: {
            chain_id: _substitute(
                _substitute(
                    _substitute(url, "[apiKey]", config.api_key),
                    "[subgraphId]", subgraph_id,
                ),
                "[resourceId]", resource_id,
            )
            for chain_id, resource_id in chains.items()
        }
        for subgraph_id, chains in parsed.items()
    }


def resolve_subgraph_url(mapping: SchemasMapping, resource: str, chain_id: int) -> str:
    """Look up one endpoint URL, raising SchemaLookupError if unmapped."""
    try:
        return mapping[resource][chain_id]
    except KeyError:
        raise SchemaLookupError(resource, chain_id) from None
