"""
Subgraph Metadata
Polls an indexer's `_meta` field for its head block and indexing health

Every fetch rebuilds the schema mapping from the config, so config changes
are picked up on the next poll tick.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from subgraph_kit.infrastructure.config import SchemaMappingConfig, get_config
from subgraph_kit.infrastructure.errors import ExternalAPIError
from subgraph_kit.infrastructure.query_client import QueryClient, QueryOptions
from subgraph_kit.data_sources.schemas import generate_schemas_mapping, resolve_subgraph_url

logger = logging.getLogger("SubgraphKit.Metadata")

SUBGRAPH_METADATA_QUERY = """
query {
    _meta {
        block {
            hash
            number
            timestamp
        }
        deployment
        hasIndexingErrors
    }
}
"""

DEFAULT_REFETCH_INTERVAL = 10.0


class MetaBlock(BaseModel):
    hash: Optional[str] = None
    number: int
    timestamp: Optional[int] = None


class SubgraphMetadata(BaseModel):
    """`_meta` as reported by the indexer"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    block: MetaBlock
    deployment: str
    has_indexing_errors: bool = Field(alias="hasIndexingErrors")


async def post_graphql(
    url: str,
    query: str,
    variables: Optional[Dict[str, Any]] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    POST a GraphQL query and return its `data` object.

    Raises ExternalAPIError on HTTP failures, GraphQL `errors` or a body
    that is not a JSON object.
    """
    payload: Dict[str, Any] = {"query": query}
    if variables:
        payload["variables"] = variables

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=timeout or get_config().request_timeout)

    try:
        response = await client.post(url, json=payload)
        response.raise_for_status()
        body = response.json()
    except httpx.HTTPStatusError as e:
        raise ExternalAPIError(url, e.response.status_code, f"Subgraph request failed: {e}") from e
    except httpx.HTTPError as e:
        raise ExternalAPIError(url, message=f"Subgraph request failed: {e}") from e
    except ValueError as e:
        raise ExternalAPIError(url, message=f"Subgraph returned invalid JSON: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    if not isinstance(body, dict):
        raise ExternalAPIError(url, message="Subgraph returned a non-object response")

    if body.get("errors"):
        logger.error(f"GraphQL error from {url}: {body['errors']}")
        raise ExternalAPIError(url, message="GraphQL query returned errors", errors=body["errors"])

    return body.get("data") or {}


async def fetch_subgraph_metadata(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
) -> SubgraphMetadata:
    """
    Run the `_meta` query against one endpoint.

    Raises ExternalAPIError when `_meta` is missing or malformed.
    """
    data = await post_graphql(url, SUBGRAPH_METADATA_QUERY, client=client)
    meta = data.get("_meta") if isinstance(data, dict) else None
    if meta is None:
        raise ExternalAPIError(url, message="Subgraph response has no _meta")

    try:
        return SubgraphMetadata.model_validate(meta)
    except ValidationError as e:
        raise ExternalAPIError(url, message=f"Invalid _meta from subgraph: {e}") from e


def subgraph_metadata_key(resource: str, chain_id: int) -> tuple:
    return ("subgraphMetadata", resource, chain_id)


async def get_subgraph_metadata(
    client: QueryClient,
    chain_id: int,
    resource: str,
    schema_config: SchemaMappingConfig,
    options: Optional[Dict[str, Any]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> SubgraphMetadata:
    """
    Metadata of the `resource` subgraph on `chain_id`.

    The first call awaits the indexer; later calls return the latest polled
    value. Polls every 10 seconds unless `options` overrides
    `refetch_interval`.

    Raises SchemaLookupError (at fetch time) when the pair is not mapped.
    """
    async def fetcher() -> SubgraphMetadata:
        mapping = generate_schemas_mapping(schema_config)
        url = resolve_subgraph_url(mapping, resource, chain_id)
        return await fetch_subgraph_metadata(url, http_client)

    return await client.fetch_query(
        subgraph_metadata_key(resource, chain_id),
        fetcher,
        QueryOptions.build(options, refetch_interval=DEFAULT_REFETCH_INTERVAL),
    )
