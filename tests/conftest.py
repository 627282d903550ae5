"""
Pytest Configuration for subgraph-kit Tests

Run all tests: python -m pytest tests/ -v
Run unit tests only: python -m pytest tests/ -v -m "not integration"
"""

import pytest
import pytest_asyncio

from subgraph_kit.infrastructure.config import (
    Environment,
    SchemaMappingConfig,
    SubgraphConfig,
)
from subgraph_kit.infrastructure.query_client import QueryClient
from subgraph_kit.infrastructure.rpc import Chain


# =============================================================================
# FIXTURES - Shared across all test files
# =============================================================================

TEMPLATE = "https://api.studio.thegraph.com/query/[apiKey]/[subgraphId]/[resourceId]"


@pytest.fixture
def url_template():
    return TEMPLATE


@pytest.fixture
def schema_config():
    """Two subgraphs across three chains, development environment"""
    return SchemaMappingConfig(
        api_key="MyApiKey",
        chains_resource_ids="1:uniswap:3,10:uniswap:4,137:aave:5",
        environment=Environment.DEVELOPMENT,
        development_url=TEMPLATE,
        production_url="https://gateway.thegraph.com/api/[apiKey]/subgraphs/id/[resourceId]",
    )


@pytest.fixture
def subgraph_config(schema_config):
    return SubgraphConfig(
        api_key=schema_config.api_key,
        chains_resource_ids=schema_config.chains_resource_ids,
        environment=schema_config.environment,
        development_url=schema_config.development_url,
        production_url=schema_config.production_url,
        queries_directory="src/queries",
    )


@pytest.fixture
def mainnet():
    return Chain(1, "Ethereum", "http://localhost:8545")


@pytest.fixture
def meta_payload():
    """`_meta` response body as returned by graph-node"""
    return {
        "data": {
            "_meta": {
                "block": {
                    "hash": "0x5f3c2a7d3d0d1c9e0b7b7c2f9f1d7a6c4e3b2a1908f7e6d5c4b3a29180706050",
                    "number": 19_000_000,
                    "timestamp": 1_705_000_000,
                },
                "deployment": "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG",
                "hasIndexingErrors": False,
            }
        }
    }


@pytest_asyncio.fixture
async def query_client():
    """Query client closed after each test so no poller outlives it"""
    client = QueryClient()
    yield client
    await client.close()


# =============================================================================
# MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (use real APIs)"
    )
