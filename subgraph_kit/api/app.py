"""
FastAPI application exposing the subgraph router
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from subgraph_kit.infrastructure.config import configure_logging, get_config
from subgraph_kit.infrastructure.errors import register_exception_handlers
from subgraph_kit.infrastructure.query_client import QueryClient
from subgraph_kit.api.subgraph_router import router as subgraph_router

logger = logging.getLogger("SubgraphKit.API")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.query_client = QueryClient()
    logger.info("Query client started")
    try:
        yield
    finally:
        await app.state.query_client.close()
        logger.info("Query client closed")


def create_app() -> FastAPI:
    configure_logging(get_config().monitoring.log_level)

    app = FastAPI(title="subgraph-kit", version="0.1.0", lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(subgraph_router)
    return app
