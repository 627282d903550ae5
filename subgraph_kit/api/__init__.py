"""
HTTP API for subgraph status
"""

from .app import create_app
from .subgraph_router import router

__all__ = ["create_app", "router"]
