"""
Error Handling for subgraph-kit
Structured exceptions shared by the mapper, accessors and status API

Features:
- Custom exception classes
- Structured JSON error responses
- Retry with exponential backoff for fetchers
"""

import asyncio
import logging
import traceback
from datetime import datetime
from typing import Callable, Dict, TypeVar
from functools import wraps
from enum import Enum

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse

logger = logging.getLogger("SubgraphKit.Errors")


# ============================================
# ERROR CODES
# ============================================

class ErrorCode(str, Enum):
    # Client errors (4xx)
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    EXTERNAL_API_ERROR = "EXTERNAL_API_ERROR"
    BLOCKCHAIN_ERROR = "BLOCKCHAIN_ERROR"

    # Subgraph lookups
    SCHEMA_NOT_FOUND = "SCHEMA_NOT_FOUND"


# ============================================
# CUSTOM EXCEPTIONS
# ============================================

class SubgraphKitError(Exception):
    """Base exception for subgraph-kit"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Dict = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict:
        return {
            "success": False,
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp.isoformat()
            }
        }


class ConfigurationError(SubgraphKitError):
    """URL template for the selected environment is missing"""
    def __init__(self, environment: str):
        super().__init__(
            f"url must be defined for environment {environment}",
            ErrorCode.CONFIGURATION_ERROR,
            500,
            {"environment": environment}
        )


class SchemaLookupError(SubgraphKitError, KeyError):
    """No endpoint URL mapped for a (resource, chain) pair"""
    def __init__(self, resource: str, chain_id):
        super().__init__(
            f"No subgraph URL for resource '{resource}' on chain {chain_id}",
            ErrorCode.SCHEMA_NOT_FOUND,
            404,
            {"resource": resource, "chain_id": chain_id}
        )

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.message


class ExternalAPIError(SubgraphKitError):
    """Subgraph endpoint call failed"""
    def __init__(self, api_name: str, status_code: int = None, message: str = None, errors: list = None):
        details = {"api": api_name}
        if status_code:
            details["api_status_code"] = status_code
        if errors:
            details["errors"] = errors
        super().__init__(
            message or f"External API '{api_name}' failed",
            ErrorCode.EXTERNAL_API_ERROR,
            502,
            details
        )


class BlockchainError(SubgraphKitError):
    """RPC call failed"""
    def __init__(self, chain: str, message: str):
        super().__init__(message, ErrorCode.BLOCKCHAIN_ERROR, 502, {"chain": chain})


# ============================================
# RETRY LOGIC
# ============================================

T = TypeVar('T')


def retry_delay(attempt: int, base: float = 1.0, cap: float = 30.0) -> float:
    """Exponential backoff delay for a zero-based retry attempt."""
    return min(base * (2 ** attempt), cap)


def retry(
    max_attempts: int = 4,
    delay: float = 1.0,
    max_delay: float = 30.0,
    exceptions: tuple = (Exception,)
):
    """
    Decorator for automatic retry with exponential backoff.

    Usage:
        @retry(max_attempts=4, delay=1.0)
        async def fetch_data():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = getattr(func, "__name__", repr(func))

        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e

                    # Client and configuration errors will not succeed on retry
                    if isinstance(e, ConfigurationError) or (
                        isinstance(e, SubgraphKitError) and e.status_code < 500
                    ):
                        raise

                    if attempt < max_attempts - 1:
                        logger.warning(f"Retry {attempt + 1}/{max_attempts - 1} for {name}: {e}")
                        await asyncio.sleep(retry_delay(attempt, delay, max_delay))
                    else:
                        logger.error(f"All retries failed for {name}: {e}")

            raise last_exception

        return wrapper
    return decorator


# ============================================
# FASTAPI EXCEPTION HANDLERS
# ============================================

async def subgraph_kit_exception_handler(request: Request, exc: SubgraphKitError) -> JSONResponse:
    """Handle SubgraphKitError exceptions"""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPExceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.BAD_REQUEST.value if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR.value,
                "message": exc.detail,
                "timestamp": datetime.now().isoformat()
            }
        }
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""
    logger.error(f"Unhandled exception: {traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.INTERNAL_ERROR.value,
                "message": "An unexpected error occurred",
                "timestamp": datetime.now().isoformat()
            }
        }
    )


def register_exception_handlers(app):
    """Register all exception handlers with FastAPI app"""
    app.add_exception_handler(SubgraphKitError, subgraph_kit_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")
