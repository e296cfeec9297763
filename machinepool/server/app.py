"""
FastAPI application factory.

Usage:
    from machinepool.server.app import create_app

    app = create_app()

Or run directly:
    uvicorn machinepool.server:app --port 3000
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from machinepool.exceptions import PoolError
from machinepool.pool import get_pool
from machinepool.server.exceptions import status_code_for
from machinepool.server.middleware import RequestTrackingMiddleware
from machinepool.server.routers import health, leases, workers
from machinepool.server.schemas import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the pool before the first request so handlers share one instance."""
    get_pool()
    yield


def _error_response(request: Request, status_code: int, detail: ErrorDetail) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    if detail.request_id is None:
        detail.request_id = request_id
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=detail).model_dump(),
        headers={"X-Request-ID": request_id},
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="machinepool",
        description="Lease ephemeral worker machines and keep a buffer of claimable ones",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestTrackingMiddleware)

    @app.exception_handler(PoolError)
    async def pool_error_handler(request: Request, exc: PoolError) -> JSONResponse:
        """Map typed pool errors onto HTTP statuses."""
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("%s: %s", exc.code, exc.message)
        return _error_response(
            request,
            status_code,
            ErrorDetail(code=exc.code, message=exc.message, details=exc.details),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors."""
        logger.error("Unhandled error: %s", exc, exc_info=exc)
        return _error_response(
            request,
            500,
            ErrorDetail(code="internal_error", message="An internal error occurred"),
        )

    app.include_router(health.router)
    app.include_router(workers.router)
    app.include_router(leases.router)

    return app


# Default app instance for uvicorn
app = create_app()
