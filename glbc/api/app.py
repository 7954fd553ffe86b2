"""FastAPI application factory for glbc.

Usage::

    from glbc.api.app import create_app

    app = create_app(cloud=composite_cloud, config=config)

Used by both the bootstrap (``glbc.app``) and tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from google.api_core import exceptions as gapi_exceptions
from prometheus_client import make_asgi_app

from glbc.api.routes import router
from glbc.api.schemas import ErrorResponse, HealthResponse
from glbc.composite.cloud import CompositeCloud
from glbc.errors import ConversionError, GraphStructureError, UnknownFeatureError
from glbc.gclb.models import DEFAULT_BACKEND_SERVICE

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(cloud: CompositeCloud, config: Any = None) -> FastAPI:
    """Create and configure the glbc FastAPI application.

    Args:
        cloud:  CompositeCloud the graph endpoints read through.
        config: Optional GLBCConfig; supplies the default backend name.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from glbc import __version__

    default_backend = DEFAULT_BACKEND_SERVICE
    if config is not None:
        default_backend = config.backends.default_backend_service

    app = FastAPI(
        title="glbc",
        summary="Load-balancer resource graph API",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.cloud = cloud
    app.state.config = config
    app.state.default_backend_service = default_backend
    app.state.graphs = {}

    app.include_router(router, prefix=_API_PREFIX)
    app.mount("/metrics", make_asgi_app())

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> HealthResponse:
        return HealthResponse(version=__version__)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    def _error(status_code: int, error: str, detail: str) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, detail=detail).model_dump())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        detail = str(errors[0].get("msg", "")) if errors else ""
        return _error(400, "INVALID_REQUEST", detail)

    @app.exception_handler(UnknownFeatureError)
    async def unknown_feature_handler(_request: Request, exc: UnknownFeatureError) -> JSONResponse:
        return _error(400, "UNKNOWN_FEATURE", str(exc))

    @app.exception_handler(GraphStructureError)
    async def graph_structure_handler(request: Request, exc: GraphStructureError) -> JSONResponse:
        _log.warning("graph_structure_error", path=str(request.url.path), error=str(exc))
        return _error(409, "INCONSISTENT_GRAPH", str(exc))

    @app.exception_handler(ConversionError)
    async def conversion_handler(request: Request, exc: ConversionError) -> JSONResponse:
        _log.error("conversion_error", path=str(request.url.path), error=str(exc))
        return _error(502, "MALFORMED_CLOUD_RESPONSE", str(exc))

    @app.exception_handler(gapi_exceptions.GoogleAPICallError)
    async def cloud_error_handler(request: Request, exc: gapi_exceptions.GoogleAPICallError) -> JSONResponse:
        _log.warning("cloud_error", path=str(request.url.path), code=exc.code, error=str(exc))
        return _error(502, "CLOUD_ERROR", str(exc))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return _error(500, "INTERNAL_ERROR", "An unexpected error occurred.")

    return app
