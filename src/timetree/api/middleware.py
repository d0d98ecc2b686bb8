"""Middleware for the FastAPI application.

This module provides middleware for CORS, request logging and the mapping of
store errors to HTTP responses.
"""

import logging
import time
from typing import Any, Awaitable, Callable

from fastapi import FastAPI, Request, status  # type: ignore[import-untyped]
from fastapi.middleware.cors import CORSMiddleware  # type: ignore[import-untyped]
from fastapi.responses import JSONResponse, Response  # type: ignore[import-untyped]

from timetree.core.config import ConfigManager
from timetree.core.store import NameConflictError

logger = logging.getLogger(__name__)


def setup_cors(app: FastAPI, config: ConfigManager) -> None:
    """Configure CORS middleware.

    Args:
        app: FastAPI application instance
        config: Configuration manager

    Note:
        CORS is configured based on the api.cors section in config.
        By default, only localhost origins are allowed.
    """
    if not config.get("api.cors.enabled", True):
        return

    origins = config.get("api.cors.origins", ["http://localhost:3000"])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def setup_request_logging(app: FastAPI) -> None:
    """Log every request with its status code and latency."""

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)"
        )
        return response


def setup_error_handlers(app: FastAPI) -> None:
    """Map store errors to HTTP responses."""

    @app.exception_handler(NameConflictError)
    async def name_conflict_handler(request: Request, exc: NameConflictError) -> JSONResponse:
        content: dict[str, Any] = {"detail": str(exc), "error_code": "name_conflict"}
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=content)


def setup_middleware(app: FastAPI, config: ConfigManager) -> None:
    """Set up all middleware for the application.

    Args:
        app: FastAPI application instance
        config: Configuration manager
    """
    setup_cors(app, config)
    setup_request_logging(app)
    setup_error_handlers(app)
