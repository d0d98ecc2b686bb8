"""FastAPI application server.

This module contains the main FastAPI application setup and server runner.
One tracker, loaded from the configured data directory, serves every request.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI  # type: ignore[import-untyped]
from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

from timetree import __version__
from timetree.api.middleware import setup_middleware
from timetree.core.config import ConfigManager
from timetree.core.persistence import DEFAULT_STORE_FILE
from timetree.core.storage import StorageManager
from timetree.core.tracker import TimeTracker

logger = logging.getLogger(__name__)


def load_tracker(config: ConfigManager) -> TimeTracker:
    """Build a tracker over the store configured in ``general``."""
    storage = StorageManager(
        config.data_dir, store_file=config.get("general.store_file", DEFAULT_STORE_FILE)
    )
    tracker = TimeTracker(storage)
    tracker.load_store()
    return tracker


def create_app(
    config: Optional[ConfigManager] = None, tracker: Optional[TimeTracker] = None
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Optional configuration manager (creates default if None)
        tracker: Optional tracker (loaded from the configured data dir if None)

    Returns:
        Configured FastAPI application instance

    Example:
        >>> app = create_app()
        >>> # Or with custom config
        >>> config = ConfigManager(Path("config.yml"))
        >>> app = create_app(config)
    """
    if config is None:
        config = ConfigManager()
    if tracker is None:
        tracker = load_tracker(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"Serving store {tracker.store.store_id}")  # type: ignore[union-attr]
        yield
        tracker.close()  # type: ignore[union-attr]

    app = FastAPI(
        title="Timetree API",
        description="REST API for the Timetree hierarchical time tracker",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Shared state for dependency injection
    app.state.config = config
    app.state.tracker = tracker

    setup_middleware(app, config)

    from timetree.api.endpoints import intervals, system, trackables

    app.include_router(system.router, prefix="/api/v1", tags=["system"])
    app.include_router(trackables.router, prefix="/api/v1/trackables", tags=["trackables"])
    app.include_router(intervals.router, prefix="/api/v1/intervals", tags=["intervals"])

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Root endpoint - points to docs."""
        return JSONResponse(
            {
                "message": "Timetree API",
                "version": __version__,
                "docs": "/docs",
                "health": "/api/v1/health",
            }
        )

    return app


def run_server(
    host: str = "localhost",
    port: int = 8000,
    reload: bool = False,
    config: Optional[ConfigManager] = None,
) -> None:
    """Run the API server using Uvicorn.

    Args:
        host: Host address to bind to
        port: Port number to bind to
        reload: Enable auto-reload for development
        config: Optional configuration manager

    Note:
        This function blocks until the server is stopped. A single worker is
        used since the store lives in memory. With reload enabled the app is
        rebuilt from the default config file.
    """
    import uvicorn  # type: ignore[import-untyped]

    if config is None:
        config = ConfigManager()

    options = {
        "host": host,
        "port": port,
        "log_level": config.get("api.advanced.log_level", "info"),
        "access_log": config.get("api.advanced.access_log", True),
    }

    if reload:
        uvicorn.run("timetree.api.server:create_app", factory=True, reload=True, **options)
    else:
        uvicorn.run(create_app(config), **options)
