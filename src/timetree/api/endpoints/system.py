"""System endpoints for health checks and status.

This module provides endpoints for checking the API health status
and retrieving system information.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends  # type: ignore[import-untyped]

from timetree import __version__
from timetree.api.dependencies import get_config, get_tracker
from timetree.api.models import HealthResponse, StatusResponse
from timetree.core.config import ConfigManager
from timetree.core.models import TrackingState
from timetree.core.tracker import TimeTracker

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint.

    Note:
        This endpoint is public (no authentication required).

    Example:
        >>> GET /api/v1/health
        {
            "status": "healthy",
            "timestamp": "2026-10-19T10:30:00Z",
            "version": "0.3.0"
        }
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
    )


@router.get("/status", response_model=StatusResponse)
async def get_status(
    config: ConfigManager = Depends(get_config),
    tracker: TimeTracker = Depends(get_tracker),
) -> StatusResponse:
    """Get system status.

    Args:
        config: Configuration manager (injected)
        tracker: Time tracker (injected)

    Returns:
        Configuration flags, what is being tracked and store size
    """
    active_id = tracker.currently_active_trackable_id
    active = tracker.get_trackable(active_id) if active_id else None

    return StatusResponse(
        api_enabled=config.get("api.enabled", False),
        authentication_enabled=config.get("api.authentication.enabled", True),
        cors_enabled=config.get("api.cors.enabled", True),
        active_tracking=active is not None and active.tracking_state is TrackingState.ACTIVE,
        currently_active_trackable=active_id,
        activity_count=len(tracker.store.activities),
        project_count=len(tracker.store.projects),
        uptime_seconds=time.time() - _server_start_time,
    )
