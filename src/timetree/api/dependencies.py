"""Dependency injection for FastAPI endpoints.

These dependencies hand endpoints the configuration and the tracker stored
in the application state by :func:`timetree.api.server.create_app`.
"""

from fastapi import HTTPException, Request, status  # type: ignore[import-untyped]

from timetree.core.config import ConfigManager
from timetree.core.tracker import TimeTracker
from timetree.core.trackables import Project, Trackable


def get_config(request: Request) -> ConfigManager:
    """Get configuration manager instance.

    Note:
        This is a dependency function for FastAPI endpoints.
        Use with Depends(get_config) in endpoint parameters.
    """
    config: ConfigManager = request.app.state.config
    return config


def get_tracker(request: Request) -> TimeTracker:
    """Get the tracker serving this application.

    Note:
        This is a dependency function for FastAPI endpoints.
        Use with Depends(get_tracker) in endpoint parameters.
    """
    tracker: TimeTracker = request.app.state.tracker
    return tracker


def require_trackable(tracker: TimeTracker, trackable_id: str) -> Trackable:
    """Look up a trackable or fail with 404."""
    trackable = tracker.get_trackable(trackable_id)
    if trackable is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Trackable '{trackable_id}' not found",
        )
    return trackable


def require_project(tracker: TimeTracker, project_id: str) -> Project:
    """Look up a project or fail with 404/400."""
    trackable = require_trackable(tracker, project_id)
    if not isinstance(trackable, Project):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Trackable '{project_id}' is not a project",
        )
    return trackable
