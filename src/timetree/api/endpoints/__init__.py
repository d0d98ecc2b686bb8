"""API endpoints.

This package contains all API endpoint routers organized by resource type.
Each module defines a FastAPI router that is included in the main application.

Available routers:
- system: Health checks and system status
- trackables: Activities and projects, tracking control and queries
- intervals: Interval listing and correction
"""

__all__ = ["system", "trackables", "intervals"]

from timetree.api.endpoints import intervals, system, trackables  # noqa: F401
