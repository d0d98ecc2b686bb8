"""REST API for Timetree.

This module provides a FastAPI-based REST API for programmatic access to the
trackable hierarchy. The API is disabled by default and must be explicitly
enabled in the configuration.

Key features:
- Activities and projects: create, rename, recolor, delete
- Tracking control (start/stop)
- Project membership, join and conversion
- Interval listing and correction
- Totals and time-span queries
- JWT-based authentication
- CORS support
- OpenAPI documentation

Usage:
    # Enable API
    timetree config set api.enabled true

    # Generate token
    timetree api token create

    # Start server
    timetree api serve

    # Access API docs
    http://localhost:8000/docs
"""

__all__ = ["create_app", "run_server"]

from timetree.api.server import create_app, run_server  # noqa: F401
