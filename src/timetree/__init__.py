"""Timetree: hierarchical personal time tracking."""

__version__ = "0.3.0"
