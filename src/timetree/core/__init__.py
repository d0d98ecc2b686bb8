"""Core functionality for time tracking."""

from timetree.core.models import RGBColor, TrackingInterval, TrackingState
from timetree.core.store import NameConflictError, TrackablesStore
from timetree.core.timevalue import TimeFormat, TimeValue
from timetree.core.timewindow import TimeWindow
from timetree.core.trackables import Activity, Project
from timetree.core.tracker import TimeTracker

__all__ = [
    "Activity",
    "Project",
    "TrackingInterval",
    "TrackingState",
    "RGBColor",
    "TimeValue",
    "TimeFormat",
    "TimeWindow",
    "TrackablesStore",
    "NameConflictError",
    "TimeTracker",
]
