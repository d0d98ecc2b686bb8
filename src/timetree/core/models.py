"""Core data models for time tracking."""

import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from timetree.core.timevalue import TimeFormat, TimeValue


def current_time_seconds() -> float:
    """Current wall-clock time as seconds since the epoch."""
    return time.time()


class TrackingState(Enum):
    """Whether an interval (or a trackable) is currently tracking."""

    INACTIVE = "INACTIVE"
    ACTIVE = "ACTIVE"


class TrackableType(Enum):
    """Variants of a trackable."""

    ACTIVITY = "activity"
    PROJECT = "project"


def _sanitize_channel(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or number <= 0:
        return 0
    return int(min(number, 255))


@dataclass
class RGBColor:
    """Display color of a trackable.

    Channels are clamped to 0-255; missing, negative or NaN channels become 0.
    """

    red: int = 0
    green: int = 0
    blue: int = 0

    def __post_init__(self) -> None:
        self.red = _sanitize_channel(self.red)
        self.green = _sanitize_channel(self.green)
        self.blue = _sanitize_channel(self.blue)

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {"red": self.red, "green": self.green, "blue": self.blue}

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "RGBColor":
        """Create RGBColor from dictionary. ``None`` gives black."""
        if not data:
            return cls()
        return cls(data.get("red"), data.get("green"), data.get("blue"))  # type: ignore[arg-type]


@dataclass
class TrackingInterval:
    """One recorded span of elapsed time.

    Attributes:
        start_time: Absolute start (seconds since the epoch)
        end_time: Absolute end, None while the interval is open
        state: ACTIVE while open, INACTIVE once finished
        id: Unique identifier
    """

    start_time: float
    end_time: Optional[float] = None
    state: TrackingState = TrackingState.ACTIVE
    id: str = field(default_factory=lambda: str(uuid4()), compare=False)

    @classmethod
    def begin(cls, now: Optional[float] = None) -> "TrackingInterval":
        """Open a new interval starting at ``now``."""
        return cls(start_time=current_time_seconds() if now is None else now)

    def finish(self, now: Optional[float] = None) -> None:
        """Close the interval at ``now``."""
        self.end_time = current_time_seconds() if now is None else now
        self.state = TrackingState.INACTIVE

    @property
    def is_active(self) -> bool:
        return self.state is TrackingState.ACTIVE

    def duration(
        self, time_format: TimeFormat = TimeFormat.HMS, now: Optional[float] = None
    ) -> TimeValue:
        """Elapsed time of the interval.

        Open intervals are measured up to ``now``, so the value keeps growing
        until the interval is finished.

        Args:
            time_format: Format of the result
            now: Reference time for open intervals (defaults to the clock)

        Returns:
            Duration as a TimeValue
        """
        if self.state is TrackingState.INACTIVE and self.end_time is not None:
            return TimeValue(self.end_time - self.start_time, time_format)
        if now is None:
            now = current_time_seconds()
        return TimeValue(now - self.start_time, time_format)

    def set_fields(
        self, start_time: Optional[float] = None, end_time: Optional[float] = None
    ) -> TimeValue:
        """Manually correct the start and/or end of the interval.

        Only the given fields are overwritten and the state is left as is.

        Returns:
            The recomputed duration
        """
        if start_time is not None:
            self.start_time = start_time
        if end_time is not None:
            self.end_time = end_time
        return self.duration()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "startTimeSeconds": self.start_time,
            "endTimeSeconds": self.end_time,
            "state": self.state.value,
            "duration": self.duration().to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackingInterval":
        """Create TrackingInterval from dictionary (JSON deserialization).

        ``state`` may be the string form or the legacy numeric form (1 = ACTIVE).
        """
        raw_state = data.get("state")
        active = raw_state == TrackingState.ACTIVE.value or raw_state == 1
        return cls(
            id=data.get("id") or str(uuid4()),
            start_time=float(data["startTimeSeconds"]),
            end_time=(
                float(data["endTimeSeconds"]) if data.get("endTimeSeconds") is not None else None
            ),
            state=TrackingState.ACTIVE if active else TrackingState.INACTIVE,
        )
