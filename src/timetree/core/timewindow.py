"""Now-relative time windows used to filter and clip intervals."""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from timetree.core.models import TrackingInterval, TrackingState, current_time_seconds
from timetree.core.timevalue import TimeValue

# Slack added to "now" when no upper bound is given.
OPEN_UNTIL_SLACK_SECONDS = 100


@dataclass
class ResolvedWindow:
    """A TimeWindow pinned to absolute times."""

    since_abs: float
    until_abs: float
    now: float

    def includes(self, interval: TrackingInterval) -> bool:
        """Check whether an interval overlaps the window.

        An interval counts if it starts inside the window, or started before
        the lower bound and was still running at it (ended after it, or is
        still active). Intervals starting after the upper bound never count.
        """
        start = interval.start_time
        if start >= self.since_abs:
            included = True
        else:
            still_running = interval.state is TrackingState.ACTIVE
            ended_after = interval.end_time is not None and self.since_abs < interval.end_time
            included = still_running or ended_after

        if start > self.until_abs:
            return False
        return included

    def clip(self, interval: TrackingInterval) -> TrackingInterval:
        """Return a closed copy of the interval cut at the lower bound.

        Active intervals are closed at ``now``.
        """
        if interval.state is TrackingState.INACTIVE and interval.end_time is not None:
            end = interval.end_time
        else:
            end = self.now
        return TrackingInterval(
            start_time=max(interval.start_time, self.since_abs),
            end_time=end,
            state=TrackingState.INACTIVE,
        )


@dataclass
class TimeWindow:
    """Window expressed as offsets back from the present.

    Attributes:
        since: Lower bound offset (None means the beginning of time)
        until: Upper bound offset (None means just past now)

    Example:
        >>> window = TimeWindow.from_dict({"since": {"hours": 6}})
        >>> resolved = window.resolve(now=36000)
        >>> resolved.since_abs
        14400.0
    """

    since: Optional[TimeValue] = None
    until: Optional[TimeValue] = None

    def resolve(self, now: Optional[float] = None) -> ResolvedWindow:
        """Pin the window to absolute times.

        Args:
            now: Reference time (defaults to the clock)

        Returns:
            ResolvedWindow with absolute bounds
        """
        if now is None:
            now = current_time_seconds()
        since_abs = 0.0 if self.since is None else now - self.since.total_seconds
        if self.until is None:
            until_abs = now + OPEN_UNTIL_SLACK_SECONDS
        else:
            until_abs = now - self.until.total_seconds
        return ResolvedWindow(since_abs=since_abs, until_abs=until_abs, now=now)

    def includes(self, interval: TrackingInterval, now: Optional[float] = None) -> bool:
        return self.resolve(now).includes(interval)

    def clip(self, interval: TrackingInterval, now: Optional[float] = None) -> TrackingInterval:
        return self.resolve(now).clip(interval)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "TimeWindow":
        """Create TimeWindow from ``{since?: {...}, until?: {...}}``.

        None, or a missing sub-key, leaves that bound absent.
        """
        if not data:
            return cls()
        since = data.get("since")
        until = data.get("until")
        return cls(
            since=TimeValue.from_dict(since) if since is not None else None,
            until=TimeValue.from_dict(until) if until is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {}
        if self.since is not None:
            result["since"] = self.since.to_dict()
        if self.until is not None:
            result["until"] = self.until.to_dict()
        return result
