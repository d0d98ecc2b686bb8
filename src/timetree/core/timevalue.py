"""Immutable duration arithmetic."""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

logger = logging.getLogger(__name__)


class TimeFormat(Enum):
    """Display granularity of a TimeValue."""

    HMS = "HMS"
    MS = "MS"
    S = "S"


class InvalidTimeUnitRequest(ValueError):
    """Raised when asking for a unit the value's format does not carry."""

    def __init__(self, unit: str, time_format: TimeFormat):
        super().__init__(
            f"{unit} is not a valid time unit request for TimeValue formatted as "
            f"{time_format.value}"
        )


def sanitize_numeric(value: Any) -> float:
    """Coerce a component to a non-negative number.

    Args:
        value: Raw component (may be None, a string, NaN, ...)

    Returns:
        The numeric value, or 0 if it is missing, non-numeric or not positive
    """
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or number <= 0:
        return 0
    return number


@dataclass(frozen=True)
class TimeValue:
    """A non-negative duration.

    The value is always held as a count of seconds. ``time_format`` only
    decides how that count is split into hours, minutes and seconds when the
    components are read.

    Attributes:
        total_seconds: Exact duration in seconds
        time_format: Display granularity
    """

    total_seconds: float = 0.0
    time_format: TimeFormat = TimeFormat.HMS

    def __post_init__(self) -> None:
        seconds = sanitize_numeric(self.total_seconds)
        object.__setattr__(self, "total_seconds", seconds)

    @property
    def hours(self) -> int:
        """Whole hours (HMS only)."""
        if self.time_format is not TimeFormat.HMS:
            raise InvalidTimeUnitRequest("Hours", self.time_format)
        return int(self.total_seconds // 3600)

    @property
    def mins(self) -> int:
        """Whole minutes left after the hours (HMS and MS only)."""
        if self.time_format is TimeFormat.S:
            raise InvalidTimeUnitRequest("Mins", self.time_format)
        if self.time_format is TimeFormat.HMS:
            return int(self.total_seconds // 60) - self.hours * 60
        return int(self.total_seconds // 60)

    @property
    def seconds(self) -> float:
        """Seconds left after the larger units.

        Floored for HMS and MS; the raw total for S.
        """
        if self.time_format is TimeFormat.S:
            return self.total_seconds
        return int(self.total_seconds - self._larger_units_seconds())

    def _larger_units_seconds(self) -> int:
        if self.time_format is TimeFormat.HMS:
            return self.hours * 3600 + self.mins * 60
        return self.mins * 60

    def components(self) -> tuple[int, int, float]:
        """Return (hours, mins, seconds), zero for units the format lacks."""
        hours = self.hours if self.time_format is TimeFormat.HMS else 0
        mins = self.mins if self.time_format is not TimeFormat.S else 0
        return hours, mins, self.seconds

    def to_format(self, time_format: TimeFormat) -> "TimeValue":
        return TimeValue(self.total_seconds, time_format)

    def __add__(self, other: "TimeValue") -> "TimeValue":
        if not isinstance(other, TimeValue):
            return NotImplemented
        return TimeValue.add(self, other, self.time_format)

    @staticmethod
    def add(
        first: "TimeValue", second: "TimeValue", time_format: TimeFormat = TimeFormat.HMS
    ) -> "TimeValue":
        """Add two values in total-seconds space.

        Args:
            first: Left operand
            second: Right operand
            time_format: Format of the result

        Returns:
            New TimeValue holding the sum
        """
        return TimeValue(first.total_seconds + second.total_seconds, time_format)

    @staticmethod
    def add_multiple(
        *values: "TimeValue", time_format: TimeFormat = TimeFormat.HMS
    ) -> "TimeValue":
        total = TimeValue(0, time_format)
        for value in values:
            total = TimeValue.add(total, value, time_format)
        return total

    @classmethod
    def from_dict(
        cls, data: Any, time_format: TimeFormat = TimeFormat.HMS
    ) -> "TimeValue":
        """Build a value from a ``{hours, mins, seconds}`` mapping.

        Missing or malformed components count as zero.

        Args:
            data: Mapping with any of ``hours``, ``mins`` and ``seconds``
            time_format: Format of the result

        Returns:
            TimeValue for the combined duration
        """
        if not isinstance(data, Mapping):
            logger.warning(
                f"Expected a mapping for TimeValue.from_dict, got {type(data).__name__}; "
                f"using zero"
            )
            return cls(0, time_format)

        seconds = sanitize_numeric(data.get("seconds"))
        mins = sanitize_numeric(data.get("mins"))
        hours = sanitize_numeric(data.get("hours"))
        return cls(seconds + mins * 60 + hours * 3600, time_format)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the ``{hours, mins, seconds}`` wire shape."""
        hours, mins, seconds = self.components()
        return {"hours": hours, "mins": mins, "seconds": seconds}
