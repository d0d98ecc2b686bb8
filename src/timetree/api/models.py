"""Pydantic models for API requests and responses.

This module defines the data models used for API requests and responses.
All models use Pydantic for automatic validation and serialization.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field  # type: ignore[import-untyped]

from timetree.core.models import RGBColor, TrackingInterval
from timetree.core.timevalue import TimeValue
from timetree.core.timewindow import TimeWindow
from timetree.core.trackables import Project, Trackable

# ============================================================================
# Value Models
# ============================================================================


class ColorModel(BaseModel):
    """RGB color, one 0-255 value per channel."""

    red: int = Field(0, ge=0, le=255)
    green: int = Field(0, ge=0, le=255)
    blue: int = Field(0, ge=0, le=255)

    def to_color(self) -> RGBColor:
        return RGBColor(self.red, self.green, self.blue)

    @classmethod
    def from_color(cls, color: RGBColor) -> "ColorModel":
        return cls(red=color.red, green=color.green, blue=color.blue)


class TimeValueModel(BaseModel):
    """Duration split into hours, minutes and seconds."""

    hours: float = Field(0, ge=0)
    mins: float = Field(0, ge=0)
    seconds: float = Field(0, ge=0)

    def to_time_value(self) -> TimeValue:
        return TimeValue.from_dict(self.model_dump())

    @classmethod
    def from_time_value(cls, value: Optional[TimeValue]) -> "TimeValueModel":
        if value is None:
            return cls()
        return cls(**value.to_dict())

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "TimeValueModel":
        return cls(**(data or {}))


def window_from_query(
    since_seconds: Optional[float], until_seconds: Optional[float]
) -> Optional[TimeWindow]:
    """Build a window from ``since``/``until`` offsets given in seconds."""
    if since_seconds is None and until_seconds is None:
        return None
    return TimeWindow(
        since=TimeValue(since_seconds) if since_seconds is not None else None,
        until=TimeValue(until_seconds) if until_seconds is not None else None,
    )


# ============================================================================
# Response Models
# ============================================================================


class IntervalResponse(BaseModel):
    """Response model for a tracking interval."""

    id: str
    start_time_seconds: float
    end_time_seconds: Optional[float] = None
    state: str
    duration: TimeValueModel
    trackable_id: Optional[str] = None

    @classmethod
    def from_interval(
        cls, interval: TrackingInterval, trackable_id: Optional[str] = None
    ) -> "IntervalResponse":
        """Create response from a TrackingInterval."""
        return cls(
            id=interval.id,
            start_time_seconds=interval.start_time,
            end_time_seconds=interval.end_time,
            state=interval.state.value,
            duration=TimeValueModel.from_time_value(interval.duration()),
            trackable_id=trackable_id,
        )


class TrackableResponse(BaseModel):
    """Response model for an activity or project."""

    id: str
    name: str
    type: str
    tracking_state: str
    color: ColorModel
    tracking_history: list[str] = Field(default_factory=list)
    observers: list[str] = Field(default_factory=list)
    current_interval: Optional[str] = None
    members: Optional[list[str]] = None

    @classmethod
    def from_trackable(cls, trackable: Trackable) -> "TrackableResponse":
        """Create response from an Activity or Project."""
        return cls(
            id=trackable.id,
            name=trackable.name,
            type=trackable.trackable_type.value,
            tracking_state=trackable.tracking_state.value,
            color=ColorModel.from_color(trackable.color),
            tracking_history=[i.id for i in trackable.get_tracking_history()],
            observers=sorted(trackable.observers),
            current_interval=trackable.current_interval_id,
            members=sorted(trackable.members) if isinstance(trackable, Project) else None,
        )


class TrackingResponse(BaseModel):
    """Response model for start/stop."""

    id: str
    name: str
    type: str
    tracking_state: str
    action: str
    status: str
    current_interval_time: Optional[TimeValueModel] = None

    @classmethod
    def from_result(cls, result: dict[str, Any]) -> "TrackingResponse":
        """Create response from a tracker start/stop result."""
        interval_time = result.get("currentIntervalTime")
        return cls(
            id=result["trackableId"],
            name=result["name"],
            type=result["trackableType"],
            tracking_state=result["trackingState"],
            action=result["action"],
            status=result.get("status", "success"),
            current_interval_time=(
                TimeValueModel.from_dict(interval_time) if interval_time else None
            ),
        )


class TotalResponse(BaseModel):
    """Response model for total tracked time."""

    id: str
    name: str
    type: str
    tracked_time: TimeValueModel
    total_seconds: float


class SpanItemResponse(BaseModel):
    """One trackable of a time-span query."""

    id: str
    name: str
    type: str
    tracking_state: str
    selected_intervals: list[IntervalResponse]
    selected_time: TimeValueModel


# ============================================================================
# Request Models
# ============================================================================


class CreateTrackableRequest(BaseModel):
    """Request model for creating an activity or project."""

    name: str = Field(..., min_length=1, max_length=200, description="Unique name")
    color: Optional[ColorModel] = Field(None, description="Display color")


class UpdateTrackableRequest(BaseModel):
    """Request model for renaming and/or recoloring a trackable."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    color: Optional[ColorModel] = None


class MemberRequest(BaseModel):
    """Request model for adding a member to a project."""

    trackable_id: str = Field(..., min_length=1)


class JoinRequest(BaseModel):
    """Request model for merging trackables into one activity."""

    name: str = Field(..., min_length=1, max_length=200, description="Name of the result")
    trackable_ids: list[str] = Field(..., min_length=1, description="Trackables to merge")
    color: Optional[ColorModel] = None
    forget_observers: bool = Field(False, description="Do not add the result to old projects")


class UpdateIntervalRequest(BaseModel):
    """Request model for correcting an interval."""

    start_time_seconds: Optional[float] = Field(None, ge=0)
    end_time_seconds: Optional[float] = Field(None, ge=0)


# ============================================================================
# System Models
# ============================================================================


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status (healthy, degraded, unhealthy)")
    timestamp: datetime = Field(..., description="Current server time")
    version: str = Field(..., description="API version")


class StatusResponse(BaseModel):
    """Response model for system status."""

    api_enabled: bool
    authentication_enabled: bool
    cors_enabled: bool
    active_tracking: bool
    currently_active_trackable: Optional[str] = None
    activity_count: int
    project_count: int
    uptime_seconds: float


# ============================================================================
# Authentication Models
# ============================================================================


class TokenResponse(BaseModel):
    """Response model for authentication token."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiry in seconds")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Machine-readable error code")
