"""Interval endpoints for listing and correcting recorded time."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status  # type: ignore[import-untyped]

from timetree.api.auth import verify_token
from timetree.api.dependencies import get_tracker, require_trackable
from timetree.api.models import IntervalResponse, TimeValueModel, UpdateIntervalRequest
from timetree.core.models import TrackingInterval
from timetree.core.tracker import TimeTracker

router = APIRouter()


def _require_interval(tracker: TimeTracker, interval_id: str) -> TrackingInterval:
    interval = tracker.store.get_tracking_interval(interval_id)
    if interval is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Interval '{interval_id}' not found",
        )
    return interval


def _response(tracker: TimeTracker, interval: TrackingInterval) -> IntervalResponse:
    owner_id = tracker.store.get_corresponding_trackable_of_interval(interval.id)
    return IntervalResponse.from_interval(interval, owner_id)


@router.get("/", response_model=list[IntervalResponse])
async def list_intervals(
    trackable_id: Optional[str] = Query(None, description="Only intervals recorded by this trackable"),
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> list[IntervalResponse]:
    """List intervals, oldest first.

    Example:
        >>> GET /api/v1/intervals?trackable_id=...
    """
    intervals = tracker.store.get_all_tracking_intervals()
    if trackable_id is not None:
        require_trackable(tracker, trackable_id)
        intervals = [
            i
            for i in intervals
            if tracker.store.get_corresponding_trackable_of_interval(i.id) == trackable_id
        ]
    return [_response(tracker, i) for i in sorted(intervals, key=lambda i: i.start_time)]


@router.get("/{interval_id}", response_model=IntervalResponse)
async def get_interval(
    interval_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> IntervalResponse:
    """Get an interval by id."""
    return _response(tracker, _require_interval(tracker, interval_id))


@router.patch("/{interval_id}", response_model=IntervalResponse)
async def update_interval(
    interval_id: str,
    request: UpdateIntervalRequest,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> IntervalResponse:
    """Correct the start and/or end of an interval.

    Raises:
        HTTPException: 404 if not found, 400 if the end would precede the start
    """
    interval = _require_interval(tracker, interval_id)
    start = request.start_time_seconds if request.start_time_seconds is not None else interval.start_time
    end = request.end_time_seconds if request.end_time_seconds is not None else interval.end_time
    if end is not None and end < start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Interval end must not precede its start",
        )

    tracker.set_tracking_interval(
        interval_id, request.start_time_seconds, request.end_time_seconds
    )
    return _response(tracker, interval)


@router.put("/{interval_id}/duration", response_model=IntervalResponse)
async def set_interval_duration(
    interval_id: str,
    request: TimeValueModel,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> IntervalResponse:
    """Resize an interval to a duration, keeping its end.

    An ongoing interval is resized backwards from now.

    Example:
        >>> PUT /api/v1/intervals/{id}/duration
        {"hours": 1, "mins": 30, "seconds": 0}
    """
    interval = _require_interval(tracker, interval_id)
    owner_id = tracker.store.get_corresponding_trackable_of_interval(interval_id)
    if owner_id is None or tracker.set_interval_time(
        owner_id, interval_id, request.to_time_value()
    ) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Interval '{interval_id}' has no owning trackable",
        )
    return _response(tracker, interval)


@router.delete("/{interval_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_interval(
    interval_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> None:
    """Delete an interval from its owner, the owner's projects and the store."""
    _require_interval(tracker, interval_id)
    tracker.delete_interval(interval_id)
