"""Trackable endpoints.

This module exposes activities and projects: creation and editing, tracking
control (start/stop), project membership, join and conversion, plus total
time and time-span queries.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status  # type: ignore[import-untyped]

from timetree.api.auth import verify_token
from timetree.api.dependencies import get_tracker, require_project, require_trackable
from timetree.api.models import (
    CreateTrackableRequest,
    IntervalResponse,
    JoinRequest,
    MemberRequest,
    SpanItemResponse,
    TimeValueModel,
    TotalResponse,
    TrackableResponse,
    TrackingResponse,
    UpdateTrackableRequest,
    window_from_query,
)
from timetree.core.models import TrackableType
from timetree.core.trackables import Project, Trackable
from timetree.core.tracker import TimeTracker

router = APIRouter()

SINCE_QUERY = Query(None, ge=0, description="Window start, in seconds before now")
UNTIL_QUERY = Query(None, ge=0, description="Window end, in seconds before now")


def _all_trackables(tracker: TimeTracker) -> list[Trackable]:
    trackables: list[Trackable] = list(tracker.store.activities.values())
    trackables.extend(tracker.store.projects.values())
    return sorted(trackables, key=lambda t: t.name.lower())


def _response_for(tracker: TimeTracker, result: Optional[dict[str, Any]]) -> TrackableResponse:
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Restructuring failed, see server log",
        )
    return TrackableResponse.from_trackable(require_trackable(tracker, result["id"]))


@router.get("/", response_model=list[TrackableResponse])
async def list_trackables(
    type: Optional[TrackableType] = Query(None, description="Only list this type"),
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> list[TrackableResponse]:
    """List activities and projects, sorted by name.

    Example:
        >>> GET /api/v1/trackables?type=project
    """
    trackables = _all_trackables(tracker)
    if type is not None:
        trackables = [t for t in trackables if t.trackable_type is type]
    return [TrackableResponse.from_trackable(t) for t in trackables]


@router.get("/active", response_model=Optional[TrackableResponse])
async def get_active_trackable(
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> Optional[TrackableResponse]:
    """Get the currently active activity, or null."""
    active_id = tracker.currently_active_trackable_id
    trackable = tracker.get_trackable(active_id) if active_id else None
    if trackable is None:
        return None
    return TrackableResponse.from_trackable(trackable)


@router.get("/span", response_model=list[SpanItemResponse])
async def get_time_span(
    since_seconds: Optional[float] = SINCE_QUERY,
    until_seconds: Optional[float] = UNTIL_QUERY,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> list[SpanItemResponse]:
    """List trackables whose own intervals overlap a window.

    Intervals are returned whole, grouped by the trackable that recorded them.

    Example:
        >>> GET /api/v1/trackables/span?since_seconds=21600
    """
    window = window_from_query(since_seconds, until_seconds)
    selection = tracker.get_trackables_within_time_span(
        window if window is not None else {"since": None, "until": None}
    )

    return [
        SpanItemResponse(
            id=item["trackableId"],
            name=item["name"],
            type=item["trackableType"],
            tracking_state=item["trackingState"],
            selected_intervals=[
                IntervalResponse.from_interval(interval, item["trackableId"])
                for interval in (
                    tracker.store.get_tracking_interval(record["id"])
                    for record in item["selectedIntervals"]
                )
                if interval is not None
            ],
            selected_time=TimeValueModel.from_dict(item["selectedTime"]),
        )
        for item in selection
    ]


@router.post("/activities", response_model=TrackableResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    request: CreateTrackableRequest,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackableResponse:
    """Create an activity.

    Raises:
        HTTPException: 409 if the name is taken
    """
    color = request.color.to_color() if request.color else None
    activity = tracker.create_and_return_activity(request.name, color)
    return TrackableResponse.from_trackable(activity)


@router.post("/projects", response_model=TrackableResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateTrackableRequest,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackableResponse:
    """Create an empty project.

    Raises:
        HTTPException: 409 if the name is taken
    """
    color = request.color.to_color() if request.color else None
    project = tracker.create_and_return_project(request.name, color)
    return TrackableResponse.from_trackable(project)


@router.post("/join", response_model=TrackableResponse, status_code=status.HTTP_201_CREATED)
async def join_trackables(
    request: JoinRequest,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackableResponse:
    """Merge trackables into one new activity holding all their intervals.

    Raises:
        HTTPException: 404 if a trackable is unknown, 409 if the name is taken
    """
    for trackable_id in request.trackable_ids:
        require_trackable(tracker, trackable_id)
    if tracker.store.name_is_registered(request.name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Name '{request.name}' is already in use",
        )

    color = request.color.to_color() if request.color else None
    result = tracker.join_trackables(
        request.name, request.trackable_ids, color, request.forget_observers
    )
    return _response_for(tracker, result)


@router.get("/{trackable_id}", response_model=TrackableResponse)
async def get_trackable(
    trackable_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackableResponse:
    """Get a trackable by id."""
    return TrackableResponse.from_trackable(require_trackable(tracker, trackable_id))


@router.patch("/{trackable_id}", response_model=TrackableResponse)
async def update_trackable(
    trackable_id: str,
    request: UpdateTrackableRequest,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackableResponse:
    """Rename and/or recolor a trackable.

    Raises:
        HTTPException: 404 if not found, 409 if the new name is taken
    """
    trackable = require_trackable(tracker, trackable_id)

    if request.name is not None and request.name != trackable.name:
        result = tracker.rename_trackable(trackable_id, request.name)
        if "error" in result:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result["error"])
    if request.color is not None:
        tracker.recolor_trackable(trackable_id, request.color.to_color())

    return TrackableResponse.from_trackable(trackable)


@router.delete("/{trackable_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trackable(
    trackable_id: str,
    keep_intervals: bool = Query(False, description="Keep the recorded intervals"),
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> None:
    """Delete a trackable and, unless kept, the intervals it recorded."""
    require_trackable(tracker, trackable_id)
    tracker.delete_trackable(trackable_id, delete_tracking_intervals=not keep_intervals)


@router.post("/{trackable_id}/start", response_model=TrackingResponse)
async def start_tracking(
    trackable_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackingResponse:
    """Start tracking. Whatever was active before is stopped.

    Example:
        >>> POST /api/v1/trackables/{id}/start
        {"id": "...", "action": "startTracking", "status": "success", ...}
    """
    require_trackable(tracker, trackable_id)
    return TrackingResponse.from_result(tracker.start_trackable(trackable_id))


@router.post("/{trackable_id}/stop", response_model=TrackingResponse)
async def stop_tracking(
    trackable_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackingResponse:
    """Stop tracking. Stopping an inactive trackable changes nothing."""
    require_trackable(tracker, trackable_id)
    return TrackingResponse.from_result(tracker.stop_trackable(trackable_id))


@router.get("/{trackable_id}/total", response_model=TotalResponse)
async def get_total(
    trackable_id: str,
    since_seconds: Optional[float] = SINCE_QUERY,
    until_seconds: Optional[float] = UNTIL_QUERY,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TotalResponse:
    """Total tracked time, clipped to a window when one is given.

    Example:
        >>> GET /api/v1/trackables/{id}/total?since_seconds=3600
    """
    require_trackable(tracker, trackable_id)
    result = tracker.get_total_tracked_time(
        trackable_id, window_from_query(since_seconds, until_seconds)
    )
    return TotalResponse(
        id=result["trackableId"],
        name=result["name"],
        type=result["trackableType"],
        tracked_time=TimeValueModel.from_dict(result["trackedTime"]),
        total_seconds=result["totalSeconds"],
    )


@router.get("/{trackable_id}/intervals", response_model=list[IntervalResponse])
async def list_trackable_intervals(
    trackable_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> list[IntervalResponse]:
    """List the history of a trackable, oldest first.

    A project's history includes the intervals copied from its members.
    """
    trackable = require_trackable(tracker, trackable_id)
    store = tracker.store
    return [
        IntervalResponse.from_interval(
            interval, store.get_corresponding_trackable_of_interval(interval.id)
        )
        for interval in trackable.get_tracking_history()
    ]


@router.get("/{trackable_id}/members", response_model=list[TrackableResponse])
async def list_members(
    trackable_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> list[TrackableResponse]:
    """List the direct members of a project."""
    project = require_project(tracker, trackable_id)
    return [TrackableResponse.from_trackable(member) for member in project.get_trackables()]


@router.post(
    "/{trackable_id}/members", response_model=TrackableResponse, status_code=status.HTTP_201_CREATED
)
async def add_member(
    trackable_id: str,
    request: MemberRequest,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackableResponse:
    """Add a trackable to a project.

    Raises:
        HTTPException: 404 if either is unknown, 400 if the membership is
            rejected (self, duplicate or cycle)
    """
    project = require_project(tracker, trackable_id)
    member = require_trackable(tracker, request.trackable_id)
    if not tracker.add_trackable_to_project(project.id, member.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot add '{member.name}' to '{project.name}'",
        )
    return TrackableResponse.from_trackable(project)


@router.delete("/{trackable_id}/members/{member_id}", response_model=TrackableResponse)
async def remove_member(
    trackable_id: str,
    member_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackableResponse:
    """Remove a trackable from a project."""
    project = require_project(tracker, trackable_id)
    if member_id not in project.members:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"'{member_id}' is not a member of '{project.name}'",
        )
    tracker.remove_trackables_from_project(project.id, [member_id])
    return TrackableResponse.from_trackable(project)


@router.post("/{trackable_id}/convert", response_model=TrackableResponse)
async def convert_trackable(
    trackable_id: str,
    tracker: TimeTracker = Depends(get_tracker),
    _: dict[str, Any] = Depends(verify_token),
) -> TrackableResponse:
    """Turn an activity into a project, or a project into an activity.

    Converting an activity keeps its intervals in a member named
    ``<name>_inherited_tracking_intervals``.
    """
    trackable = require_trackable(tracker, trackable_id)
    if isinstance(trackable, Project):
        result = tracker.convert_project_to_activity(trackable_id)
    else:
        result = tracker.convert_activity_to_project(trackable_id)
    return _response_for(tracker, result)
