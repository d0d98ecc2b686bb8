"""Core time tracking engine."""

import logging
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any, Iterable, Optional, Union

from timetree.core import restructure
from timetree.core.models import (
    RGBColor,
    TrackingInterval,
    TrackingState,
    current_time_seconds,
)
from timetree.core.storage import StorageManager
from timetree.core.store import TrackablesStore
from timetree.core.timevalue import TimeFormat, TimeValue
from timetree.core.timewindow import TimeWindow
from timetree.core.trackables import Activity, Project, Trackable

logger = logging.getLogger(__name__)

ColorLike = Union[RGBColor, Mapping[str, Any], None]
WindowLike = Union[TimeWindow, Mapping[str, Any], None]


def _to_color(color: ColorLike) -> RGBColor:
    if isinstance(color, RGBColor):
        return color
    return RGBColor.from_dict(dict(color) if color else None)


def _to_window(window: WindowLike) -> Optional[TimeWindow]:
    if window is None or isinstance(window, TimeWindow):
        return window
    return TimeWindow.from_dict(window)


class TimeTracker:
    """Drives the trackable hierarchy and persists after every change."""

    def __init__(self, storage: Optional[StorageManager] = None):
        """Initialize time tracker.

        Args:
            storage: Storage manager instance. Creates default if None.
        """
        self.storage = storage or StorageManager()

    @property
    def store(self) -> TrackablesStore:
        return self.storage.store

    # Persistence

    def save_store(self) -> "Future[bool]":
        return self.storage.save()

    def load_store(self) -> bool:
        return self.storage.load()

    def serialize_store(self) -> str:
        return self.storage.serialize()

    def close(self) -> None:
        self.storage.flush()
        self.storage.close()

    # Lookup

    def get_trackable(self, trackable_id: str) -> Optional[Trackable]:
        return self.store.get_trackable_by_id(trackable_id)

    def resolve(self, name_or_id: str) -> Optional[Trackable]:
        """Find a trackable by id, falling back to its name."""
        return self.store.get_trackable_by_id(name_or_id) or self.store.get_trackable_by_name(
            name_or_id
        )

    @property
    def currently_active_trackable_id(self) -> Optional[str]:
        return self.store.currently_active_trackable_id

    def get_basic_trackable_info(self, target: Union[str, Trackable]) -> dict[str, Any]:
        """Summarize a trackable.

        Args:
            target: Trackable or its id

        Returns:
            Dictionary with name, type, tracking state and id
        """
        trackable = self.store.get_trackable_by_id(target) if isinstance(target, str) else target
        if trackable is None:
            raise ValueError(f"Trackable {target} does not exist in store {self.store.store_id}")
        return {
            "name": trackable.name,
            "trackableType": trackable.trackable_type.value,
            "trackingState": trackable.tracking_state.value,
            "trackableId": trackable.id,
        }

    def get_activity_objects(self) -> list[dict[str, Any]]:
        return [activity.to_dict() for activity in self.store.activities.values()]

    def get_project_objects(self) -> list[dict[str, Any]]:
        return [project.to_dict() for project in self.store.projects.values()]

    def get_project_trackables(self, project_id: str) -> list[dict[str, Any]]:
        """Describe the direct members of a project.

        Returns:
            One dictionary per member; empty if the project does not exist
        """
        project = self.store.projects.get(project_id)
        if project is None:
            return []
        members = []
        for trackable in project.get_trackables():
            record: dict[str, Any] = {
                "id": trackable.id,
                "type": trackable.trackable_type.value,
                "name": trackable.name,
                "color": trackable.color.to_dict(),
                "trackingHistory": [i.id for i in trackable.get_tracking_history()],
            }
            if isinstance(trackable, Project):
                record["trackablesIds"] = sorted(trackable.members)
            members.append(record)
        return members

    def get_tracking_intervals(self, trackable_id: str) -> list[dict[str, Any]]:
        trackable = self.store.get_trackable_by_id(trackable_id)
        if trackable is None:
            return []
        return [interval.to_dict() for interval in trackable.get_tracking_history()]

    # Creation

    def create_activity(self, name: str, color: ColorLike = None) -> str:
        """Create a new activity.

        Raises:
            NameConflictError: If the name is already taken
        """
        activity = Activity(store=self.store, name=name, color=_to_color(color))
        self.store.put_trackable(activity)
        logger.info(f"Created activity '{name}' ({activity.id})")
        self.save_store()
        return activity.id

    def create_project(self, name: str, color: ColorLike = None) -> str:
        """Create a new, empty project.

        Raises:
            NameConflictError: If the name is already taken
        """
        project = Project.create(self.store, name, _to_color(color))
        self.store.put_trackable(project)
        logger.info(f"Created project '{name}' ({project.id})")
        self.save_store()
        return project.id

    def create_and_return_activity(self, name: str, color: ColorLike = None) -> Activity:
        return self.store.activities[self.create_activity(name, color)]

    def create_and_return_project(self, name: str, color: ColorLike = None) -> Project:
        return self.store.projects[self.create_project(name, color)]

    # Tracking

    def start_trackable(self, trackable_id: str, now: Optional[float] = None) -> dict[str, Any]:
        """Start tracking a trackable.

        A different currently active trackable is stopped first. Only an
        activity becomes the currently active trackable.

        Args:
            trackable_id: Trackable to start
            now: Start time (defaults to the clock)

        Returns:
            Basic trackable info with ``action`` and ``status``
        """
        trackable = self.store.get_trackable_by_id(trackable_id)
        if trackable is None:
            msg = f"failed to start trackable {trackable_id}: not in store {self.store.store_id}"
            logger.warning(msg)
            return {"status": "error", "msg": msg}

        if now is None:
            now = current_time_seconds()
        active_id = self.store.currently_active_trackable_id
        if active_id != trackable_id or trackable.tracking_state is TrackingState.INACTIVE:
            active = self.store.get_trackable_by_id(active_id)
            if active is not None and active_id != trackable_id:
                active.stop_tracking(now)
            if isinstance(trackable, Activity):
                self.store.currently_active_trackable_id = trackable_id
            trackable.start_tracking(now)
            status = "success"
            logger.info(f"Started tracking '{trackable.name}'")
        else:
            status = f"already tracking trackable {trackable_id}"

        self.save_store()
        result = self.get_basic_trackable_info(trackable)
        result["action"] = "startTracking"
        result["status"] = status
        return result

    def stop_trackable(self, trackable_id: str, now: Optional[float] = None) -> dict[str, Any]:
        """Stop tracking a trackable.

        Returns:
            Basic trackable info with ``action`` and ``currentIntervalTime``
        """
        trackable = self.store.get_trackable_by_id(trackable_id)
        if trackable is None:
            msg = f"failed to stop trackable {trackable_id}: not in store {self.store.store_id}"
            logger.warning(msg)
            return {"status": "error", "msg": msg}

        trackable.stop_tracking(now)
        if self.store.currently_active_trackable_id == trackable_id:
            self.store.currently_active_trackable_id = None
        logger.info(f"Stopped tracking '{trackable.name}'")
        self.save_store()

        current = trackable.get_current_interval()
        result = self.get_basic_trackable_info(trackable)
        result["action"] = "stopTracking"
        result["currentIntervalTime"] = current.duration(now=now).to_dict() if current else None
        return result

    # Structure

    def add_trackable_to_project(self, project_id: str, trackable_id: str) -> bool:
        added = self.store.add_trackable_to_project(project_id, trackable_id)
        if added:
            self.save_store()
        return added

    def remove_trackables_from_project(self, project_id: str, trackable_ids: Iterable[str]) -> bool:
        project = self.store.projects.get(project_id)
        if project is None:
            logger.warning(f"Project {project_id} does not exist in store {self.store.store_id}")
            return False
        for trackable_id in trackable_ids:
            project.remove_trackable(trackable_id)
        self.save_store()
        return True

    def delete_trackable(self, trackable_id: str, delete_tracking_intervals: bool = True) -> bool:
        """Delete a trackable.

        Returns:
            True if the trackable existed
        """
        if self.store.get_trackable_by_id(trackable_id) is None:
            return False
        self.store.delete_trackable(trackable_id, delete_tracking_intervals)
        self.save_store()
        return True

    def delete_interval(self, interval_id: str) -> bool:
        """Delete an interval from its owner, the owner's parents and the store.

        Returns:
            True if the interval existed
        """
        if self.store.get_tracking_interval(interval_id) is None:
            return False
        owner = self.store.get_trackable_by_id(
            self.store.get_corresponding_trackable_of_interval(interval_id)
        )
        if owner is not None:
            owner.delete_interval(interval_id)
        self.store.delete_tracking_interval(interval_id)
        self.save_store()
        return True

    def join_trackables(
        self,
        name: str,
        trackable_ids: list[str],
        color: ColorLike = None,
        observers_should_forget: bool = False,
    ) -> Optional[dict[str, Any]]:
        joined = restructure.join_trackables(
            self.store,
            name,
            trackable_ids,
            _to_color(color) if color is not None else None,
            observers_should_forget,
        )
        self.save_store()
        return joined.to_dict() if joined is not None else None

    def convert_activity_to_project(self, activity_id: str) -> Optional[dict[str, Any]]:
        project = restructure.convert_activity_to_project(self.store, activity_id)
        if project is None:
            return None
        self.save_store()
        return project.to_dict()

    def convert_project_to_activity(self, project_id: str) -> Optional[dict[str, Any]]:
        activity = restructure.convert_project_to_activity(self.store, project_id)
        if activity is None:
            return None
        self.save_store()
        return activity.to_dict()

    # Editing

    def rename_trackable(self, trackable_id: str, new_name: str) -> dict[str, Any]:
        if self.store.name_is_registered(new_name):
            return {
                "error": f"name {new_name} is already associated with a trackable",
                "name": new_name,
            }
        trackable = self.store.set_trackable_name(trackable_id, new_name)
        if trackable is None:
            return {"status": "error", "msg": f"trackable {trackable_id} does not exist"}
        self.save_store()
        return self.get_basic_trackable_info(trackable)

    def recolor_trackable(self, trackable_id: str, color: ColorLike) -> dict[str, Any]:
        trackable = self.store.get_trackable_by_id(trackable_id)
        if trackable is None:
            return {"status": "error", "msg": f"trackable {trackable_id} does not exist"}
        trackable.color = _to_color(color)
        self.save_store()
        result = self.get_basic_trackable_info(trackable)
        result["color"] = trackable.color.to_dict()
        return result

    def set_interval_time(
        self,
        trackable_id: str,
        interval_id: str,
        time_value: Union[TimeValue, Mapping[str, Any]],
        now: Optional[float] = None,
    ) -> Optional[dict[str, Any]]:
        """Resize an interval of a trackable, keeping its end.

        Returns:
            The updated interval, or None if the trackable or interval is unknown
        """
        trackable = self.store.get_trackable_by_id(trackable_id)
        if trackable is None:
            return None
        if not isinstance(time_value, TimeValue):
            time_value = TimeValue.from_dict(time_value)
        interval = trackable.set_interval_time(interval_id, time_value, now)
        if interval is None:
            return None
        self.save_store()
        return interval.to_dict()

    def set_current_interval_time(
        self,
        trackable_id: str,
        time_value: Union[TimeValue, Mapping[str, Any]],
        now: Optional[float] = None,
    ) -> Optional[dict[str, Any]]:
        """Resize the current interval of a trackable.

        Raises:
            ValueError: If the trackable does not exist
        """
        trackable = self.store.get_trackable_by_id(trackable_id)
        if trackable is None:
            raise ValueError(f"trackable {trackable_id} doesn't exist in the store")
        if trackable.current_interval_id is None:
            return None
        return self.set_interval_time(trackable_id, trackable.current_interval_id, time_value, now)

    def set_tracking_interval(
        self,
        interval_id: str,
        start_time: Optional[float] = None,
        end_time: Optional[float] = None,
    ) -> Optional[dict[str, Any]]:
        """Correct the start and/or end of an interval.

        Returns:
            The updated interval, or None if it does not exist
        """
        interval = self.store.get_tracking_interval(interval_id)
        if interval is None:
            return None
        interval.set_fields(start_time=start_time, end_time=end_time)
        self.save_store()
        return interval.to_dict()

    def set_tracking_history(self, trackable_id: str, intervals: Iterable[TrackingInterval]) -> None:
        """Replace a trackable's history and give its parents the same history."""
        trackable = self.store.get_trackable_by_id(trackable_id)
        if trackable is None:
            logger.warning(f"Cannot set tracking history: trackable {trackable_id} not found")
            return
        intervals = list(intervals)
        self.store.set_tracking_history(trackable_id, intervals)
        for observer_id in trackable.observers:
            self.store.set_tracking_history(observer_id, intervals)
        self.save_store()

    # Queries

    def get_total_tracked_time(
        self,
        trackable_id: str,
        window: WindowLike = None,
        time_format: TimeFormat = TimeFormat.HMS,
        now: Optional[float] = None,
    ) -> dict[str, Any]:
        """Total tracked time of a trackable, optionally inside a window.

        Returns:
            Basic trackable info with ``trackedTime``

        Raises:
            ValueError: If the trackable does not exist
        """
        result = self.get_basic_trackable_info(trackable_id)
        total = self.store.get_total_tracked_time(trackable_id, _to_window(window), time_format, now)
        result["trackedTime"] = total.to_dict() if total is not None else None
        result["totalSeconds"] = total.total_seconds if total is not None else 0
        return result

    def get_trackables_within_time_span(
        self, window: Any, now: Optional[float] = None
    ) -> list[dict[str, Any]]:
        """List trackables owning intervals that overlap a window.

        Intervals are returned whole (not clipped) and grouped by the
        trackable that recorded them. Anything other than a mapping or a
        TimeWindow returns every trackable.

        Args:
            window: ``{since?: {...}, until?: {...}}`` or a TimeWindow
            now: Reference time (defaults to the clock)

        Returns:
            Basic info per trackable with ``selectedIntervals`` and ``selectedTime``
        """
        if not isinstance(window, (Mapping, TimeWindow)):
            return [
                self.get_basic_trackable_info(trackable_id)
                for trackable_id in self.store.get_all_trackable_ids()
            ]

        if now is None:
            now = current_time_seconds()
        resolved = _to_window(window).resolve(now)  # type: ignore[union-attr]

        grouped: dict[str, list[TrackingInterval]] = {}
        for interval in self.store.get_all_tracking_intervals():
            if not resolved.includes(interval):
                continue
            owner_id = self.store.get_corresponding_trackable_of_interval(interval.id)
            if owner_id is None or self.store.get_trackable_by_id(owner_id) is None:
                logger.debug(f"Interval {interval.id} has no owner in the store, skipping")
                continue
            grouped.setdefault(owner_id, []).append(interval)

        results = []
        for owner_id, intervals in grouped.items():
            info = self.get_basic_trackable_info(owner_id)
            intervals.sort(key=lambda i: i.start_time)
            info["selectedIntervals"] = [interval.to_dict() for interval in intervals]
            info["selectedTime"] = TimeValue.add_multiple(
                *(interval.duration(now=now) for interval in intervals)
            ).to_dict()
            results.append(info)
        return results
