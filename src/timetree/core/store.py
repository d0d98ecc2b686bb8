"""In-memory registry of trackables and tracking intervals."""

import logging
from typing import Any, Iterable, Optional
from uuid import uuid4

from timetree.core.models import TrackingInterval
from timetree.core.timevalue import TimeFormat, TimeValue
from timetree.core.timewindow import TimeWindow
from timetree.core.trackables import Activity, Project, Trackable

logger = logging.getLogger(__name__)

STORE_VERSION = "v.0.3"
STORE_TYPE = "JsonPersistentStore"


class NameConflictError(ValueError):
    """Raised when a name is already registered to another trackable."""

    def __init__(self, name: str, existing_id: str):
        self.name = name
        self.existing_id = existing_id
        super().__init__(f"Name '{name}' is already used by trackable {existing_id}")


class TrackablesStore:
    """Authoritative index of every trackable and interval.

    Keeps the interval table and the interval-to-owner map in step: an interval
    id is in one exactly when it is in the other. Interval ids copied into an
    observer's history by reference are not indexed again.

    Attributes:
        store_id: Unique identifier of the store
        version: Snapshot format version
        store_type: Snapshot format name
        activities: Activity id to Activity
        projects: Project id to Project
        currently_active_trackable_id: The trackable the user is tracking, if any
    """

    def __init__(self, store_id: Optional[str] = None):
        self.store_id = store_id or str(uuid4())
        self.version = STORE_VERSION
        self.store_type = STORE_TYPE
        self.activities: dict[str, Activity] = {}
        self.projects: dict[str, Project] = {}
        self._tracking_intervals: dict[str, TrackingInterval] = {}
        self._intervals_to_trackables: dict[str, str] = {}
        self._names: dict[str, str] = {}
        self._observers: dict[str, set[str]] = {}
        self.currently_active_trackable_id: Optional[str] = None

    # Trackables

    def get_trackable_by_id(self, trackable_id: Optional[str]) -> Optional[Trackable]:
        if trackable_id is None:
            return None
        if trackable_id in self.activities:
            return self.activities[trackable_id]
        return self.projects.get(trackable_id)

    def get_trackable_by_name(self, name: str) -> Optional[Trackable]:
        return self.get_trackable_by_id(self._names.get(name))

    def get_all_trackable_ids(self) -> list[str]:
        return list(self.activities) + list(self.projects)

    def name_is_registered(self, name: str) -> bool:
        return name in self._names

    def _check_name(self, name: str, trackable_id: str) -> None:
        owner = self._names.get(name)
        if owner is not None and owner != trackable_id:
            raise NameConflictError(name, owner)

    def put_trackable(self, trackable: Trackable) -> None:
        """Insert a trackable and register its name.

        Re-putting a trackable under its own name is allowed.

        Raises:
            NameConflictError: If the name belongs to a different id
        """
        self._check_name(trackable.name, trackable.id)

        if isinstance(trackable, Project):
            self.projects[trackable.id] = trackable
        else:
            self.activities[trackable.id] = trackable
        self._names[trackable.name] = trackable.id
        logger.debug(f"Stored {trackable.trackable_type.value} '{trackable.name}' ({trackable.id})")

    def delete_trackable(self, trackable_id: str, delete_tracking_intervals: bool = True) -> None:
        """Remove a trackable and detach it from the hierarchy.

        Absent ids are ignored.

        Args:
            trackable_id: Trackable to delete
            delete_tracking_intervals: Also delete the intervals it owns
        """
        trackable = self.get_trackable_by_id(trackable_id)
        if trackable is None:
            return

        if delete_tracking_intervals:
            owned = [
                interval_id
                for interval_id, owner_id in self._intervals_to_trackables.items()
                if owner_id == trackable_id
            ]
            for interval_id in owned:
                self.delete_tracking_interval(interval_id)

        for observer_id in list(self.get_observers(trackable_id)):
            observer = self.projects.get(observer_id)
            if observer is not None:
                observer.remove_trackable(trackable_id)

        if isinstance(trackable, Project):
            for member_id in list(trackable.members):
                trackable.remove_trackable(member_id)
            self.projects.pop(trackable_id, None)
        else:
            self.activities.pop(trackable_id, None)

        if self._names.get(trackable.name) == trackable_id:
            del self._names[trackable.name]
        self._observers.pop(trackable_id, None)
        if self.currently_active_trackable_id == trackable_id:
            self.currently_active_trackable_id = None
        logger.debug(f"Deleted trackable {trackable_id}")

    def set_trackable_name(self, trackable_id: str, new_name: str) -> Optional[Trackable]:
        """Rename a trackable.

        Returns:
            The renamed trackable, or None if the id is unknown

        Raises:
            NameConflictError: If the name belongs to a different id
        """
        trackable = self.get_trackable_by_id(trackable_id)
        if trackable is None:
            return None
        self._check_name(new_name, trackable_id)

        if self._names.get(trackable.name) == trackable_id:
            del self._names[trackable.name]
        trackable.name = new_name
        self._names[new_name] = trackable_id
        return trackable

    def add_trackable_to_project(self, project_id: str, trackable_id: str) -> bool:
        """Make a trackable a direct member of a project.

        Rejects unknown ids, self-membership, a trackable already below the
        project and a project that is itself below the trackable.

        Returns:
            True if the trackable was added
        """
        project = self.projects.get(project_id)
        trackable = self.get_trackable_by_id(trackable_id)
        if project is None or trackable is None:
            logger.warning(
                f"Cannot add {trackable_id} to {project_id}: project or trackable not found"
            )
            return False
        if project_id == trackable_id:
            logger.warning(f"Cannot add project {project_id} to itself")
            return False
        if self.is_descendant(project_id, trackable_id):
            logger.warning(f"{trackable_id} is already contained in {project_id}")
            return False
        if self.is_descendant(trackable_id, project_id):
            logger.warning(f"Adding {trackable_id} to {project_id} would create a cycle")
            return False
        return project.add_trackable(trackable)

    def is_descendant(self, ancestor_id: str, descendant_id: str) -> bool:
        """Check whether ``descendant_id`` is reachable below ``ancestor_id``."""
        ancestor = self.projects.get(ancestor_id)
        if ancestor is None:
            return False
        return ancestor.get_trackable(descendant_id) is not None and ancestor_id != descendant_id

    def get_total_tracked_time(
        self,
        trackable_id: str,
        window: Optional[TimeWindow] = None,
        time_format: TimeFormat = TimeFormat.HMS,
        now: Optional[float] = None,
    ) -> Optional[TimeValue]:
        trackable = self.get_trackable_by_id(trackable_id)
        if trackable is None:
            return None
        return trackable.get_total_tracked_time(time_format, window, now)

    # Observer index

    def get_observers(self, trackable_id: str) -> set[str]:
        return set(self._observers.get(trackable_id, ()))

    def add_observer(self, trackable_id: str, observer_id: str) -> None:
        self._observers.setdefault(trackable_id, set()).add(observer_id)

    def remove_observer(self, trackable_id: str, observer_id: str) -> None:
        observers = self._observers.get(trackable_id)
        if observers is None:
            return
        observers.discard(observer_id)
        if not observers:
            del self._observers[trackable_id]

    # Intervals

    def add_tracking_interval(self, interval: TrackingInterval, owner_id: str) -> None:
        """Index an interval under its owner unless it is already indexed."""
        if interval.id in self._tracking_intervals or interval.id in self._intervals_to_trackables:
            return
        self._tracking_intervals[interval.id] = interval
        self._intervals_to_trackables[interval.id] = owner_id

    def delete_tracking_interval(self, interval_id: str) -> None:
        self._tracking_intervals.pop(interval_id, None)
        self._intervals_to_trackables.pop(interval_id, None)

    def get_tracking_interval(self, interval_id: Optional[str]) -> Optional[TrackingInterval]:
        if interval_id is None:
            return None
        return self._tracking_intervals.get(interval_id)

    def get_all_tracking_intervals(self) -> list[TrackingInterval]:
        return list(self._tracking_intervals.values())

    def get_corresponding_trackable_of_interval(self, interval_id: str) -> Optional[str]:
        return self._intervals_to_trackables.get(interval_id)

    def get_intervals_to_trackables(self) -> list[dict[str, str]]:
        return [
            {"intervalId": interval_id, "trackableId": owner_id}
            for interval_id, owner_id in self._intervals_to_trackables.items()
        ]

    def transfer_interval_ownership(self, interval_id: str, new_owner_id: str) -> None:
        """Re-point an indexed interval at a new owner."""
        if interval_id in self._intervals_to_trackables:
            self._intervals_to_trackables[interval_id] = new_owner_id

    def set_tracking_history(self, trackable_id: str, intervals: Iterable[TrackingInterval]) -> None:
        """Replace a trackable's own history, indexing any new intervals under it."""
        trackable = self.get_trackable_by_id(trackable_id)
        if trackable is None:
            logger.warning(f"Cannot set tracking history: trackable {trackable_id} not found")
            return
        intervals = list(intervals)
        trackable.set_tracking_history(intervals)
        for interval in intervals:
            self.add_tracking_interval(interval, trackable_id)

    # Hydration

    def set_activities(self, activities: Iterable[Activity]) -> None:
        for activity in activities:
            self._hydrate(activity)

    def set_projects(self, projects: Iterable[Project]) -> None:
        for project in projects:
            self._hydrate(project)

    def _hydrate(self, trackable: Trackable) -> None:
        try:
            self.put_trackable(trackable)
        except NameConflictError as e:
            logger.warning(f"Skipping {trackable.id} while loading: {e}")

    def set_tracking_intervals(self, snapshot: dict[str, Any]) -> None:
        for record in snapshot.get("trackingIntervals") or []:
            interval = TrackingInterval.from_dict(record)
            self._tracking_intervals[interval.id] = interval

    def set_intervals_to_trackables(self, snapshot: dict[str, Any]) -> None:
        for pair in snapshot.get("intervalsToTrackables") or []:
            interval_id = pair.get("intervalId") if isinstance(pair, dict) else None
            owner_id = pair.get("trackableId") if isinstance(pair, dict) else None
            if not interval_id or not owner_id:
                logger.warning(f"Invalid interval/trackable pair {pair!r}, skipping")
                continue
            self._intervals_to_trackables.setdefault(interval_id, owner_id)
