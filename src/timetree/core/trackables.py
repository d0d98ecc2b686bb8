"""Activities and projects: the things time is recorded against.

An :class:`Activity` owns a set of interval ids and at most one current
interval. A :class:`Project` carries an owned Activity as its own tracking
identity plus a set of member ids, and forwards identity, naming, coloring,
interval history and observer bookkeeping to that activity explicitly.

Observer ids (projects that directly contain a trackable) are not stored on
the trackable itself; they live in the store's observer index.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union
from uuid import uuid4

from timetree.core.models import (
    RGBColor,
    TrackableType,
    TrackingInterval,
    TrackingState,
    current_time_seconds,
)
from timetree.core.timevalue import TimeFormat, TimeValue
from timetree.core.timewindow import TimeWindow

if TYPE_CHECKING:
    from timetree.core.store import TrackablesStore

logger = logging.getLogger(__name__)


@dataclass
class Activity:
    """A leaf trackable.

    Attributes:
        store: Store the activity is registered in
        name: Store-unique display name
        color: Display color
        id: Unique identifier
        tracking_history: Ids of intervals recorded against the activity
        current_interval_id: Id of the interval started last, if any
    """

    store: "TrackablesStore" = field(repr=False, compare=False)
    name: str = "NoName"
    color: RGBColor = field(default_factory=RGBColor)
    id: str = field(default_factory=lambda: str(uuid4()))
    tracking_history: set[str] = field(default_factory=set)
    current_interval_id: Optional[str] = None

    @property
    def trackable_type(self) -> TrackableType:
        return TrackableType.ACTIVITY

    @property
    def observers(self) -> set[str]:
        """Ids of the projects that directly contain this activity."""
        return self.store.get_observers(self.id)

    def add_observer(self, observer_id: str) -> None:
        self.store.add_observer(self.id, observer_id)

    def remove_observer(self, observer_id: str) -> None:
        self.store.remove_observer(self.id, observer_id)

    def _observer_trackables(self) -> list["Trackable"]:
        observers = []
        for observer_id in self.observers:
            observer = self.store.get_trackable_by_id(observer_id)
            if observer is None:
                logger.debug(f"Observer {observer_id} of {self.id} is not in the store")
                continue
            observers.append(observer)
        return observers

    # Interval history

    def get_tracking_history(self) -> list[TrackingInterval]:
        """Resolve own history to intervals, oldest first.

        Ids that are no longer in the store are skipped.
        """
        intervals = []
        for interval_id in self.tracking_history:
            interval = self.store.get_tracking_interval(interval_id)
            if interval is not None:
                intervals.append(interval)
        intervals.sort(key=lambda i: i.start_time)
        return intervals

    def set_tracking_history(self, intervals: Iterable[TrackingInterval]) -> None:
        self.tracking_history = {interval.id for interval in intervals}

    def add_interval_to_history(self, interval: TrackingInterval) -> None:
        """Record an interval id in own history and index it under this activity.

        Intervals that are already indexed keep their original owner.
        """
        self.tracking_history.add(interval.id)
        self.store.add_tracking_interval(interval, self.id)

    def get_tracking_interval(self, interval_id: str) -> Optional[TrackingInterval]:
        if interval_id not in self.tracking_history:
            return None
        return self.store.get_tracking_interval(interval_id)

    def get_current_interval(self) -> Optional[TrackingInterval]:
        if self.current_interval_id is None:
            return None
        return self.store.get_tracking_interval(self.current_interval_id)

    @property
    def tracking_state(self) -> TrackingState:
        current = self.get_current_interval()
        return current.state if current is not None else TrackingState.INACTIVE

    # Tracking lifecycle

    def start_tracking(self, now: Optional[float] = None) -> Optional[float]:
        """Open a new interval and start every observer.

        Does nothing if the current interval is already active.

        Args:
            now: Start time (defaults to the clock); passed unchanged to observers

        Returns:
            The start time, or None if tracking was already active
        """
        if self.tracking_state is TrackingState.ACTIVE:
            return None
        if now is None:
            now = current_time_seconds()

        interval = TrackingInterval.begin(now)
        self.current_interval_id = interval.id
        self.add_interval_to_history(interval)

        for observer in self._observer_trackables():
            observer.start_tracking(now)
        return now

    def stop_tracking(self, now: Optional[float] = None) -> None:
        """Close the current interval and stop every observer.

        Does nothing if there is no current interval or it is already closed.
        """
        current = self.get_current_interval()
        if current is None or current.state is TrackingState.INACTIVE:
            return
        if now is None:
            now = current_time_seconds()

        current.finish(now)

        for observer in self._observer_trackables():
            observer.stop_tracking(now)

    def set_interval_time(
        self, interval_id: str, time_value: TimeValue, now: Optional[float] = None
    ) -> Optional[TrackingInterval]:
        """Move an interval's start so its duration equals ``time_value``.

        The interval stays anchored at its end, or at ``now`` while open.

        Returns:
            The updated interval, or None if it is not in own history
        """
        interval = self.get_tracking_interval(interval_id)
        if interval is None:
            return None
        if interval.end_time is not None:
            anchor = interval.end_time
        else:
            anchor = current_time_seconds() if now is None else now
        interval.start_time = anchor - time_value.total_seconds
        return interval

    def delete_interval(self, interval_id: str) -> None:
        """Forget an interval here, in every observer, and in the store."""
        self.tracking_history.discard(interval_id)
        if self.current_interval_id == interval_id:
            self.current_interval_id = None

        for observer in self._observer_trackables():
            observer.delete_interval(interval_id)

        self.store.delete_tracking_interval(interval_id)

    # Lookup and aggregation

    def get_trackable(self, search_id: str) -> Optional["Trackable"]:
        if search_id != self.id:
            return None
        return self.store.get_trackable_by_id(self.id) or self

    def get_total_tracked_time(
        self,
        time_format: TimeFormat = TimeFormat.HMS,
        window: Optional[TimeWindow] = None,
        now: Optional[float] = None,
    ) -> TimeValue:
        """Sum the durations of every interval in own history.

        Args:
            time_format: Format of the result
            window: Optional window; intervals outside it are skipped and
                intervals straddling its lower bound are clipped
            now: Reference time (defaults to the clock)

        Returns:
            Total tracked time
        """
        if now is None:
            now = current_time_seconds()
        intervals = self.get_tracking_history()

        if window is not None:
            resolved = window.resolve(now)
            intervals = [resolved.clip(i) for i in intervals if resolved.includes(i)]

        return TimeValue.add_multiple(
            *(interval.duration(time_format, now) for interval in intervals),
            time_format=time_format,
        )

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color.to_dict(),
            "trackingHistory": sorted(self.tracking_history),
            "observers": sorted(self.observers),
            "currentInterval": self.current_interval_id,
        }

    @classmethod
    def from_dict(cls, store: "TrackablesStore", data: dict[str, Any]) -> "Activity":
        """Create Activity from dictionary (JSON deserialization).

        Observer ids in ``data`` are merged into the store's observer index.
        """
        activity = cls(
            store=store,
            name=data.get("name") or "NoName",
            color=RGBColor.from_dict(data.get("color")),
            id=data.get("id") or str(uuid4()),
            tracking_history=set(data.get("trackingHistory") or []),
            current_interval_id=data.get("currentInterval") or None,
        )
        for observer_id in data.get("observers") or []:
            store.add_observer(activity.id, observer_id)
        return activity

    def copy(self) -> "Activity":
        return Activity.from_dict(self.store, self.to_dict())


@dataclass
class Project:
    """A composite trackable.

    Its own tracking identity is an owned :class:`Activity`; time recorded
    against a project's members is aggregated live from the current member set.

    Attributes:
        activity: Owned identity and tracking record
        members: Ids of the direct members
    """

    activity: Activity
    members: set[str] = field(default_factory=set)

    @classmethod
    def create(
        cls,
        store: "TrackablesStore",
        name: str = "NoName",
        color: Optional[RGBColor] = None,
        project_id: Optional[str] = None,
    ) -> "Project":
        """Build an empty project with a fresh owned activity."""
        activity = Activity(store=store, name=name, color=color or RGBColor())
        if project_id is not None:
            activity.id = project_id
        return cls(activity=activity)

    @property
    def trackable_type(self) -> TrackableType:
        return TrackableType.PROJECT

    # Delegated identity

    @property
    def id(self) -> str:
        return self.activity.id

    @property
    def store(self) -> "TrackablesStore":
        return self.activity.store

    @property
    def name(self) -> str:
        return self.activity.name

    @name.setter
    def name(self, value: str) -> None:
        self.activity.name = value

    @property
    def color(self) -> RGBColor:
        return self.activity.color

    @color.setter
    def color(self, value: RGBColor) -> None:
        self.activity.color = value

    @property
    def tracking_history(self) -> set[str]:
        return self.activity.tracking_history

    @property
    def current_interval_id(self) -> Optional[str]:
        return self.activity.current_interval_id

    @current_interval_id.setter
    def current_interval_id(self, value: Optional[str]) -> None:
        self.activity.current_interval_id = value

    @property
    def observers(self) -> set[str]:
        return self.activity.observers

    def add_observer(self, observer_id: str) -> None:
        self.activity.add_observer(observer_id)

    def remove_observer(self, observer_id: str) -> None:
        self.activity.remove_observer(observer_id)

    # Delegated interval history

    def get_tracking_history(self) -> list[TrackingInterval]:
        return self.activity.get_tracking_history()

    def set_tracking_history(self, intervals: Iterable[TrackingInterval]) -> None:
        self.activity.set_tracking_history(intervals)

    def add_interval_to_history(self, interval: TrackingInterval) -> None:
        self.activity.add_interval_to_history(interval)

    def get_tracking_interval(self, interval_id: str) -> Optional[TrackingInterval]:
        return self.activity.get_tracking_interval(interval_id)

    def get_current_interval(self) -> Optional[TrackingInterval]:
        return self.activity.get_current_interval()

    @property
    def tracking_state(self) -> TrackingState:
        return self.activity.tracking_state

    def start_tracking(self, now: Optional[float] = None) -> Optional[float]:
        return self.activity.start_tracking(now)

    def stop_tracking(self, now: Optional[float] = None) -> None:
        self.activity.stop_tracking(now)

    def set_interval_time(
        self, interval_id: str, time_value: TimeValue, now: Optional[float] = None
    ) -> Optional[TrackingInterval]:
        return self.activity.set_interval_time(interval_id, time_value, now)

    def delete_interval(self, interval_id: str) -> None:
        self.activity.delete_interval(interval_id)

    # Membership

    def add_trackable(self, member: "Trackable") -> bool:
        """Add a direct member.

        The member's current history is copied into this project's own
        history by reference. Ancestors of this project are not updated.

        Args:
            member: Trackable to add

        Returns:
            True if added, False if it is this project or already a member
        """
        if member.id == self.id or member.id in self.members:
            return False

        member.add_observer(self.id)
        self.members.add(member.id)
        for interval in member.get_tracking_history():
            self.add_interval_to_history(interval)
        return True

    def remove_trackable(self, member_id: str) -> None:
        """Detach a direct member. Copied interval ids stay in own history."""
        self.store.remove_observer(member_id, self.id)
        self.members.discard(member_id)

    def get_trackables(self) -> list["Trackable"]:
        trackables = []
        for member_id in sorted(self.members):
            member = self.store.get_trackable_by_id(member_id)
            if member is not None:
                trackables.append(member)
        return trackables

    def get_trackable(self, search_id: str) -> Optional["Trackable"]:
        """Find this project or a (nested) member by id, depth first."""
        if search_id == self.id:
            return self.store.get_trackable_by_id(self.id) or self

        visited = {self.id}
        stack = sorted(self.members, reverse=True)
        while stack:
            member_id = stack.pop()
            if member_id in visited:
                continue
            visited.add(member_id)
            if member_id == search_id:
                return self.store.get_trackable_by_id(member_id)
            member = self.store.get_trackable_by_id(member_id)
            if isinstance(member, Project):
                stack.extend(sorted(member.members - visited, reverse=True))
        return None

    def get_total_tracked_time(
        self,
        time_format: TimeFormat = TimeFormat.HMS,
        window: Optional[TimeWindow] = None,
        now: Optional[float] = None,
    ) -> TimeValue:
        """Sum the totals of the current direct members.

        Own history is never read, so the total is correct right after
        members are added or removed. A member that is also an ancestor on
        the current path (a cycle from a hand-edited snapshot) is skipped.
        """
        if now is None:
            now = current_time_seconds()
        return self._sum_members(time_format, window, now, {self.id})

    def _sum_members(
        self,
        time_format: TimeFormat,
        window: Optional[TimeWindow],
        now: float,
        path: set[str],
    ) -> TimeValue:
        total = TimeValue(0, time_format)
        for member in self.get_trackables():
            if member.id in path:
                logger.warning(f"Skipping {member.id} in total of {self.id}: membership cycle")
                continue
            if isinstance(member, Project):
                subtotal = member._sum_members(time_format, window, now, path | {member.id})
            else:
                subtotal = member.get_total_tracked_time(time_format, window, now)
            total = TimeValue.add(total, subtotal, time_format)
        return total

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = self.activity.to_dict()
        data["trackables"] = sorted(self.members)
        return data

    @classmethod
    def from_dict(cls, store: "TrackablesStore", data: dict[str, Any]) -> "Project":
        """Create Project from dictionary (JSON deserialization)."""
        return cls(
            activity=Activity.from_dict(store, data),
            members=set(data.get("trackables") or []),
        )

    def copy(self) -> "Project":
        return Project.from_dict(self.store, self.to_dict())


Trackable = Union[Activity, Project]
