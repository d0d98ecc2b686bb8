"""Tests for activities and projects."""

import pytest  # type: ignore[import-not-found]

from conftest import NOW, add_activity, add_project, record
from timetree.core.models import RGBColor, TrackableType, TrackingState
from timetree.core.store import TrackablesStore
from timetree.core.timevalue import TimeFormat, TimeValue
from timetree.core.timewindow import TimeWindow
from timetree.core.trackables import Activity, Project


class TestActivityTracking:
    """Test the tracking lifecycle of an activity."""

    def test_start_tracking(self, store: TrackablesStore) -> None:
        """Test that starting opens an interval owned by the activity."""
        activity = add_activity(store, "Writing")

        started = activity.start_tracking(NOW)

        assert started == NOW
        assert activity.tracking_state is TrackingState.ACTIVE
        current = activity.get_current_interval()
        assert current is not None
        assert current.start_time == NOW
        assert store.get_corresponding_trackable_of_interval(current.id) == activity.id

    def test_start_twice_is_start_once(self, store: TrackablesStore) -> None:
        """Test that starting an active activity changes nothing."""
        activity = add_activity(store, "Writing")
        activity.start_tracking(NOW)

        assert activity.start_tracking(NOW + 5) is None
        assert len(activity.get_tracking_history()) == 1

    def test_stop_twice_is_stop_once(self, store: TrackablesStore) -> None:
        """Test that stopping a stopped activity changes nothing."""
        activity = add_activity(store, "Writing")
        activity.start_tracking(NOW)
        activity.stop_tracking(NOW + 10)
        activity.stop_tracking(NOW + 20)

        assert activity.tracking_state is TrackingState.INACTIVE
        assert activity.get_total_tracked_time(now=NOW + 100).total_seconds == 10

    def test_stop_without_start(self, store: TrackablesStore) -> None:
        """Test that stopping a fresh activity is a no-op."""
        activity = add_activity(store, "Writing")
        activity.stop_tracking(NOW)

        assert activity.tracking_state is TrackingState.INACTIVE
        assert activity.get_tracking_history() == []

    def test_three_sessions(self, store: TrackablesStore) -> None:
        """Test that 1s, 2s and 3s sessions add up to 6s."""
        activity = add_activity(store, "Writing")
        t = NOW
        for seconds in (1, 2, 3):
            record(activity, t, t + seconds)
            t += seconds + 10

        assert len(activity.get_tracking_history()) == 3
        assert activity.get_total_tracked_time(now=t).total_seconds == pytest.approx(6, abs=0.1)

    def test_running_total_counts_up_to_now(self, store: TrackablesStore) -> None:
        """Test that an open interval counts up to now."""
        activity = add_activity(store, "Writing")
        activity.start_tracking(NOW)

        assert activity.get_total_tracked_time(now=NOW + 42).total_seconds == 42

    def test_history_sorted_by_start(self, store: TrackablesStore) -> None:
        """Test that history is returned oldest first."""
        activity = add_activity(store, "Writing")
        record(activity, NOW + 100, NOW + 110)
        record(activity, NOW, NOW + 10)

        starts = [i.start_time for i in activity.get_tracking_history()]
        assert starts == [NOW, NOW + 100]

    def test_total_in_format(self, store: TrackablesStore) -> None:
        """Test that totals use the requested format."""
        activity = add_activity(store, "Writing")
        record(activity, NOW, NOW + 3725)

        total = activity.get_total_tracked_time(TimeFormat.MS, now=NOW + 4000)
        assert total.to_dict() == {"hours": 0, "mins": 62, "seconds": 5}

    def test_total_within_window_is_clipped(self, store: TrackablesStore) -> None:
        """Test that an interval straddling the window only counts inside it."""
        activity = add_activity(store, "Writing")
        record(activity, NOW - 7200, NOW - 3600)

        window = TimeWindow.from_dict({"since": {"mins": 90}})
        assert activity.get_total_tracked_time(window=window, now=NOW).total_seconds == 1800
        assert activity.get_total_tracked_time(now=NOW).total_seconds == 3600


class TestIntervalEditing:
    """Test editing and deleting intervals of an activity."""

    def test_set_interval_time_keeps_end(self, store: TrackablesStore) -> None:
        """Test that resizing a closed interval moves its start."""
        activity = add_activity(store, "Writing")
        record(activity, NOW, NOW + 100)
        interval = activity.get_tracking_history()[0]

        activity.set_interval_time(interval.id, TimeValue(30))

        assert interval.start_time == NOW + 70
        assert interval.end_time == NOW + 100

    def test_set_interval_time_of_open_interval(self, store: TrackablesStore) -> None:
        """Test that an open interval is resized back from now."""
        activity = add_activity(store, "Writing")
        activity.start_tracking(NOW)
        current = activity.get_current_interval()
        assert current is not None

        activity.set_interval_time(current.id, TimeValue(600), now=NOW + 60)

        assert current.start_time == NOW + 60 - 600

    def test_set_interval_time_unknown(self, store: TrackablesStore) -> None:
        """Test that intervals outside own history are ignored."""
        activity = add_activity(store, "Writing")
        assert activity.set_interval_time("missing", TimeValue(1)) is None

    def test_delete_interval(self, store: TrackablesStore) -> None:
        """Test that deleting an interval removes it everywhere."""
        project = add_project(store, "Thesis")
        activity = add_activity(store, "Writing")
        project.add_trackable(activity)
        activity.start_tracking(NOW)
        current = activity.get_current_interval()
        assert current is not None

        activity.delete_interval(current.id)

        assert activity.current_interval_id is None
        assert current.id not in activity.tracking_history
        assert current.id not in project.tracking_history
        assert store.get_tracking_interval(current.id) is None


class TestProject:
    """Test projects."""

    def test_type(self, store: TrackablesStore) -> None:
        """Test the trackable types."""
        assert add_project(store, "P").trackable_type is TrackableType.PROJECT
        assert add_activity(store, "A").trackable_type is TrackableType.ACTIVITY

    def test_delegated_identity(self, store: TrackablesStore) -> None:
        """Test that name and color live on the owned activity."""
        project = add_project(store, "Thesis")
        project.color = RGBColor(1, 2, 3)
        project.name = "Dissertation"

        assert project.activity.name == "Dissertation"
        assert project.activity.color == RGBColor(1, 2, 3)
        assert project.id == project.activity.id

    def test_add_trackable(self, store: TrackablesStore) -> None:
        """Test adding a member."""
        project = add_project(store, "Thesis")
        activity = add_activity(store, "Writing")

        assert project.add_trackable(activity) is True
        assert activity.id in project.members
        assert project.id in activity.observers
        assert [t.id for t in project.get_trackables()] == [activity.id]

    def test_add_self_is_noop(self, store: TrackablesStore) -> None:
        """Test that a project cannot contain itself."""
        project = add_project(store, "Thesis")

        assert project.add_trackable(project) is False
        assert project.members == set()

    def test_add_twice_is_noop(self, store: TrackablesStore) -> None:
        """Test that a member is only added once."""
        project = add_project(store, "Thesis")
        activity = add_activity(store, "Writing")
        project.add_trackable(activity)

        assert project.add_trackable(activity) is False

    def test_add_copies_history(self, store: TrackablesStore) -> None:
        """Test that a new member's history is copied by reference."""
        project = add_project(store, "Thesis")
        activity = add_activity(store, "Writing")
        record(activity, NOW, NOW + 10)

        project.add_trackable(activity)

        assert activity.tracking_history <= project.tracking_history
        interval_id = next(iter(activity.tracking_history))
        assert store.get_corresponding_trackable_of_interval(interval_id) == activity.id

    def test_total_is_sum_of_members(self, store: TrackablesStore) -> None:
        """Test that a project's total is the sum of its members' totals."""
        project = add_project(store, "Thesis")
        first = add_activity(store, "Writing")
        second = add_activity(store, "Reading")
        project.add_trackable(first)
        project.add_trackable(second)

        record(first, NOW, NOW + 60)
        record(second, NOW + 100, NOW + 130)

        total = project.get_total_tracked_time(now=NOW + 200).total_seconds
        assert total == 90
        assert total == (
            first.get_total_tracked_time(now=NOW + 200).total_seconds
            + second.get_total_tracked_time(now=NOW + 200).total_seconds
        )

    def test_total_after_add_mid_tracking(self, store: TrackablesStore) -> None:
        """Test that adding a running member is reflected at once."""
        project = add_project(store, "Thesis")
        activity = add_activity(store, "Writing")
        activity.start_tracking(NOW)

        project.add_trackable(activity)

        assert project.get_total_tracked_time(now=NOW + 50).total_seconds == 50

    def test_total_after_remove(self, store: TrackablesStore) -> None:
        """Test that a removed member no longer counts."""
        project = add_project(store, "Thesis")
        first = add_activity(store, "Writing")
        second = add_activity(store, "Reading")
        project.add_trackable(first)
        project.add_trackable(second)
        record(first, NOW, NOW + 60)
        record(second, NOW, NOW + 30)

        project.remove_trackable(first.id)

        assert project.get_total_tracked_time(now=NOW + 100).total_seconds == 30
        assert project.id not in first.observers

    def test_start_propagates_to_observers(self, store: TrackablesStore) -> None:
        """Test that starting and stopping a member drives its projects."""
        outer = add_project(store, "Outer")
        inner = add_project(store, "Inner")
        activity = add_activity(store, "Writing")
        outer.add_trackable(inner)
        inner.add_trackable(activity)

        activity.start_tracking(NOW)

        assert inner.tracking_state is TrackingState.ACTIVE
        assert outer.tracking_state is TrackingState.ACTIVE
        inner_current = inner.get_current_interval()
        assert inner_current is not None
        assert inner_current.start_time == NOW

        activity.stop_tracking(NOW + 10)

        assert inner.tracking_state is TrackingState.INACTIVE
        assert outer.tracking_state is TrackingState.INACTIVE

    def test_get_trackable_nested(self, store: TrackablesStore) -> None:
        """Test finding nested members."""
        outer = add_project(store, "Outer")
        inner = add_project(store, "Inner")
        activity = add_activity(store, "Writing")
        outer.add_trackable(inner)
        inner.add_trackable(activity)

        assert outer.get_trackable(activity.id) is activity
        assert outer.get_trackable(outer.id) is outer
        assert outer.get_trackable("missing") is None
        assert activity.get_trackable(activity.id) is activity
        assert activity.get_trackable(outer.id) is None

    def test_get_trackable_survives_cycles(self, store: TrackablesStore) -> None:
        """Test that lookups terminate on a cyclic membership graph."""
        first = add_project(store, "First")
        second = add_project(store, "Second")
        first.add_trackable(second)
        second.members.add(first.id)

        assert first.get_trackable("missing") is None

    def test_total_survives_cycles(self, store: TrackablesStore) -> None:
        """Test that totals skip a member that is also an ancestor."""
        first = add_project(store, "First")
        second = add_project(store, "Second")
        activity = add_activity(store, "Writing")
        first.add_trackable(second)
        second.add_trackable(activity)
        second.members.add(first.id)
        record(activity, NOW, NOW + 10)

        assert first.get_total_tracked_time(now=NOW + 60).total_seconds == 10
        assert second.get_total_tracked_time(now=NOW + 60).total_seconds == 10

    def test_total_counts_shared_member_per_branch(self, store: TrackablesStore) -> None:
        """Test that a member below two sub-projects counts in both."""
        outer = add_project(store, "Outer")
        left = add_project(store, "Left")
        right = add_project(store, "Right")
        activity = add_activity(store, "Writing")
        outer.add_trackable(left)
        outer.add_trackable(right)
        left.add_trackable(activity)
        right.add_trackable(activity)
        record(activity, NOW, NOW + 10)

        assert outer.get_total_tracked_time(now=NOW + 60).total_seconds == 20


class TestSerialization:
    """Test trackable serialization."""

    def test_activity_round_trip(self, store: TrackablesStore) -> None:
        """Test Activity to_dict/from_dict."""
        project = add_project(store, "Thesis")
        activity = add_activity(store, "Writing")
        activity.color = RGBColor(10, 20, 30)
        project.add_trackable(activity)
        record(activity, NOW, NOW + 10)

        data = activity.to_dict()
        other = TrackablesStore()
        restored = Activity.from_dict(other, data)

        assert data["observers"] == [project.id]
        assert restored.id == activity.id
        assert restored.name == "Writing"
        assert restored.color == RGBColor(10, 20, 30)
        assert restored.tracking_history == activity.tracking_history
        assert restored.current_interval_id == activity.current_interval_id
        assert other.get_observers(activity.id) == {project.id}

    def test_project_round_trip(self, store: TrackablesStore) -> None:
        """Test Project to_dict/from_dict."""
        project = add_project(store, "Thesis")
        activity = add_activity(store, "Writing")
        project.add_trackable(activity)

        data = project.to_dict()
        restored = Project.from_dict(TrackablesStore(), data)

        assert data["trackables"] == [activity.id]
        assert restored.id == project.id
        assert restored.members == {activity.id}

    def test_copy_is_independent(self, store: TrackablesStore) -> None:
        """Test that copies do not share history sets."""
        activity = add_activity(store, "Writing")
        copy = activity.copy()
        copy.tracking_history.add("other")

        assert "other" not in activity.tracking_history
