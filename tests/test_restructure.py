"""Tests for join and conversion."""

from conftest import NOW, add_activity, add_project, record
from timetree.core.models import RGBColor, TrackingState
from timetree.core.restructure import (
    INHERITED_SUFFIX,
    convert_activity_to_project,
    convert_project_to_activity,
    join_trackables,
)
from timetree.core.store import TrackablesStore
from timetree.core.trackables import Activity, Project
from timetree.core.tracker import TimeTracker

LATER = NOW + 100_000


def total(trackable) -> float:  # type: ignore[no-untyped-def]
    return trackable.get_total_tracked_time(now=LATER).total_seconds


def interval_ids(trackable) -> set[str]:  # type: ignore[no-untyped-def]
    return {interval.id for interval in trackable.get_tracking_history()}


class TestJoin:
    """Test joining trackables."""

    def test_join_five_activities(self, store: TrackablesStore) -> None:
        """Test that joined activities keep their time in one activity."""
        activities = [add_activity(store, f"A{i}") for i in range(5)]
        for i, activity in enumerate(activities):
            record(activity, NOW + i * 100, NOW + i * 100 + (i + 1) * 10)
        expected_total = sum(total(a) for a in activities)
        expected_ids = set().union(*(interval_ids(a) for a in activities))

        joined = join_trackables(store, "All", [a.id for a in activities])

        assert isinstance(joined, Activity)
        assert total(joined) == expected_total == 150
        assert interval_ids(joined) == expected_ids
        assert store.get_trackable_by_name("All") is joined
        for activity in activities:
            assert store.get_trackable_by_id(activity.id) is None
        for interval_id in expected_ids:
            assert store.get_corresponding_trackable_of_interval(interval_id) == joined.id

    def test_join_five_projects(self, store: TrackablesStore) -> None:
        """Test joining projects keeps their time and frees their members."""
        projects = []
        members = []
        for i in range(5):
            project = add_project(store, f"P{i}")
            member = add_activity(store, f"M{i}")
            project.add_trackable(member)
            record(member, NOW + i * 100, NOW + i * 100 + 10)
            projects.append(project)
            members.append(member)
        expected_total = sum(total(p) for p in projects)

        joined = join_trackables(store, "All", [p.id for p in projects])

        assert joined is not None
        assert total(joined) == expected_total == 50
        assert store.projects == {}
        for member in members:
            assert store.get_trackable_by_id(member.id) is member
            assert member.observers == set()

    def test_join_uses_first_color(self, store: TrackablesStore) -> None:
        """Test the default color of the joined activity."""
        first = add_activity(store, "A")
        first.color = RGBColor(9, 8, 7)
        second = add_activity(store, "B")

        joined = join_trackables(store, "AB", [first.id, second.id])

        assert joined is not None
        assert joined.color == RGBColor(9, 8, 7)

    def test_join_repoints_observers(self, store: TrackablesStore) -> None:
        """Test that parents contain the joined activity instead."""
        parent = add_project(store, "Parent")
        first = add_activity(store, "A")
        second = add_activity(store, "B")
        parent.add_trackable(first)
        parent.add_trackable(second)
        record(first, NOW, NOW + 10)
        record(second, NOW + 20, NOW + 40)
        before = total(parent)

        joined = join_trackables(store, "AB", [first.id, second.id])

        assert joined is not None
        assert parent.members == {joined.id}
        assert joined.observers == {parent.id}
        assert total(parent) == before == 30

    def test_join_forgetting_observers(self, store: TrackablesStore) -> None:
        """Test that parents can be dropped."""
        parent = add_project(store, "Parent")
        first = add_activity(store, "A")
        parent.add_trackable(first)

        joined = join_trackables(store, "Solo", [first.id], observers_should_forget=True)

        assert joined is not None
        assert parent.members == set()
        assert joined.observers == set()

    def test_join_carries_running_interval(self, store: TrackablesStore) -> None:
        """Test that a running original keeps running as the joined activity."""
        first = add_activity(store, "A")
        second = add_activity(store, "B")
        first.start_tracking(NOW)
        store.currently_active_trackable_id = first.id

        joined = join_trackables(store, "AB", [first.id, second.id])

        assert joined is not None
        assert joined.tracking_state is TrackingState.ACTIVE
        assert store.currently_active_trackable_id == joined.id
        joined.stop_tracking(NOW + 30)
        assert total(joined) == 30

    def test_join_unknown_id_fails(self, store: TrackablesStore) -> None:
        """Test that a join with an unknown id returns None."""
        first = add_activity(store, "A")

        assert join_trackables(store, "AB", [first.id, "missing"]) is None
        assert store.get_trackable_by_id(first.id) is first
        assert not store.name_is_registered("AB")

    def test_join_nothing_fails(self, store: TrackablesStore) -> None:
        """Test that an empty join returns None."""
        assert join_trackables(store, "Nothing", []) is None

    def test_join_onto_taken_name_fails(self, store: TrackablesStore) -> None:
        """Test that the joined name must be free."""
        first = add_activity(store, "A")
        add_activity(store, "Taken")

        assert join_trackables(store, "Taken", [first.id]) is None
        assert store.get_trackable_by_id(first.id) is first


class TestConvertActivityToProject:
    """Test turning an activity into a project."""

    def test_convert(self, store: TrackablesStore) -> None:
        """Test that the project keeps the id and the time."""
        activity = add_activity(store, "Writing")
        record(activity, NOW, NOW + 10)
        record(activity, NOW + 20, NOW + 50)
        before_total = total(activity)
        before_ids = interval_ids(activity)

        project = convert_activity_to_project(store, activity.id)

        assert isinstance(project, Project)
        assert project.id == activity.id
        assert activity.id in store.projects
        assert activity.id not in store.activities
        assert store.get_trackable_by_name("Writing") is project
        assert total(project) == before_total == 40

        [inherited] = project.get_trackables()
        assert inherited.name == f"Writing{INHERITED_SUFFIX}"
        assert interval_ids(inherited) == before_ids
        assert inherited.observers == {project.id}

    def test_convert_keeps_observers(self, store: TrackablesStore) -> None:
        """Test that parents still contain the converted trackable."""
        parent = add_project(store, "Parent")
        activity = add_activity(store, "Writing")
        parent.add_trackable(activity)

        project = convert_activity_to_project(store, activity.id)

        assert project is not None
        assert parent.get_trackables() == [project]
        assert project.observers == {parent.id}

    def test_convert_while_tracking(self, store: TrackablesStore) -> None:
        """Test that tracking continues through the inherited member."""
        activity = add_activity(store, "Writing")
        activity.start_tracking(NOW)
        store.currently_active_trackable_id = activity.id

        project = convert_activity_to_project(store, activity.id)

        assert project is not None
        [inherited] = project.get_trackables()
        assert store.currently_active_trackable_id == inherited.id
        assert inherited.tracking_state is TrackingState.ACTIVE
        assert project.tracking_state is TrackingState.ACTIVE

        inherited.stop_tracking(NOW + 25)

        assert project.tracking_state is TrackingState.INACTIVE
        assert total(project) == 25

    def test_convert_while_tracking_gives_project_own_interval(self, store: TrackablesStore) -> None:
        """Test that the project does not share the member's open interval."""
        activity = add_activity(store, "Writing")
        record(activity, NOW, NOW + 10)
        activity.start_tracking(NOW + 20)
        open_id = activity.current_interval_id
        store.currently_active_trackable_id = activity.id

        project = convert_activity_to_project(store, activity.id)

        assert project is not None
        [inherited] = project.get_trackables()
        assert inherited.current_interval_id == open_id
        assert project.current_interval_id != open_id
        assert open_id not in project.tracking_history
        own = project.get_current_interval()
        assert own is not None
        assert own.start_time == NOW + 20
        assert store.get_corresponding_trackable_of_interval(open_id) == inherited.id
        assert store.get_corresponding_trackable_of_interval(own.id) == project.id

    def test_stop_after_convert_reaches_parents(self, tracker: TimeTracker) -> None:
        """Test that stopping the running member stops every ancestor."""
        parent_id = tracker.create_project("Parent")
        writing_id = tracker.create_activity("Writing")
        assert tracker.add_trackable_to_project(parent_id, writing_id)
        tracker.start_trackable(writing_id, now=NOW)

        assert tracker.convert_activity_to_project(writing_id) is not None
        active_id = tracker.store.currently_active_trackable_id
        assert active_id not in (None, writing_id)
        tracker.stop_trackable(active_id, now=NOW + 25)

        parent = tracker.store.get_trackable_by_id(parent_id)
        project = tracker.store.get_trackable_by_id(writing_id)
        assert parent.tracking_state is TrackingState.INACTIVE
        assert project.tracking_state is TrackingState.INACTIVE
        assert tracker.store.currently_active_trackable_id is None
        assert total(project) == 25
        assert total(parent) == 25

    def test_convert_with_taken_inherited_name(self, store: TrackablesStore) -> None:
        """Test that conversion fails if the member name is taken."""
        activity = add_activity(store, "Writing")
        add_activity(store, f"Writing{INHERITED_SUFFIX}")

        assert convert_activity_to_project(store, activity.id) is None
        assert store.activities[activity.id] is activity

    def test_convert_non_activity(self, store: TrackablesStore) -> None:
        """Test converting a project or unknown id."""
        project = add_project(store, "Thesis")

        assert convert_activity_to_project(store, project.id) is None
        assert convert_activity_to_project(store, "missing") is None


class TestConvertProjectToActivity:
    """Test turning a project into an activity."""

    def test_convert(self, store: TrackablesStore) -> None:
        """Test that the activity takes over the project's own history."""
        project = add_project(store, "Thesis")
        member = add_activity(store, "Writing")
        project.add_trackable(member)
        record(member, NOW, NOW + 10)

        activity = convert_project_to_activity(store, project.id)

        assert isinstance(activity, Activity)
        assert activity.id == project.id
        assert project.id in store.activities
        assert project.id not in store.projects
        assert total(activity) == 10
        assert member.observers == set()

    def test_convert_keeps_observers(self, store: TrackablesStore) -> None:
        """Test that parents contain the new activity."""
        parent = add_project(store, "Parent")
        project = add_project(store, "Thesis")
        parent.add_trackable(project)

        activity = convert_project_to_activity(store, project.id)

        assert activity is not None
        assert parent.get_trackables() == [activity]
        assert activity.observers == {parent.id}

    def test_convert_non_project(self, store: TrackablesStore) -> None:
        """Test converting an activity returns None."""
        activity = add_activity(store, "Writing")

        assert convert_project_to_activity(store, activity.id) is None


class TestRoundTrip:
    """Test converting back and forth."""

    def test_activity_project_activity(self, store: TrackablesStore) -> None:
        """Test that the time and interval set survive a round trip."""
        activity = add_activity(store, "Writing")
        record(activity, NOW, NOW + 10)
        record(activity, NOW + 20, NOW + 50)
        before_total = total(activity)
        before_ids = interval_ids(activity)

        project = convert_activity_to_project(store, activity.id)
        assert project is not None
        back = convert_project_to_activity(store, project.id)

        assert isinstance(back, Activity)
        assert back.id == activity.id
        assert total(back) == before_total
        assert interval_ids(back) == before_ids

    def test_round_trip_while_tracking(self, store: TrackablesStore) -> None:
        """Test that a running activity keeps running after a round trip."""
        activity = add_activity(store, "Writing")
        record(activity, NOW, NOW + 10)
        activity.start_tracking(NOW + 20)
        store.currently_active_trackable_id = activity.id

        project = convert_activity_to_project(store, activity.id)
        assert project is not None
        back = convert_project_to_activity(store, project.id)

        assert isinstance(back, Activity)
        inherited = store.get_trackable_by_name(f"Writing{INHERITED_SUFFIX}")
        assert store.currently_active_trackable_id == back.id
        assert back.tracking_state is TrackingState.ACTIVE
        assert inherited.tracking_state is TrackingState.INACTIVE

        back.stop_tracking(NOW + 50)

        assert total(back) == 40
        assert total(inherited) == 10
