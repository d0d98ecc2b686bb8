"""Operations that reshape the trackable hierarchy while keeping recorded time.

All three operations log and return None on failure. Changes made before the
failure are not rolled back.
"""

import logging
from typing import Optional

from timetree.core.models import RGBColor, TrackingInterval, TrackingState
from timetree.core.store import TrackablesStore
from timetree.core.trackables import Activity, Project

logger = logging.getLogger(__name__)

INHERITED_SUFFIX = "_inherited_tracking_intervals"


def join_trackables(
    store: TrackablesStore,
    name: str,
    trackable_ids: list[str],
    color: Optional[RGBColor] = None,
    observers_should_forget: bool = False,
) -> Optional[Activity]:
    """Collapse several trackables into one activity.

    The new activity owns the union of the joined trackables' histories. Unless
    ``observers_should_forget`` is set, every project that contained one of
    the joined trackables contains the new activity instead.

    Args:
        store: Store holding the trackables
        name: Name of the new activity
        trackable_ids: Trackables to join
        color: Color of the new activity (defaults to the first trackable's)
        observers_should_forget: Drop the joined trackables' parents

    Returns:
        The new activity, or None if the join failed
    """
    try:
        if not trackable_ids:
            raise ValueError("No trackables to join")
        originals = []
        for trackable_id in trackable_ids:
            trackable = store.get_trackable_by_id(trackable_id)
            if trackable is None:
                raise KeyError(f"Trackable {trackable_id} does not exist in store {store.store_id}")
            originals.append(trackable)

        temp_project = Project.create(store, name, color or originals[0].color)
        store.put_trackable(temp_project)
        for trackable in originals:
            temp_project.add_trackable(trackable)

        joined = convert_project_to_activity(store, temp_project.id)
        if joined is None:
            raise RuntimeError(f"Could not flatten temporary project {temp_project.id}")

        preserved: dict[str, TrackingInterval] = {}
        open_interval_id: Optional[str] = None
        was_active = False
        for trackable in originals:
            if not observers_should_forget:
                for observer_id in trackable.observers:
                    observer = store.projects.get(observer_id)
                    if observer is None:
                        continue
                    observer.remove_trackable(trackable.id)
                    observer.add_trackable(joined)

            current = trackable.get_current_interval()
            if current is not None and current.state is TrackingState.ACTIVE:
                open_interval_id = current.id
            for interval in trackable.get_tracking_history():
                preserved[interval.id] = interval
                if store.get_corresponding_trackable_of_interval(interval.id) == trackable.id:
                    store.transfer_interval_ownership(interval.id, joined.id)

            if store.currently_active_trackable_id == trackable.id:
                was_active = True
            store.delete_trackable(trackable.id, delete_tracking_intervals=False)

        store.set_tracking_history(joined.id, preserved.values())
        if open_interval_id is not None:
            joined.current_interval_id = open_interval_id
        if was_active:
            store.currently_active_trackable_id = joined.id

        logger.info(f"Joined {len(originals)} trackables into '{name}' ({joined.id})")
        return joined
    except Exception as e:
        logger.error(f"Failed to join trackables {trackable_ids}: {e}")
        return None


def convert_activity_to_project(store: TrackablesStore, activity_id: str) -> Optional[Project]:
    """Turn an activity into a project with the same id.

    The project's single member is a new activity holding a copy of the
    original history. If the original was tracking, the member carries on
    through the open interval and the project opens its own interval at the
    same start, so stopping the member stops the project and its parents.

    Returns:
        The new project, or None if the id is not an activity or the
        conversion failed
    """
    activity = store.activities.get(activity_id)
    if activity is None:
        logger.warning(f"Cannot convert {activity_id} to a project: not an activity")
        return None

    try:
        inherited_name = f"{activity.name}{INHERITED_SUFFIX}"
        if store.name_is_registered(inherited_name):
            raise ValueError(f"Name '{inherited_name}' is already taken")

        project = Project(activity=activity.copy())
        history = activity.get_tracking_history()
        current = activity.get_current_interval()

        inherited = Activity(store=store, name=inherited_name, color=RGBColor(**activity.color.to_dict()))
        store.put_trackable(inherited)
        inherited.set_tracking_history(history)
        project.add_trackable(inherited)

        if current is not None and current.state is TrackingState.ACTIVE:
            inherited.current_interval_id = current.id
            store.transfer_interval_ownership(current.id, inherited.id)
            project.tracking_history.discard(current.id)
            own = TrackingInterval.begin(current.start_time)
            project.current_interval_id = own.id
            project.add_interval_to_history(own)

        del store.activities[activity_id]
        store.put_trackable(project)
        if store.currently_active_trackable_id == activity_id:
            store.currently_active_trackable_id = inherited.id

        logger.info(f"Converted activity '{activity.name}' ({activity_id}) to a project")
        return project
    except Exception as e:
        logger.error(f"Failed to convert activity {activity_id} to a project: {e}")
        return None


def convert_project_to_activity(store: TrackablesStore, project_id: str) -> Optional[Activity]:
    """Turn a project into an activity with the same id.

    The activity takes over the project's own interval set and current
    interval. Members are released; projects containing the project contain
    the activity instead. If the project's inherited member is the currently
    active trackable, its running copy of the project's interval is dropped
    and the activity becomes the currently active trackable.

    Returns:
        The new activity, or None if the id is not a project or the
        conversion failed
    """
    project = store.projects.get(project_id)
    if project is None:
        logger.warning(f"Cannot convert {project_id} to an activity: not a project")
        return None

    try:
        history = project.get_tracking_history()
        current_interval_id = project.current_interval_id
        observer_ids = project.observers
        running_member = _running_inherited_member(store, project)

        store.delete_trackable(project_id, delete_tracking_intervals=False)

        activity = Activity(
            store=store,
            name=project.name,
            color=project.color,
            id=project_id,
            current_interval_id=current_interval_id,
        )
        activity.set_tracking_history(history)
        store.put_trackable(activity)

        for observer_id in observer_ids:
            observer = store.projects.get(observer_id)
            if observer is not None:
                observer.add_trackable(activity)

        if running_member is not None:
            running_member.delete_interval(running_member.current_interval_id)  # type: ignore[arg-type]
            store.currently_active_trackable_id = activity.id

        logger.info(f"Converted project '{activity.name}' ({project_id}) to an activity")
        return activity
    except Exception as e:
        logger.error(f"Failed to convert project {project_id} to an activity: {e}")
        return None


def _running_inherited_member(store: TrackablesStore, project: Project) -> Optional[Activity]:
    member_id = store.currently_active_trackable_id
    if member_id not in project.members or project.tracking_state is not TrackingState.ACTIVE:
        return None
    member = store.activities.get(member_id)
    if member is None or member.name != f"{project.name}{INHERITED_SUFFIX}":
        return None
    if member.tracking_state is not TrackingState.ACTIVE:
        return None
    return member
