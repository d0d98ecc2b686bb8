"""JSON snapshot storage with serialized save/load and schema validation."""

import json
import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Optional

from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

from timetree.core.persistence import (
    DEFAULT_STORE_FILE,
    FileSystemStorePersistence,
    PersistenceQueue,
    StorePersistence,
)
from timetree.core.store import TrackablesStore
from timetree.core.trackables import Activity, Project

logger = logging.getLogger(__name__)

_TIME_VALUE_SCHEMA = {
    "type": "object",
    "properties": {
        "hours": {"type": "number"},
        "mins": {"type": "number"},
        "seconds": {"type": "number"},
    },
}

_TRACKABLE_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "color": {"type": ["object", "null"]},
        "trackingHistory": {"type": "array", "items": {"type": "string"}},
        "observers": {"type": "array", "items": {"type": "string"}},
        "currentInterval": {"type": ["string", "null"]},
        "trackables": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["id", "name"],
}

SNAPSHOT_SCHEMA = {
    "type": "object",
    "properties": {
        "storeId": {"type": "string"},
        "version": {"type": "string"},
        "storeType": {"type": "string"},
        "activities": {"type": "array", "items": _TRACKABLE_SCHEMA},
        "projects": {"type": "array", "items": _TRACKABLE_SCHEMA},
        "trackingIntervals": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "startTimeSeconds": {"type": "number"},
                    "endTimeSeconds": {"type": ["number", "null"]},
                    "state": {"type": ["string", "integer"]},
                    "duration": _TIME_VALUE_SCHEMA,
                },
                "required": ["id", "startTimeSeconds"],
            },
        },
        "intervalsToTrackables": {"type": "array", "items": {"type": "object"}},
        "currentlyActiveTrackableId": {"type": ["string", "null"]},
    },
}


def serialize_store(store: TrackablesStore) -> str:
    """Encode a store as a JSON snapshot.

    Args:
        store: Store to encode

    Returns:
        Snapshot text
    """
    snapshot = {
        "storeId": store.store_id,
        "version": store.version,
        "storeType": store.store_type,
        "activities": [activity.to_dict() for activity in store.activities.values()],
        "projects": [project.to_dict() for project in store.projects.values()],
        "trackingIntervals": [interval.to_dict() for interval in store.get_all_tracking_intervals()],
        "intervalsToTrackables": store.get_intervals_to_trackables(),
        "currentlyActiveTrackableId": store.currently_active_trackable_id,
    }
    return json.dumps(snapshot, indent=2)


def deserialize_store(payload: str) -> TrackablesStore:
    """Decode a JSON snapshot into a new store.

    Args:
        payload: Snapshot text

    Returns:
        Hydrated store

    Raises:
        ValueError: If the text is not valid JSON or does not match the
            snapshot schema
    """
    try:
        snapshot = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValueError(f"Snapshot is not valid JSON: {e}")

    try:
        validate(instance=snapshot, schema=SNAPSHOT_SCHEMA)
    except ValidationError as e:
        raise ValueError(f"Invalid snapshot: {e.message}")

    store = TrackablesStore(store_id=snapshot.get("storeId"))
    store.set_activities(Activity.from_dict(store, data) for data in snapshot.get("activities") or [])
    store.set_projects(Project.from_dict(store, data) for data in snapshot.get("projects") or [])
    store.set_tracking_intervals(snapshot)
    store.set_intervals_to_trackables(snapshot)
    store.currently_active_trackable_id = snapshot.get("currentlyActiveTrackableId") or None
    return store


class StorageManager:
    """Owns the in-memory store and keeps it in step with its persistence.

    Saves and loads go through a :class:`PersistenceQueue`, so only one runs
    at a time and a load always sees every save queued before it. The snapshot
    is taken when a save is requested, not when it runs.
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        persistence: Optional[StorePersistence] = None,
        store_file: str = DEFAULT_STORE_FILE,
    ):
        """Initialize storage manager.

        Args:
            data_dir: Custom data directory. Defaults to ~/.timetree/data
            persistence: Persistence backend. Defaults to a JSON file in data_dir
            store_file: Snapshot file name when the default backend is used
        """
        if persistence is None:
            persistence = FileSystemStorePersistence(data_dir, store_file)

        self.persistence = persistence
        self.store = TrackablesStore()
        self._queue = PersistenceQueue()

    def serialize(self) -> str:
        return serialize_store(self.store)

    def save(self) -> "Future[bool]":
        """Queue a save of the current state.

        Returns:
            Future resolving to True if the snapshot was persisted
        """
        payload = self.serialize()
        return self._queue.submit(self._save_payload, payload)

    def _save_payload(self, payload: str) -> bool:
        try:
            return bool(self.persistence.save(payload))
        except Exception as e:
            logger.error(f"Persistence backend failed to save: {e}")
            return False

    def _load_payload(self) -> str:
        try:
            return self.persistence.load() or ""
        except Exception as e:
            logger.error(f"Persistence backend failed to load: {e}")
            return ""

    def load(self) -> bool:
        """Replace the in-memory store with the persisted snapshot.

        Waits for every queued save first. An empty or malformed snapshot
        leaves a fresh empty store.

        Returns:
            True if a snapshot was loaded
        """
        payload = self._queue.submit(self._load_payload).result()
        if not payload.strip():
            logger.info("No stored snapshot found, starting with an empty store")
            self.store = TrackablesStore()
            return False

        try:
            self.store = deserialize_store(payload)
        except ValueError as e:
            logger.error(f"Failed to load store snapshot: {e}")
            self.store = TrackablesStore()
            return False

        logger.debug(
            f"Loaded store {self.store.store_id} with {len(self.store.activities)} activities "
            f"and {len(self.store.projects)} projects"
        )
        return True

    def flush(self) -> None:
        """Wait until every queued save has finished."""
        self._queue.drain()

    def close(self) -> None:
        self._queue.shutdown()
