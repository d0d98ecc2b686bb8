"""Durable storage of serialized store snapshots."""

import logging
import os
import sys
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DATA_DIR = Path.home() / ".timetree" / "data"
DEFAULT_STORE_FILE = "store.json"


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        mode = msvcrt.LK_NBLCK if exclusive else msvcrt.LK_NBRLCK
        msvcrt.locking(file_obj.fileno(), mode, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way.

    Args:
        file_obj: File object to unlock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


class StorePersistence(ABC):
    """Where serialized snapshots live.

    Implementations report failure through their return values and never
    raise.
    """

    @abstractmethod
    def save(self, payload: str) -> bool:
        """Persist a serialized snapshot.

        Returns:
            True on success
        """

    @abstractmethod
    def load(self) -> str:
        """Read the last persisted snapshot.

        Returns:
            The snapshot text, or an empty string if there is none or it
            could not be read
        """


class FileSystemStorePersistence(StorePersistence):
    """Keeps the snapshot in a single JSON file."""

    def __init__(self, data_dir: Optional[Path] = None, filename: str = DEFAULT_STORE_FILE):
        """Initialize file persistence.

        Args:
            data_dir: Directory holding the snapshot. Defaults to ~/.timetree/data
            filename: Snapshot file name
        """
        if data_dir is None:
            data_dir = DEFAULT_DATA_DIR

        self.data_dir = Path(data_dir).expanduser()
        self.store_file = self.data_dir / filename

    def _ensure_file(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.store_file.exists():
            self.store_file.touch()

    def save(self, payload: str) -> bool:
        """Write the snapshot atomically using a temporary file and rename."""
        temp_file = self.store_file.with_suffix(".tmp")

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                _lock_file(f, exclusive=True)

                f.write(payload)
                f.flush()
                os.fsync(f.fileno())

                _unlock_file(f)

            temp_file.replace(self.store_file)
            logger.debug(f"Saved store snapshot to {self.store_file}")
            return True

        except OSError as e:
            logger.error(f"Failed to save store to {self.store_file}: {e}")
            if temp_file.exists():
                temp_file.unlink()
            return False

    def load(self) -> str:
        """Read the snapshot, creating an empty file on first use."""
        try:
            self._ensure_file()
            with open(self.store_file, encoding="utf-8") as f:
                _lock_file(f, exclusive=False)
                try:
                    return f.read()
                finally:
                    _unlock_file(f)

        except OSError as e:
            logger.error(f"Failed to load store from {self.store_file}: {e}")
            return ""


class PersistenceQueue:
    """Runs persistence calls one at a time, in submission order.

    Example:
        >>> queue = PersistenceQueue()
        >>> queue.submit(lambda: 42).result()
        42
        >>> queue.shutdown()
    """

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="timetree-persistence")

    def submit(self, fn: Callable[..., T], *args: Any) -> "Future[T]":
        return self._executor.submit(fn, *args)

    def drain(self) -> None:
        """Block until every call queued so far has finished."""
        self._executor.submit(lambda: None).result()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
