"""Storage path calculation and ordered background snapshot writes."""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from daywise.backends.base import PersistentStore
    from daywise.config import Config

logger = logging.getLogger(__name__)


def get_storage_path(config: Config, backend: str) -> Path:
    """Calculate storage location for a backend.

    Args:
        config: Config instance
        backend: Backend name (json, sqlite, etc.)

    Returns:
        Directory for file-per-key backends, database file for sqlite
    """
    if backend == "sqlite":
        return config.data_dir / "daywise.db"
    return config.data_dir


class SnapshotWriter:
    """Fire-and-forget saves, applied in submission order by one worker thread.

    ``submit`` never blocks on I/O. Failures are logged and dropped; the
    next successful save of the same key overwrites them.
    """

    _STOP = object()

    def __init__(self, store: PersistentStore, name: str = "daywise-writer"):
        self._store = store
        self._queue: queue.Queue = queue.Queue()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def store(self) -> PersistentStore:
        return self._store

    def submit(self, key: str, blob: Any) -> None:
        if self._closed:
            logger.warning("Snapshot writer closed; dropping save of %s", key)
            return
        self._queue.put((key, blob))

    def flush(self) -> None:
        """Block until every submitted save has been attempted."""
        self._queue.join()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(self._STOP)
        self._thread.join()

    def _run(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is self._STOP:
                    return
                key, blob = job
                self._write(key, blob)
            finally:
                self._queue.task_done()

    def _write(self, key: str, blob: Any) -> None:
        try:
            ok = self._store.save(key, blob)
        except Exception:
            logger.exception("Snapshot save raised for %s", key)
            return
        if not ok:
            logger.warning("Snapshot save failed for %s", key)
        else:
            logger.debug("Saved snapshot %s", key)
