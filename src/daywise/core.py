"""Core tracker service."""

from __future__ import annotations

import importlib
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from daywise.analytics import Summary, summarize
from daywise.config import Config
from daywise.review import SpacedRepetitionScheduler
from daywise.storage import SnapshotWriter, get_storage_path
from daywise.tasks import TaskStore

if TYPE_CHECKING:
    from daywise.backends.base import PersistentStore

# Module-level backend registry
# Maps backend name -> backend class (or string reference for lazy loading)
_backend_registry: dict[str, type | str] = {
    "json": "daywise.backends.jsonfile:JsonFileStore",
    "sqlite": "daywise.backends.sqlite:SqliteStore",
}


def register_backend(name: str, backend: type | str) -> None:
    """Register a PersistentStore class under ``name``."""
    _backend_registry[name] = backend


def _resolve_backend_class(backend_ref: str | type) -> type:
    """Resolve backend reference to actual class (lazy import)."""
    if isinstance(backend_ref, type):
        return backend_ref
    # String format: "module.path:ClassName"
    module_path, class_name = backend_ref.rsplit(":", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def create_backend(config: Config, name: str | None = None) -> PersistentStore:
    backend_name = name or config.default_backend
    if backend_name not in _backend_registry:
        raise ValueError(f"Unknown backend: {backend_name}")
    backend_cls = _resolve_backend_class(_backend_registry[backend_name])
    return backend_cls(get_storage_path(config, backend_name))


class Tracker:
    """Owns both stores over one snapshot backend.

    Each store hydrates independently from its own key.
    """

    def __init__(
        self,
        config: Config,
        backend: PersistentStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._config = config
        self._clock = clock
        self._backend = backend if backend is not None else create_backend(config)
        self._writer = SnapshotWriter(self._backend)
        self.tasks = TaskStore(self._writer, key=config.tasks_key, clock=clock)
        self.reviews = SpacedRepetitionScheduler(
            self._writer, key=config.reviews_key, clock=clock
        )

    @property
    def backend_name(self) -> str:
        return type(self._backend).__name__

    @property
    def storage_path(self) -> str:
        """Get the storage path for current backend."""
        if hasattr(self._backend, "_path"):
            return str(self._backend._path)
        return "N/A"

    def summary(self, days: int = 7, top_categories: int = 5) -> Summary:
        return summarize(
            self.tasks.list(),
            self.reviews.list(),
            today=self._clock().date(),
            days=days,
            top_categories=top_categories,
        )

    def flush(self) -> None:
        self._writer.flush()

    def close(self) -> None:
        """Drain pending writes and stop the writer thread."""
        self._writer.close()
        if hasattr(self._backend, "close"):
            self._backend.close()

    def __enter__(self) -> Tracker:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
