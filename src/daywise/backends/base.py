"""Base snapshot store protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PersistentStore(Protocol):
    """Namespaced key -> JSON blob storage.

    Implement this to add new backends. Last write wins per key.
    """

    def load(self, key: str) -> Any | None:
        """Return the last saved blob for key, or None if absent or corrupt."""
        ...

    def save(self, key: str, blob: Any) -> bool:
        """Overwrite the snapshot for key. Returns False on failure."""
        ...
