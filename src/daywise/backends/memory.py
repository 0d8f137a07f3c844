"""In-memory backend."""

import json
from typing import Any


class MemoryStore:
    """Dict-backed store, for tests and embedding callers.

    Blobs round-trip through JSON so callers get the same value types a
    file-backed store would hand back.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, str] = {}
        for key, blob in (initial or {}).items():
            self._data[key] = json.dumps(blob)
        self.saves: list[str] = []

    def load(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def save(self, key: str, blob: Any) -> bool:
        self._data[key] = json.dumps(blob)
        self.saves.append(key)
        return True
