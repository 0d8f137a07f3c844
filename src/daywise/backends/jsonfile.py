"""JSON file backend."""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore:
    """One ``<key>.json`` file per snapshot key.

    Writes go to a temp file in the same directory and are moved into place,
    so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, directory: Path):
        self._path = directory

    def _file_for(self, key: str) -> Path:
        if not KEY_PATTERN.match(key):
            raise ValueError(f"Invalid snapshot key: {key!r}")
        return self._path / f"{key}.json"

    def load(self, key: str) -> Any | None:
        path = self._file_for(key)
        if not path.exists():
            return None
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Could not read snapshot %s: %s", path, e)
            return None
        except UnicodeDecodeError:
            logger.warning("Discarding corrupt snapshot %s (not UTF-8)", path)
            return None
        if not content.strip():
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            logger.warning("Discarding corrupt snapshot %s", path)
            return None

    def save(self, key: str, blob: Any) -> bool:
        path = self._file_for(key)
        try:
            content = json.dumps(blob, indent=2)
            self._path.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to save snapshot %s: %s", path, e)
            return False
        return True
