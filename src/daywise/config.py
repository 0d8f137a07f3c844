"""Settings: JSON file in the config dir, overridden by DAYWISE_* env vars."""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Loaded once per process for the default directory
_config_cache: "Config | None" = None


def clear_config_cache() -> None:
    """Forget the cached default Config (tests, reloads)."""
    global _config_cache
    _config_cache = None


def get_default_config_dir() -> Path:
    """Resolve the config directory: $DAYWISE_CONFIG_DIR, else ~/.config/daywise."""
    config_dir = os.environ.get("DAYWISE_CONFIG_DIR")
    if config_dir:
        return Path(config_dir)
    return Path.home() / ".config" / "daywise"


class ConfigMeta:
    """Setting descriptions and allowed values, for `info` and validation."""

    SETTINGS: dict[str, str] = {
        "default_backend": "Snapshot backend (json|sqlite)",
        "default_format": "Output format (table|jsonl|tsv)",
        "log_level": "Log level (DEBUG|INFO|WARNING|ERROR)",
        "log_file": "Also write debug logs to this file (empty = off)",
        "stats_days": "Days of history shown by `stats`",
        "tasks_key": "Snapshot key for the task collection",
        "reviews_key": "Snapshot key for the review collection",
    }

    CHOICES: dict[str, tuple[str, ...]] = {
        "default_backend": ("json", "sqlite"),
        "log_level": ("DEBUG", "INFO", "WARNING", "ERROR"),
    }


class Config:
    """Runtime settings. Values resolve as env > file > DEFAULTS."""

    DEFAULTS: dict[str, Any] = {
        "default_backend": "json",
        "default_format": "table",
        "log_level": "WARNING",
        "log_file": "",
        "stats_days": 7,
        "tasks_key": "tasks",
        "reviews_key": "reviews",
    }

    def __init__(self, config_dir: Path | None = None):
        self._config_dir = config_dir or get_default_config_dir()
        self._config_file = self._config_dir / "config.json"
        self._data: dict[str, Any] = {}

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def data_dir(self) -> Path:
        """Directory holding persisted snapshots."""
        return self._config_dir / "data"

    @property
    def log_path(self) -> Path | None:
        """``log_file`` as a path; relative paths sit under the config dir."""
        if not self.log_file:
            return None
        path = Path(self.log_file).expanduser()
        return path if path.is_absolute() else self._config_dir / path

    @classmethod
    def load(cls, config_dir: Path | None = None) -> "Config":
        """Read file and env. Only the default directory is cached."""
        global _config_cache

        if config_dir is None and _config_cache is not None:
            return _config_cache

        config = cls(config_dir)
        config._load_from_file()
        config._apply_env_overrides()

        if config_dir is None:
            _config_cache = config
        return config

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._data:
            return self._data[name]
        if name in self.DEFAULTS:
            return self.DEFAULTS[name]
        raise AttributeError(f"Config has no attribute '{name}'")

    def get_settings(self) -> list[tuple[str, str, Any]]:
        """(key, description, current value) for every known setting."""
        return [(name, desc, getattr(self, name)) for name, desc in ConfigMeta.SETTINGS.items()]

    def set(self, key: str, value: Any) -> None:
        """Validate, store and write the config file."""
        if key not in self.DEFAULTS:
            raise KeyError(f"Unknown setting: {key}")
        if isinstance(value, str):
            value = self._coerce(value, type(self.DEFAULTS[key]))
        self._check_choice(key, value)
        self._data[key] = value
        self._save()

    def _check_choice(self, key: str, value: Any) -> None:
        choices = ConfigMeta.CHOICES.get(key)
        if choices and value not in choices:
            raise ValueError(f"Invalid {key} '{value}'. Use: {'|'.join(choices)}")

    def _load_from_file(self) -> None:
        if not self._config_file.exists():
            return
        try:
            content = self._config_file.read_text()
            data = json.loads(content) if content.strip() else {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring corrupt config file %s", self._config_file)
            return
        if isinstance(data, dict):
            self._data = data

    def _save(self) -> None:
        self._config_dir.mkdir(parents=True, exist_ok=True)
        self._config_file.write_text(json.dumps(self._data, indent=2))

    def _apply_env_overrides(self) -> None:
        """DAYWISE_<KEY> beats the file."""
        for key, default in self.DEFAULTS.items():
            env_key = f"DAYWISE_{key.upper()}"
            if env_key not in os.environ:
                continue
            try:
                self._data[key] = self._coerce(os.environ[env_key], type(default))
            except ValueError:
                logger.warning("Ignoring %s: expected %s", env_key, type(default).__name__)

    @staticmethod
    def _coerce(value: str, target_type: type) -> Any:
        if target_type is bool:
            return value.lower() in ("true", "1", "yes")
        if target_type is int:
            return int(value)
        return value
