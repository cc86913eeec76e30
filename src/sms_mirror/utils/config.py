"""Configuration management for SMS Mirror."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .timefmt import HOUR_MS

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "sms-mirror"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Gap between two messages that starts a new visual thread
DEFAULT_THREAD_BREAK_MS = HOUR_MS


class Config:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_file: Path | None = None) -> None:
        self.config_file = config_file or CONFIG_FILE
        self._config: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from disk."""
        if self.config_file.exists():
            try:
                self._config = json.loads(self.config_file.read_text())
            except json.JSONDecodeError as e:
                logger.warning("Ignoring unreadable config %s: %s", self.config_file, e)
                self._config = {}
        else:
            self._config = {}

        if not isinstance(self._config, dict):
            logger.warning("Ignoring config %s: not a JSON object", self.config_file)
            self._config = {}

    def _save(self) -> None:
        """Save configuration to disk."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(json.dumps(self._config, indent=2))

    @property
    def thread_break_ms(self) -> int:
        """Get the gap (in milliseconds) that breaks a visual thread."""
        value = self._config.get("thread_break_ms")
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return DEFAULT_THREAD_BREAK_MS

    @thread_break_ms.setter
    def thread_break_ms(self, value: int) -> None:
        """Set the thread break gap."""
        if value <= 0:
            raise ValueError("thread break must be positive")
        self._config["thread_break_ms"] = int(value)
        self._save()

    @property
    def cache_path(self) -> Path:
        """Get the path of the message cache database."""
        value = self._config.get("cache_path")
        if value:
            return Path(value).expanduser()
        return self.config_file.parent / "cache.db"

    @cache_path.setter
    def cache_path(self, value: Path | str) -> None:
        """Set the path of the message cache database."""
        self._config["cache_path"] = str(value)
        self._save()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        self._config[key] = value
        self._save()
