"""Persisted locale preference storage."""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from polycat.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PREFERENCE_FILE = Path.home() / ".config" / "polycat" / "preferences.json"


class PreferenceStore(ABC):
    """Synchronous key/value store that survives restarts."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value for ``key``, or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""


class MemoryPreferenceStore(PreferenceStore):
    """Dictionary backed store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class JsonPreferenceStore(PreferenceStore):
    """Stores preferences in a small JSON document on disk.

    A missing or corrupt file reads as empty. Writes replace the file
    atomically; a failed write is logged and leaves the previous file intact.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else DEFAULT_PREFERENCE_FILE

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable preference file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed preference file %s", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".preferences-", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.warning("Failed to persist preference %s=%s: %s", key, value, e)
