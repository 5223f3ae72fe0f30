"""
Draft Key-Value Storage - Fallback Sink for Autosave

When no save callback is supplied, the autosave controller writes the
serialized draft to a key-value store under a configured key. Two stores are
provided: an in-memory store for tests and single-process use, and a JSON
file store that survives restarts.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Final, Optional, Protocol


logger = logging.getLogger(__name__)


# =============================================================================
# Storage Configuration
# =============================================================================

DEFAULT_STORE_PATH: Final[str] = "data/autosave.json"


# =============================================================================
# Protocol
# =============================================================================


class KeyValueStore(Protocol):
    """Minimal durable string store."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...


# =============================================================================
# Memory Store
# =============================================================================


class MemoryStore:
    """In-memory key-value store."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._data)


# =============================================================================
# JSON File Store
# =============================================================================


class JsonFileStore:
    """
    Key-value store persisted as a single JSON object on disk.

    Writes go to a temporary file in the same directory and are moved into
    place, so a crash mid-write never leaves a truncated file.
    """

    def __init__(self, path: Optional[str] = None):
        """
        Initialise file store.

        Args:
            path: JSON file path. Defaults to data/autosave.json.
        """
        self._path = Path(path or DEFAULT_STORE_PATH)
        self._data: dict[str, str] = {}
        if self._path.exists():
            self._load()

    @property
    def path(self) -> Path:
        """Get backing file path."""
        return self._path

    def _load(self) -> None:
        try:
            raw = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load autosave store %s: %s", self._path, e)
            return
        if isinstance(raw, dict):
            self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".autosave-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as handle:
                json.dump(self._data, handle, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        self._flush()
        return True
