"""Persisted client state storage.

A small key/value store standing in for browser local storage. Values are
JSON-compatible objects; each key is written whole on every change.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "cart-storage"
CHECKOUT_STORAGE_KEY = "checkout-storage"
LATEST_ORDER_KEY = "latestOrder"


class StateStorage(Protocol):
    """Key/value persistence boundary for client state."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage, used for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        # Stored as JSON text; callers never share mutable state with the store
        raw = json.dumps(value)
        with self._lock:
            self._data[key] = raw

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileStorage:
    """Storage writing one JSON document per key under a directory."""

    def __init__(self, directory: Path) -> None:
        """Initialize file storage.

        Args:
            directory: Directory holding the state files. Created on first write.
        """
        self.directory = Path(directory)
        self._lock = Lock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Any | None:
        """Read a stored value.

        Args:
            key: Storage key.

        Returns:
            The decoded value, or None if missing or unreadable.
        """
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Discarding unreadable state for %s: %s", key, str(e))
            return None

    def set(self, key: str, value: Any) -> None:
        """Write a value atomically.

        Args:
            key: Storage key.
            value: JSON-compatible value.
        """
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(value), encoding="utf-8")
            os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        """Remove a stored value if present."""
        with self._lock:
            self._path(key).unlink(missing_ok=True)
