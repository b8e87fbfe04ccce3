"""Key-value stores standing in for the browser's local storage.

Values are kept as serialized JSON strings, one per key, the way local
storage keeps them. ``get`` returns the decoded value or ``None``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
import os
from pathlib import Path
import tempfile
from typing import Any

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Durable key-value storage scoped to one user device."""

    @abstractmethod
    def get_raw(self, key: str) -> str | None:
        """Return the serialized value stored under ``key``."""

    @abstractmethod
    def set_raw(self, key: str, raw_value: str) -> None:
        """Store an already-serialized value under ``key``."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every key."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return all stored keys."""

    def get(self, key: str) -> Any | None:
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable value stored under %r", key)
            return None

    def set(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value, ensure_ascii=False))


class InMemoryStore(KeyValueStore):
    """Process-local store, mainly for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_raw(self, key: str) -> str | None:
        return self._items.get(key)

    def set_raw(self, key: str, raw_value: str) -> None:
        self._items[key] = raw_value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileStore(KeyValueStore):
    """Store backed by a single JSON document on disk.

    The file is re-read on every access so that a read-modify-write sequence
    always starts from what other writers (another tab, another process)
    committed last. Writes replace the file atomically.

    File access is synchronous and runs on the event loop when called from
    async routes or the autosave task. The document is one small file per
    device, so each call blocks only briefly.
    """

    def __init__(self, file_path: Path) -> None:
        self._path = Path(file_path).resolve()

    @property
    def path(self) -> Path:
        return self._path

    def get_raw(self, key: str) -> str | None:
        return self._read().get(key)

    def set_raw(self, key: str, raw_value: str) -> None:
        items = self._read()
        items[key] = raw_value
        self._write(items)

    def remove(self, key: str) -> None:
        items = self._read()
        if key in items:
            del items[key]
            self._write(items)

    def clear(self) -> None:
        self._write({})

    def keys(self) -> list[str]:
        return list(self._read())

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            document = json.loads(self._path.read_text(encoding="utf-8"))
        except ValueError:
            logger.warning("Store file %s is corrupt; treating it as empty", self._path)
            return {}
        if not isinstance(document, dict):
            return {}
        return {str(key): value for key, value in document.items() if isinstance(value, str)}

    def _write(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".store-", suffix=".json", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(items, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
