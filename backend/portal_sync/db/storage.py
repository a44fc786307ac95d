"""
Storage areas shared by sibling portal instances.

A storage area is a flat string key/value store, the stand-in for a
browser's local storage. Every instance attaches a listener; a write made
by one instance is announced to all *other* attached instances as a
``StorageEvent``. Delivery is synchronous, in-process and at-most-once: a
listener that raises loses that event and nothing is retried.
"""
from __future__ import annotations

import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Callable, Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)


class StorageEvent(NamedTuple):
    key: str
    old_value: Optional[str]
    new_value: Optional[str]


StorageListener = Callable[[StorageEvent], None]


class StorageArea:
    """Base class; subclasses provide ``_read``, ``_write`` and ``_delete``."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._listeners: Dict[str, StorageListener] = {}

    # ── Listeners ─────────────────────────────────────────────────────────────

    def attach(self, listener: StorageListener) -> str:
        token = uuid.uuid4().hex
        with self._lock:
            self._listeners[token] = listener
        return token

    def detach(self, token: str) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    # ── Key/value access ──────────────────────────────────────────────────────

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read(key)

    def set_item(self, key: str, value: str, source: Optional[str] = None) -> None:
        with self._lock:
            old_value = self._read(key)
            self._write(key, value)
            listeners = self._others(source)
        self._dispatch(listeners, StorageEvent(key, old_value, value))

    def remove_item(self, key: str, source: Optional[str] = None) -> None:
        with self._lock:
            old_value = self._read(key)
            if old_value is None:
                return
            self._delete(key)
            listeners = self._others(source)
        self._dispatch(listeners, StorageEvent(key, old_value, None))

    def _others(self, source: Optional[str]) -> list:
        return [cb for token, cb in self._listeners.items() if token != source]

    def _dispatch(self, listeners: list, event: StorageEvent) -> None:
        # Runs outside the area lock so a listener may read the area back.
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Storage listener failed for key %s", event.key)

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, value: str) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(StorageArea):
    """Lives as long as the interpreter; share one instance between siblings."""

    def __init__(self) -> None:
        super().__init__()
        self._items: Dict[str, str] = {}

    def _read(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def _write(self, key: str, value: str) -> None:
        self._items[key] = value

    def _delete(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage(StorageArea):
    """One ``<key>.json`` file per key inside ``directory``."""

    def __init__(self, directory: str | os.PathLike) -> None:
        super().__init__()
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def _delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def storage_from_settings(storage_dir: str) -> StorageArea:
    if storage_dir.strip():
        return FileStorage(storage_dir.strip())
    return MemoryStorage()
