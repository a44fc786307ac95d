"""
Persistence adapter.

The whole state lives in one storage slot as JSON:

    {"processes": [[id, record], ...],
     "users": [[id, record], ...],
     "notifications": [...],
     "lastSync": "..."}

There is no schema versioning; anything that does not decode is treated as
"no prior state".
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from portal_sync.core.logger import logger
from portal_sync.db.models import Notification, Process, User
from portal_sync.db.storage import StorageArea
from portal_sync.utils.exceptions import SnapshotDecodeError


class SystemSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    processes: List[Tuple[str, Process]] = Field(default_factory=list)
    users: List[Tuple[str, User]] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)
    last_sync: Optional[datetime] = Field(default=None, alias="lastSync")

    @classmethod
    def capture(
        cls,
        processes: Dict[str, Process],
        users: Dict[str, User],
        notifications: List[Notification],
        last_sync: Optional[datetime],
    ) -> "SystemSnapshot":
        return cls(
            processes=list(processes.items()),
            users=list(users.items()),
            notifications=list(notifications),
            last_sync=last_sync,
        )


def encode_snapshot(snapshot: SystemSnapshot) -> str:
    return snapshot.model_dump_json(by_alias=True)


def decode_snapshot(raw: str, key: str = "snapshot") -> SystemSnapshot:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SnapshotDecodeError(key, f"invalid JSON ({e.msg})") from e
    if not isinstance(data, dict):
        raise SnapshotDecodeError(key, "expected an object")
    try:
        return SystemSnapshot.model_validate(data)
    except ValidationError as e:
        raise SnapshotDecodeError(key, f"{e.error_count()} invalid fields") from e


class PersistenceAdapter:
    def __init__(self, storage: StorageArea, key: str, source: Optional[str] = None) -> None:
        self.storage = storage
        self.key = key
        self.source = source

    def save(self, snapshot: SystemSnapshot) -> None:
        self.storage.set_item(self.key, encode_snapshot(snapshot), source=self.source)

    def read(self) -> Optional[SystemSnapshot]:
        """Stored snapshot, or None when the slot is empty or unreadable."""
        raw = self.storage.get_item(self.key)
        if raw is None:
            return None
        try:
            return decode_snapshot(raw, self.key)
        except SnapshotDecodeError as e:
            logger.error("Failed to load system data: %s", e)
            return None
