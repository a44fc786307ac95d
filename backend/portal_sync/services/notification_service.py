"""
Notification log.

Append-only list of notifications with per-user visibility. Entries older
than the retention window are dropped on each sync tick.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, List, Mapping, Optional, Union

from portal_sync.core.logger import logger
from portal_sync.db.models import Notification
from portal_sync.db.schemas import NotificationCreate, coerce
from portal_sync.services.event_bus import EventBus
from portal_sync.utils.helpers import generate_id, utcnow


class NotificationLog:
    def __init__(
        self,
        bus: EventBus,
        is_oversight_user: Callable[[str], bool],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.bus = bus
        self.is_oversight_user = is_oversight_user
        self.clock = clock
        self.items: List[Notification] = []

    def create(self, data: Union[NotificationCreate, Mapping[str, Any]]) -> str:
        payload = coerce(NotificationCreate, data)
        notification = Notification(
            id=generate_id("NOT", taken={n.id for n in self.items}),
            created_at=self.clock(),
            read=False,
            **payload.model_dump(),
        )
        self.items.append(notification)
        self.bus.publish("notification_created", {"notification": notification})
        return notification.id

    def query(self, user_id: Optional[str] = None, unread_only: bool = False) -> List[Notification]:
        """Newest first. Without ``user_id`` the whole log is returned."""
        notifications = list(self.items)

        if user_id:
            oversight = self.is_oversight_user(user_id)
            notifications = [n for n in notifications if n.is_visible_to(user_id, oversight)]

        if unread_only:
            notifications = [n for n in notifications if not n.read]

        notifications.sort(key=lambda n: n.created_at, reverse=True)
        return notifications

    def mark_read(self, notification_id: str) -> bool:
        for notification in self.items:
            if notification.id == notification_id:
                notification.read = True
                return True
        return False

    def prune(self, now: datetime, retention: timedelta) -> int:
        """Drop entries created at or before ``now - retention``."""
        cutoff = now - retention
        kept = [n for n in self.items if n.created_at > cutoff]
        dropped = len(self.items) - len(kept)
        self.items = kept
        if dropped:
            logger.info("Pruned %d notifications older than %s", dropped, cutoff.isoformat())
        return dropped
