"""
User registry (login/logout/activity).
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Union

from portal_sync.core.logger import logger
from portal_sync.db.models import PORTAL_OVERSIGHT, User
from portal_sync.db.schemas import UserLogin, coerce
from portal_sync.services.event_bus import EventBus
from portal_sync.utils.helpers import utcnow

if TYPE_CHECKING:
    from portal_sync.services.notification_service import NotificationLog


class UserRegistry:
    def __init__(
        self,
        bus: EventBus,
        oversight_min_level: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.bus = bus
        self.oversight_min_level = oversight_min_level
        self.clock = clock
        self.records: Dict[str, User] = {}
        # Wired by the owning context; the log itself needs this registry first.
        self.notifications: Optional["NotificationLog"] = None

    def login(self, user_data: Union[UserLogin, Mapping[str, Any]]) -> bool:
        payload = coerce(UserLogin, user_data)
        now = self.clock()
        user = User(
            login_time=now,
            last_activity=now,
            online=True,
            **payload.model_dump(),
        )
        self.records[user.id] = user

        logger.info("User login: %s (level %d)", user.id, user.level)
        self.bus.publish("user_login", {"user_id": user.id, "user": user})
        if self.notifications is not None:
            self.notifications.create({
                "type": "user_login",
                "title": "User Connected",
                "message": f"{user.name} entered the system",
                "target_portals": [PORTAL_OVERSIGHT],
            })
        return True

    def logout(self, user_id: str) -> None:
        user = self.records.get(user_id)
        if user is None:
            return
        user.online = False
        user.logout_time = self.clock()
        self.bus.publish("user_logout", {"user_id": user_id, "user": user})

    def refresh_activity(self) -> int:
        now = self.clock()
        online = [u for u in self.records.values() if u.online]
        for user in online:
            user.last_activity = now
        return len(online)

    def get(self, user_id: str) -> Optional[User]:
        return self.records.get(user_id)

    def query(self, online: Optional[bool] = None, min_level: Optional[int] = None) -> List[User]:
        users = list(self.records.values())

        if online is not None:
            users = [u for u in users if u.online == online]

        if min_level:
            users = [u for u in users if u.level >= min_level]

        users.sort(key=lambda u: (u.login_time is None, u.login_time or 0))
        return users

    def is_oversight_user(self, user_id: str) -> bool:
        user = self.records.get(user_id)
        return user is not None and user.level >= self.oversight_min_level
