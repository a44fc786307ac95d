from datetime import datetime, timedelta, timezone

import pytest

from portal_sync.core.config import Settings
from portal_sync.db.models import PORTAL_JUDICIAL
from portal_sync.db.storage import MemoryStorage
from portal_sync.system import PortalSystem


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def test_settings():
    return Settings(SEED_SAMPLE_DATA=False, SYNC_AUTOSTART=False)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def make_system(storage, test_settings, clock):
    created = []

    def make(**overrides):
        kwargs = {
            "storage": storage,
            "settings": test_settings,
            "clock": clock,
            "start_sync": False,
        }
        kwargs.update(overrides)
        portal = PortalSystem(**kwargs)
        created.append(portal)
        return portal

    yield make
    for portal in created:
        portal.destroy()


@pytest.fixture
def system(make_system):
    return make_system()


@pytest.fixture
def login_judge(system):
    def login(user_id, name=None, level=5, permissions=(PORTAL_JUDICIAL,), online=True):
        system.login_user({
            "id": user_id,
            "name": name or f"Judge {user_id}",
            "level": level,
            "permissions": list(permissions),
        })
        if not online:
            system.logout_user(user_id)
        return user_id

    return login
