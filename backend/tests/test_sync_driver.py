import logging
import time
from datetime import datetime, timezone

import pytest

from portal_sync.db.models import Process, ProcessStatus
from portal_sync.services.background_jobs import SYNC_JOB_ID, SyncScheduler
from portal_sync.services.counter_service import COUNTER_ELEMENTS, DisplayElement, compute_counters


def test_sync_cycle_runs_sync_then_distribution_then_activity(system, clock):
    steps = []
    system.add_event_listener("system_sync", lambda data: steps.append("sync"))
    system.add_event_listener("process_updated", lambda data: steps.append("assign"))
    system.create_process({"type": "Ação Civil"})
    system.login_user({"id": "J1", "name": "Judge", "level": 5, "permissions": ["portal-judicial"]})
    clock.advance(seconds=30)

    assert system.run_sync_cycle() == 1

    assert steps == ["sync", "assign"]
    assert system.last_sync == clock.now
    assert system.get_users()[0].last_activity == clock.now


def test_perform_sync_publishes_counters(system):
    payloads = []
    system.add_event_listener("system_sync", payloads.append)
    system.create_process({"type": "Recurso Extraordinário"})

    counters = system.force_sync()

    assert payloads[0]["counters"] == counters
    assert payloads[0]["timestamp"] == system.last_sync


def test_counters(system, clock):
    system.login_user({"id": "J1", "name": "Judge", "level": 5})
    system.login_user({"id": "L1", "name": "Lawyer", "level": 2})
    system.logout_user("L1")
    appeal = system.create_process({"type": "Recurso Extraordinário"})
    decided = system.create_process({"type": "Ação Civil"})
    system.create_process({"type": "Ação Penal"})
    system.assume_process(decided, "J1", "Judge")
    system.update_process(decided, {"status": ProcessStatus.concluded})
    system.assume_process(appeal, "J1", "Judge")

    counters = system.get_system_counters()

    assert counters.active_processes == 2
    assert counters.online_users == 1
    assert counters.extraordinary_appeals == 1
    assert counters.decisions_today == 1

    clock.advance(days=1)
    assert system.get_system_counters().decisions_today == 0


def test_counters_are_pushed_to_existing_display_elements(make_system):
    display = {
        "total-active-processes": DisplayElement(),
        "online-users": DisplayElement(),
    }
    portal = make_system(display=display)
    portal.create_process({"type": "Ação Civil"})

    portal.force_sync()

    assert display["total-active-processes"].text_content == "1"
    assert display["online-users"].text_content == "0"
    assert set(display) == {"total-active-processes", "online-users"}
    assert len(COUNTER_ELEMENTS) == 4


def test_driver_start_is_an_idempotent_restart():
    driver = SyncScheduler(lambda: None, interval_seconds=30)
    assert driver.is_active is False

    driver.start()
    try:
        first_run = driver.next_run_time
        driver.start()

        assert driver.is_active is True
        assert [job.id for job in driver._scheduler.get_jobs()] == [SYNC_JOB_ID]
        job = driver._scheduler.get_job(SYNC_JOB_ID)
        assert job.trigger.interval.total_seconds() == 30
        assert job.max_instances == 1
        assert driver.next_run_time >= first_run
    finally:
        driver.stop()

    assert driver.is_active is False
    assert driver.next_run_time is None


def test_driver_stop_when_idle_is_harmless():
    driver = SyncScheduler(lambda: None)
    driver.stop()
    assert driver.is_active is False


def test_failing_tick_is_logged_not_raised(caplog):
    def tick():
        raise RuntimeError("tick exploded")

    driver = SyncScheduler(tick)
    with caplog.at_level(logging.ERROR, logger="portal_sync"):
        driver._run_tick()

    assert "Sync tick failed" in caplog.text


def test_system_controls_its_driver(system):
    assert system.sync_driver.is_active is False

    system.start_real_time_sync()
    assert system.sync_driver.is_active is True
    assert system.sync_driver.interval_seconds == system.settings.SYNC_INTERVAL_SECONDS

    system.stop_real_time_sync()
    assert system.sync_driver.is_active is False


def test_destroy_stops_the_driver(make_system):
    portal = make_system(start_sync=True)
    assert portal.sync_driver.is_active is True

    portal.destroy()

    assert portal.sync_driver.is_active is False


@pytest.fixture
def utc_minus_three(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("process time zone cannot be switched on this platform")
    monkeypatch.setenv("TZ", "BRT3")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_decisions_today_counts_from_local_midnight(utc_minus_three):
    # 02:00 UTC on the 10th is still 23:00 on the 9th at UTC-3.
    now = datetime(2026, 3, 10, 2, 0, tzinfo=timezone.utc)

    def concluded_at(updated_at):
        return Process(
            id="PROC1",
            case_number="1000000-12.2026.8.26.0001",
            status=ProcessStatus.concluded,
            created_at=updated_at,
            updated_at=updated_at,
        )

    evening = concluded_at(datetime(2026, 3, 9, 20, 0, tzinfo=timezone.utc))
    day_before = concluded_at(datetime(2026, 3, 9, 2, 0, tzinfo=timezone.utc))

    assert compute_counters([evening], [], now).decisions_today == 1
    assert compute_counters([day_before], [], now).decisions_today == 0
