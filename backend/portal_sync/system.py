"""
Portal system context.

One ``PortalSystem`` per portal instance ("tab"). It owns the three
registries, the event bus, the persistence adapter and the periodic sync
driver, and exposes the operations the portal UIs call. Instances sharing a
storage area see each other's broadcasts and reload their state when a
sibling creates/updates a process or logs a user in.

    storage = MemoryStorage()
    judicial = PortalSystem(storage=storage)
    oversight = PortalSystem(storage=storage)
    ...
    judicial.destroy()
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, List, Mapping, Optional, Union

from portal_sync.core.config import Settings, settings as default_settings
from portal_sync.core.logger import logger
from portal_sync.db.models import Notification, Process, ProcessStatus, SystemCounters, User
from portal_sync.db.schemas import NotificationCreate, ProcessCreate, ProcessPatch, UserLogin
from portal_sync.db.seed import seed_sample_processes
from portal_sync.db.storage import StorageArea, StorageEvent, storage_from_settings
from portal_sync.services.background_jobs import SyncScheduler
from portal_sync.services.counter_service import DisplayBoard, compute_counters, render_counters
from portal_sync.services.distribution_service import AutoDistributionPolicy
from portal_sync.services.event_bus import RELOAD_EVENTS, EventBus, EventHandler, parse_signal
from portal_sync.services.notification_service import NotificationLog
from portal_sync.services.persistence_service import PersistenceAdapter, SystemSnapshot
from portal_sync.services.process_service import SYSTEM_ACTOR, ProcessRegistry
from portal_sync.services.user_service import UserRegistry
from portal_sync.utils.helpers import truncate_text, utcnow


class PortalSystem:
    def __init__(
        self,
        storage: Optional[StorageArea] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        display: Optional[DisplayBoard] = None,
        start_sync: Optional[bool] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.clock = clock or utcnow
        self.storage = storage if storage is not None else storage_from_settings(self.settings.STORAGE_DIR)
        self.display: DisplayBoard = display if display is not None else {}
        self.last_sync: Optional[datetime] = None

        # Scheduler ticks run on a worker thread; every public operation holds this lock.
        self._lock = threading.RLock()
        self._depth = 0
        self._reload_pending = False
        self._ready = False
        self._storage_token = self.storage.attach(self._on_storage_event)

        s = self.settings
        self.bus = EventBus(self.storage, s.LAST_UPDATE_KEY, source=self._storage_token, clock=self.clock)
        self.bus.pre_signal = self._autosave
        self.users = UserRegistry(self.bus, s.OVERSIGHT_MIN_LEVEL, clock=self.clock)
        self.notifications = NotificationLog(self.bus, self.users.is_oversight_user, clock=self.clock)
        self.users.notifications = self.notifications
        self.processes = ProcessRegistry(self.bus, self.notifications, clock=self.clock)
        self.distribution = AutoDistributionPolicy(
            self.processes,
            self.users,
            self.notifications,
            max_per_cycle=s.MAX_PER_CYCLE,
            max_judge_workload=s.MAX_JUDGE_WORKLOAD,
            judge_min_level=s.JUDGE_MIN_LEVEL,
        )
        self.persistence = PersistenceAdapter(self.storage, s.STORAGE_KEY, source=self._storage_token)
        self.sync_driver = SyncScheduler(self.run_sync_cycle, interval_seconds=s.SYNC_INTERVAL_SECONDS)

        self.load(seed_if_empty=s.SEED_SAMPLE_DATA)
        self._ready = True

        if start_sync is None:
            start_sync = s.SYNC_AUTOSTART
        if start_sync:
            self.start_real_time_sync()

        logger.info("%s started", s.APP_NAME)

    def __enter__(self) -> "PortalSystem":
        return self

    def __exit__(self, *exc) -> None:
        self.destroy()

    @contextmanager
    def _locked(self):
        with self._lock:
            self._depth += 1
            outermost = self._depth == 1
            try:
                if outermost:
                    self._apply_pending_reload()
                    self.bus.hold()
                yield
            finally:
                try:
                    if outermost:
                        # Autosave and sibling signals only for the finished operation.
                        self.bus.flush()
                        self._apply_pending_reload()
                finally:
                    self._depth -= 1

    # ── Processes ─────────────────────────────────────────────────────────────

    def create_process(self, data: Union[ProcessCreate, Mapping[str, Any]]) -> str:
        with self._locked():
            return self.processes.create(data)

    def update_process(
        self,
        process_id: str,
        updates: Union[ProcessPatch, Mapping[str, Any]],
        user_id: str = SYSTEM_ACTOR,
    ) -> bool:
        with self._locked():
            return self.processes.update(process_id, updates, user_id)

    def assume_process(self, process_id: str, judge_id: str, judge_name: str) -> bool:
        with self._locked():
            return self.processes.assume(process_id, judge_id, judge_name)

    def request_lawyer(self, process_id: str, judge_id: str, lawyer_id: str, reason: str = "") -> Optional[str]:
        with self._locked():
            return self.processes.request_lawyer(process_id, judge_id, lawyer_id, reason)

    def get_process(self, process_id: str) -> Optional[Process]:
        with self._locked():
            process = self.processes.get(process_id)
            return process.model_copy(deep=True) if process is not None else None

    def get_processes(
        self,
        status: Optional[ProcessStatus] = None,
        judge_id: Optional[str] = None,
    ) -> List[Process]:
        with self._locked():
            return [p.model_copy(deep=True) for p in self.processes.query(status=status, judge_id=judge_id)]

    def get_judge_workload(self, judge_id: str) -> int:
        with self._locked():
            return self.processes.workload(judge_id)

    # ── Users ─────────────────────────────────────────────────────────────────

    def login_user(self, user_data: Union[UserLogin, Mapping[str, Any]]) -> bool:
        with self._locked():
            return self.users.login(user_data)

    def logout_user(self, user_id: str) -> None:
        with self._locked():
            self.users.logout(user_id)

    def get_users(self, online: Optional[bool] = None, min_level: Optional[int] = None) -> List[User]:
        with self._locked():
            return [u.model_copy(deep=True) for u in self.users.query(online=online, min_level=min_level)]

    # ── Notifications ─────────────────────────────────────────────────────────

    def create_notification(self, data: Union[NotificationCreate, Mapping[str, Any]]) -> str:
        with self._locked():
            return self.notifications.create(data)

    def get_notifications(self, user_id: Optional[str] = None, unread_only: bool = False) -> List[Notification]:
        with self._locked():
            return [n.model_copy(deep=True) for n in self.notifications.query(user_id, unread_only)]

    def mark_notification_read(self, notification_id: str) -> bool:
        with self._locked():
            return self.notifications.mark_read(notification_id)

    # ── Events ────────────────────────────────────────────────────────────────

    def add_event_listener(self, event: str, callback: EventHandler) -> None:
        self.bus.subscribe(event, callback)

    def _on_storage_event(self, event: StorageEvent) -> None:
        if not self._ready or event.key != self.settings.LAST_UPDATE_KEY:
            return
        signal = parse_signal(event.new_value)
        if signal is None:
            logger.warning("Ignoring malformed update signal: %s", truncate_text(event.new_value or ""))
            return
        self.handle_external_update(signal)

    def handle_external_update(self, update: Mapping[str, Any]) -> bool:
        """
        Reacts to a sibling's broadcast. Returns True when a reload was
        applied or queued. Never blocks: if this instance is busy the reload
        runs when its current operation finishes, or at the next one.
        """
        logger.info("Update received from another portal: %s", update.get("event"))
        if update.get("event") not in RELOAD_EVENTS:
            return False

        if not self._lock.acquire(blocking=False):
            self._reload_pending = True
            return True
        try:
            if self._depth > 0:
                self._reload_pending = True
            else:
                self._reload_from_storage()
        finally:
            self._lock.release()
        return True

    def _apply_pending_reload(self) -> None:
        if self._reload_pending:
            self._reload_pending = False
            self._reload_from_storage()

    def _reload_from_storage(self) -> None:
        snapshot = self.persistence.read()
        if snapshot is not None:
            self._apply_snapshot(snapshot)

    def _autosave(self, events: List[str]) -> None:
        if self.settings.AUTOSAVE and RELOAD_EVENTS.intersection(events):
            self.save()

    # ── Sync ──────────────────────────────────────────────────────────────────

    def get_system_counters(self) -> SystemCounters:
        with self._locked():
            return compute_counters(
                self.processes.records.values(),
                self.users.records.values(),
                self.clock(),
            )

    def update_system_counters(self) -> SystemCounters:
        counters = self.get_system_counters()
        render_counters(self.display, counters)
        return counters

    def perform_sync(self) -> SystemCounters:
        with self._locked():
            now = self.clock()
            self.last_sync = now
            counters = self.update_system_counters()
            self.notifications.prune(now, timedelta(hours=self.settings.NOTIFICATION_RETENTION_HOURS))
            self.bus.publish("system_sync", {"timestamp": now, "counters": counters})
            return counters

    force_sync = perform_sync

    def auto_distribute(self) -> int:
        with self._locked():
            return self.distribution.run()

    def run_sync_cycle(self) -> int:
        """One scheduler tick; returns the number of processes distributed."""
        with self._locked():
            self.perform_sync()
            distributed = self.auto_distribute()
            self.users.refresh_activity()
            return distributed

    def start_real_time_sync(self) -> None:
        self.sync_driver.start()

    def stop_real_time_sync(self) -> None:
        self.sync_driver.stop()

    # ── Persistence ───────────────────────────────────────────────────────────

    def save(self) -> None:
        with self._locked():
            self.persistence.save(SystemSnapshot.capture(
                self.processes.records,
                self.users.records,
                self.notifications.items,
                self.last_sync,
            ))

    def load(self, seed_if_empty: bool = True) -> bool:
        """
        Replaces the in-memory state with the stored snapshot. Returns False
        when nothing usable was stored, after seeding sample data if asked.
        """
        with self._locked():
            snapshot = self.persistence.read()
            if snapshot is not None:
                self._apply_snapshot(snapshot)
                return True
            if seed_if_empty:
                seed_sample_processes(self.processes)
            return False

    def _apply_snapshot(self, snapshot: SystemSnapshot) -> None:
        self.processes.records = dict(snapshot.processes)
        self.users.records = dict(snapshot.users)
        self.notifications.items = list(snapshot.notifications)
        if snapshot.last_sync is not None:
            self.last_sync = snapshot.last_sync

    # ── Cleanup ───────────────────────────────────────────────────────────────

    def destroy(self) -> None:
        self.stop_real_time_sync()
        self.save()
        self.storage.detach(self._storage_token)
        self._ready = False
        logger.info("%s stopped", self.settings.APP_NAME)
