"""
Process registry.

Owns the process records together with their history and embedded lawyer
requests. Precondition failures (unknown id, wrong status) are reported by
the return value, never raised.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union

from portal_sync.core.logger import logger
from portal_sync.db.models import (
    PORTAL_ALL,
    PORTAL_LAWYER,
    PROCESS_TRANSITIONS,
    LawyerRequest,
    Process,
    ProcessStatus,
    HistoryEntry,
)
from portal_sync.db.schemas import ProcessCreate, ProcessPatch, coerce
from portal_sync.services.event_bus import EventBus
from portal_sync.services.notification_service import NotificationLog
from portal_sync.utils.helpers import generate_id, generate_process_number, utcnow

SYSTEM_ACTOR = "system"


class ProcessRegistry:
    def __init__(
        self,
        bus: EventBus,
        notifications: NotificationLog,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.bus = bus
        self.notifications = notifications
        self.clock = clock
        self.records: Dict[str, Process] = {}

    # ── Mutations ─────────────────────────────────────────────────────────────

    def create(self, data: Union[ProcessCreate, Mapping[str, Any]]) -> str:
        payload = coerce(ProcessCreate, data)
        now = self.clock()
        process = Process(
            id=generate_id("PROC", taken=self.records),
            case_number=generate_process_number(now.year),
            status=ProcessStatus.pending,
            created_at=now,
            updated_at=now,
            history=[],
            **payload.model_dump(),
        )
        self.records[process.id] = process
        self.add_history(process.id, "Process created", payload.plaintiff or SYSTEM_ACTOR)

        logger.info("Process created: %s (%s)", process.id, process.case_number)
        self.bus.publish("process_created", {"process_id": process.id, "process": process})
        return process.id

    def update(
        self,
        process_id: str,
        patch: Union[ProcessPatch, Mapping[str, Any]],
        actor: str = SYSTEM_ACTOR,
    ) -> bool:
        patch = coerce(ProcessPatch, patch)
        process = self.records.get(process_id)
        if process is None:
            return False

        updates = patch.model_dump(exclude_unset=True)
        old_status = process.status
        new_status = updates.get("status")
        if new_status is not None and new_status != old_status:
            if new_status not in PROCESS_TRANSITIONS[old_status]:
                logger.warning(
                    "Rejected status change for %s: %s → %s",
                    process_id, old_status.value, new_status.value,
                )
                return False

        for field, value in updates.items():
            setattr(process, field, value)
        process.updated_at = self.clock()

        self.add_history(
            process_id,
            f"Status changed: {old_status.value} → {process.status.value}",
            actor,
        )
        self.bus.publish(
            "process_updated",
            {"process_id": process_id, "process": process, "updates": updates},
        )
        return True

    def assume(self, process_id: str, judge_id: str, judge_name: str) -> bool:
        process = self.records.get(process_id)
        if process is None or process.status != ProcessStatus.pending:
            return False

        patch = ProcessPatch(
            status=ProcessStatus.in_progress,
            assigned_judge_id=judge_id,
            assigned_judge_name=judge_name,
            assumed_at=self.clock(),
        )
        self.update(process_id, patch, judge_name)
        self.add_history(process_id, f"Process assumed by {judge_name}", judge_name)

        self.notifications.create({
            "type": "process_assumed",
            "title": "Process Assumed",
            "message": f"{judge_name} assumed process {process.case_number}",
            "process_id": process_id,
            "target_portals": [PORTAL_ALL],
        })
        return True

    def request_lawyer(
        self,
        process_id: str,
        judge_id: str,
        lawyer_id: str,
        reason: str = "",
    ) -> Optional[str]:
        process = self.records.get(process_id)
        if process is None:
            return None

        request = LawyerRequest(
            id=generate_id("REQ", taken=self._request_ids()),
            process_id=process_id,
            judge_id=judge_id,
            lawyer_id=lawyer_id,
            reason=reason,
            created_at=self.clock(),
        )
        process.lawyer_requests.append(request)

        self.bus.publish("lawyer_requested", {"request": request, "process": process})
        self.notifications.create({
            "type": "lawyer_request",
            "title": "Lawyer Request",
            "message": f"You were requested for process {process.case_number}",
            "process_id": process_id,
            "target_user": lawyer_id,
            "target_portals": [PORTAL_LAWYER],
        })
        return request.id

    def add_history(self, process_id: str, action: str, user: str) -> None:
        process = self.records.get(process_id)
        if process is not None:
            process.history.append(HistoryEntry(action=action, user=user, timestamp=self.clock()))

    def _request_ids(self) -> Set[str]:
        return {r.id for p in self.records.values() for r in p.lawyer_requests}

    # ── Queries ───────────────────────────────────────────────────────────────

    def get(self, process_id: str) -> Optional[Process]:
        return self.records.get(process_id)

    def query(
        self,
        status: Optional[ProcessStatus] = None,
        judge_id: Optional[str] = None,
    ) -> List[Process]:
        """Snapshot list ordered by creation time."""
        processes = list(self.records.values())

        if status:
            processes = [p for p in processes if p.status == status]

        if judge_id:
            processes = [p for p in processes if p.assigned_judge_id == judge_id]

        processes.sort(key=lambda p: p.created_at)
        return processes

    def workload(self, judge_id: str) -> int:
        return sum(
            1 for p in self.records.values()
            if p.assigned_judge_id == judge_id and p.status == ProcessStatus.in_progress
        )
