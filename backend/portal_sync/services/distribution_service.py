"""
Auto-distribution of pending processes to judges.

One run per sync tick:
  1. pending processes, most urgent first (alta > media > baixa/unset)
  2. judges that are online, at or above the judge level, hold the
     judicial portal permission and are below the workload cap
  3. at most ``max_per_cycle`` processes are considered
  4. each goes to the judge with the lowest current workload; workloads
     are recounted from the registry on every pick
  5. one summary notification when anything was assigned
"""
from __future__ import annotations

from typing import List

from portal_sync.core.logger import logger
from portal_sync.db.models import (
    PORTAL_JUDICIAL,
    PORTAL_OVERSIGHT,
    ProcessStatus,
    User,
    urgency_rank,
)
from portal_sync.services.notification_service import NotificationLog
from portal_sync.services.process_service import ProcessRegistry
from portal_sync.services.user_service import UserRegistry


class AutoDistributionPolicy:
    def __init__(
        self,
        processes: ProcessRegistry,
        users: UserRegistry,
        notifications: NotificationLog,
        max_per_cycle: int = 5,
        max_judge_workload: int = 10,
        judge_min_level: int = 4,
    ) -> None:
        self.processes = processes
        self.users = users
        self.notifications = notifications
        self.max_per_cycle = max_per_cycle
        self.max_judge_workload = max_judge_workload
        self.judge_min_level = judge_min_level

    def eligible_judges(self) -> List[User]:
        return [
            u for u in self.users.records.values()
            if u.online
            and u.level >= self.judge_min_level
            and PORTAL_JUDICIAL in u.permissions
            and self.processes.workload(u.id) < self.max_judge_workload
        ]

    def run(self) -> int:
        pending = self.processes.query(status=ProcessStatus.pending)
        pending.sort(key=lambda p: urgency_rank(p.urgency), reverse=True)

        judges = self.eligible_judges()
        distributed = 0

        for process in pending[: self.max_per_cycle]:
            # Judges at the cap drop out for the rest of the cycle.
            judges = [j for j in judges if self.processes.workload(j.id) < self.max_judge_workload]
            if not judges:
                break

            judges.sort(key=lambda j: self.processes.workload(j.id))
            judge = judges[0]

            if self.processes.assume(process.id, judge.id, judge.name):
                distributed += 1

        if distributed > 0:
            logger.info("Auto-distribution: %d processes distributed", distributed)
            self.notifications.create({
                "type": "auto_distribution",
                "title": "Automatic Distribution",
                "message": f"{distributed} processes were distributed automatically",
                "target_portals": [PORTAL_OVERSIGHT, PORTAL_JUDICIAL],
            })

        return distributed
