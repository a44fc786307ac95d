"""
Aggregate counters and the display board they are pushed to.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, MutableMapping

from portal_sync.db.models import (
    EXTRAORDINARY_APPEAL_TYPE,
    Process,
    ProcessStatus,
    SystemCounters,
    User,
)

# Display element id → counter field
COUNTER_ELEMENTS = {
    "total-active-processes": "active_processes",
    "online-users": "online_users",
    "total-extraordinary-appeals": "extraordinary_appeals",
    "decisions-today": "decisions_today",
}


@dataclass
class DisplayElement:
    text_content: str = ""


DisplayBoard = MutableMapping[str, DisplayElement]


def compute_counters(
    processes: Iterable[Process],
    users: Iterable[User],
    now: datetime,
) -> SystemCounters:
    processes = list(processes)
    # Decisions count from local midnight of the host.
    start_of_day = now.astimezone().replace(hour=0, minute=0, second=0, microsecond=0)

    return SystemCounters(
        active_processes=sum(1 for p in processes if p.status != ProcessStatus.concluded),
        online_users=sum(1 for u in users if u.online),
        extraordinary_appeals=sum(1 for p in processes if p.type == EXTRAORDINARY_APPEAL_TYPE),
        decisions_today=sum(
            1 for p in processes
            if p.status == ProcessStatus.concluded and p.updated_at >= start_of_day
        ),
    )


def update_element_if_exists(display: DisplayBoard, element_id: str, value) -> None:
    element = display.get(element_id)
    if element is not None:
        element.text_content = str(value)


def render_counters(display: DisplayBoard, counters: SystemCounters) -> None:
    for element_id, field in COUNTER_ELEMENTS.items():
        update_element_if_exists(display, element_id, getattr(counters, field))
