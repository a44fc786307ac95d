# portal_sync/db/models.py

"""
Portal Records

In-memory records owned by the registries. Cross-references between
records (judge on a process, target user on a notification) are plain
ids, never object links.
"""

import enum
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Enums
# ============================================================================

class ProcessStatus(str, enum.Enum):
    """Process lifecycle status"""
    pending = "pending"
    in_progress = "in_progress"
    concluded = "concluded"


class Urgency(str, enum.Enum):
    """Urgency levels used by auto-distribution"""
    alta = "alta"
    media = "media"
    baixa = "baixa"


class LawyerRequestStatus(str, enum.Enum):
    pending = "pending"


# Allowed status moves; staying in the same status is always accepted.
PROCESS_TRANSITIONS = {
    ProcessStatus.pending: {ProcessStatus.in_progress},
    ProcessStatus.in_progress: {ProcessStatus.concluded},
    ProcessStatus.concluded: set(),
}

URGENCY_RANK = {
    Urgency.alta: 3,
    Urgency.media: 2,
    Urgency.baixa: 1,
}

# Portal tags used for notification targeting
PORTAL_ALL = "all"
PORTAL_OVERSIGHT = "portal-stf"
PORTAL_JUDICIAL = "portal-judicial"
PORTAL_LAWYER = "portal-advogado"

EXTRAORDINARY_APPEAL_TYPE = "Recurso Extraordinário"


def urgency_rank(urgency: Optional[Urgency]) -> int:
    """Unset urgency ranks with baixa"""
    return URGENCY_RANK.get(urgency, 1)


# ============================================================================
# Process
# ============================================================================

class HistoryEntry(BaseModel):
    action: str
    user: str
    timestamp: datetime


class LawyerRequest(BaseModel):
    """Request for counsel, embedded in its parent process"""
    id: str
    process_id: str
    judge_id: str
    lawyer_id: str
    reason: str = ""
    status: LawyerRequestStatus = LawyerRequestStatus.pending
    created_at: datetime


class Process(BaseModel):
    id: str
    case_number: str
    type: Optional[str] = None
    plaintiff: Optional[str] = None
    defendant: Optional[str] = None
    urgency: Optional[Urgency] = None
    description: Optional[str] = None
    status: ProcessStatus = ProcessStatus.pending
    assigned_judge_id: Optional[str] = None
    assigned_judge_name: Optional[str] = None
    assumed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    history: List[HistoryEntry] = Field(default_factory=list)
    lawyer_requests: List[LawyerRequest] = Field(default_factory=list)


# ============================================================================
# User
# ============================================================================

class User(BaseModel):
    id: str
    name: str
    level: int = 1
    permissions: List[str] = Field(default_factory=list)
    online: bool = False
    login_time: Optional[datetime] = None
    logout_time: Optional[datetime] = None
    last_activity: Optional[datetime] = None


# ============================================================================
# Notification
# ============================================================================

class Notification(BaseModel):
    id: str
    type: str
    title: str
    message: str
    process_id: Optional[str] = None
    target_user: Optional[str] = None
    target_portals: List[str] = Field(default_factory=list)
    created_at: datetime
    read: bool = False

    def is_visible_to(self, user_id: str, is_oversight: bool) -> bool:
        return (
            self.target_user == user_id
            or PORTAL_ALL in self.target_portals
            or (PORTAL_OVERSIGHT in self.target_portals and is_oversight)
        )


# ============================================================================
# Counters
# ============================================================================

class SystemCounters(BaseModel):
    active_processes: int = 0
    online_users: int = 0
    extraordinary_appeals: int = 0
    decisions_today: int = 0
