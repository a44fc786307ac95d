"""
Pydantic validation schemas for inbound payloads
"""
from datetime import datetime
from typing import Any, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from portal_sync.db.models import ProcessStatus, Urgency
from portal_sync.utils.exceptions import InvalidPatchError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ============================================================================
# Process Schemas
# ============================================================================

class ProcessCreate(_Strict):
    type: Optional[str] = None
    plaintiff: Optional[str] = None
    defendant: Optional[str] = None
    urgency: Optional[Urgency] = None
    description: Optional[str] = None


class ProcessPatch(_Strict):
    """Every field a caller may change on an existing process"""
    type: Optional[str] = None
    plaintiff: Optional[str] = None
    defendant: Optional[str] = None
    urgency: Optional[Urgency] = None
    description: Optional[str] = None
    status: Optional[ProcessStatus] = None
    assigned_judge_id: Optional[str] = None
    assigned_judge_name: Optional[str] = None
    assumed_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def status_not_null(cls, v: Optional[ProcessStatus]) -> ProcessStatus:
        # Leaving status out keeps it; it can never be cleared.
        if v is None:
            raise ValueError("status cannot be null")
        return v


# ============================================================================
# User Schemas
# ============================================================================

class UserLogin(_Strict):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    level: int = Field(1, ge=0)
    permissions: List[str] = Field(default_factory=list)

    @field_validator("permissions")
    @classmethod
    def dedupe_permissions(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(p.strip() for p in v if p and p.strip()))


# ============================================================================
# Notification Schemas
# ============================================================================

class NotificationCreate(_Strict):
    type: str = Field(..., min_length=1)
    title: str = ""
    message: str = ""
    process_id: Optional[str] = None
    target_user: Optional[str] = None
    target_portals: List[str] = Field(default_factory=list)


def coerce(schema: Type[SchemaT], data: Union[SchemaT, Mapping[str, Any]]) -> SchemaT:
    """Accept a schema instance or a plain mapping; unknown keys are rejected."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(dict(data))
    except ValidationError as e:
        raise InvalidPatchError(schema.__name__, e) from e
