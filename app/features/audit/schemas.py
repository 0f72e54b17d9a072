"""Pydantic schemas for the audit trail."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

AuditAction = Literal[
    "kpi_target_update",
    "brand_created",
    "brand_updated",
    "brand_deleted",
    "data_upload",
]


class Actor(BaseModel):
    """User an audited action is attributed to; every field may be unknown."""

    user_id: str | None = Field(None, max_length=64)
    user_email: str | None = Field(None, max_length=255)
    user_role: str | None = Field(None, max_length=30)


class AuditLogResponse(BaseModel):
    """One audit log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str | None
    user_email: str | None
    user_role: str | None
    action: str
    action_details: dict[str, Any]
    reference_id: str | None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Newest entries first."""

    logs: list[AuditLogResponse]
    total: int = Field(..., ge=0)


class TargetHistoryResponse(BaseModel):
    """One target edit."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    year: int
    brand: str
    channel: str
    period: str
    old_value: Decimal | None
    new_value: Decimal
    changed_by: str | None
    created_at: datetime


class TargetHistoryListResponse(BaseModel):
    """Target edits, newest first."""

    history: list[TargetHistoryResponse]
    total: int = Field(..., ge=0)
