"""API routes for the audit trail."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.features.audit.schemas import AuditAction, AuditLogListResponse, TargetHistoryListResponse
from app.features.audit.service import AuditService

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get(
    "",
    response_model=AuditLogListResponse,
    summary="List audit log entries",
    description="""
Newest entries first. Filter by `action` and by creation time with `since`
and `until` (ISO 8601 timestamps).
""",
)
async def list_audit_logs(
    action: AuditAction | None = Query(None, description="Only this action"),
    since: datetime | None = Query(None, description="Created at or after"),
    until: datetime | None = Query(None, description="Created at or before"),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    """List audit log entries."""
    return await AuditService().list_logs(db, action=action, since=since, until=until, limit=limit)


@router.get(
    "/target-history",
    response_model=TargetHistoryListResponse,
    summary="List target edits with old and new values",
)
async def list_target_history(
    year: int | None = Query(None, ge=2000, le=2100),
    brand: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
) -> TargetHistoryListResponse:
    """List target edits, newest first."""
    return await AuditService().list_target_history(db, year=year, brand=brand, limit=limit)
