"""Service layer for the audit trail.

Entries are added to the caller's session and committed with the change
they describe, so an edit and its audit row land together.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.features.audit.schemas import (
    Actor,
    AuditAction,
    AuditLogListResponse,
    AuditLogResponse,
    TargetHistoryListResponse,
    TargetHistoryResponse,
)
from app.features.data_platform.models import AuditLog, TargetHistory

logger = get_logger(__name__)


def _money(value: Decimal | float | None) -> float | None:
    return None if value is None else float(value)


class AuditService:
    """Write and query audit log entries and target history."""

    def record(
        self,
        db: AsyncSession,
        action: AuditAction,
        details: dict[str, Any],
        actor: Actor | None = None,
        reference_id: str | None = None,
    ) -> AuditLog:
        """Add an audit entry to the session (committed by the caller).

        Args:
            db: Session the audited change is written through.
            action: Action name.
            details: JSON-serializable payload.
            actor: User the action is attributed to.
            reference_id: Correlation id.

        Returns:
            The pending AuditLog.
        """
        actor = actor or Actor()
        entry = AuditLog(
            user_id=actor.user_id,
            user_email=actor.user_email,
            user_role=actor.user_role,
            action=action,
            action_details=details,
            reference_id=reference_id,
        )
        db.add(entry)
        logger.info("audit.recorded", action=action, user_id=actor.user_id)
        return entry

    def record_target_change(
        self,
        db: AsyncSession,
        year: int,
        brand: str,
        channel: str,
        period: str,
        old_value: Decimal | None,
        new_value: Decimal,
        actor: Actor | None = None,
    ) -> None:
        """Record a target edit in both the audit log and target history."""
        actor = actor or Actor()
        old_text = "-" if old_value is None else f"{old_value:,.2f}"
        self.record(
            db,
            "kpi_target_update",
            {
                "year": year,
                "brand": brand,
                "channel": channel,
                "period": period,
                "old_value": _money(old_value),
                "new_value": _money(new_value),
                "change": f"{old_text} -> {new_value:,.2f}",
            },
            actor,
            reference_id=f"KPI_{year}_{brand}_{channel}_{period}",
        )
        db.add(
            TargetHistory(
                year=year,
                brand=brand,
                channel=channel,
                period=period,
                old_value=old_value,
                new_value=new_value,
                changed_by=actor.user_id,
            )
        )

    async def list_logs(
        self,
        db: AsyncSession,
        action: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int = 100,
    ) -> AuditLogListResponse:
        """List audit entries, newest first.

        Args:
            db: Database session.
            action: Only entries with this action.
            since: Only entries created at or after this time.
            until: Only entries created at or before this time.
            limit: Maximum entries returned.
        """
        stmt = select(AuditLog)
        if action is not None:
            stmt = stmt.where(AuditLog.action == action)
        if since is not None:
            stmt = stmt.where(AuditLog.created_at >= since)
        if until is not None:
            stmt = stmt.where(AuditLog.created_at <= until)
        stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)

        result = await db.execute(stmt)
        logs = [AuditLogResponse.model_validate(e) for e in result.scalars().all()]
        return AuditLogListResponse(logs=logs, total=len(logs))

    async def list_target_history(
        self,
        db: AsyncSession,
        year: int | None = None,
        brand: str | None = None,
        limit: int = 100,
    ) -> TargetHistoryListResponse:
        """List target edits, newest first; brand matches case-insensitively."""
        stmt = select(TargetHistory)
        if year is not None:
            stmt = stmt.where(TargetHistory.year == year)
        if brand:
            stmt = stmt.where(func.lower(TargetHistory.brand) == brand.strip().lower())
        stmt = stmt.order_by(TargetHistory.created_at.desc(), TargetHistory.id.desc()).limit(limit)

        result = await db.execute(stmt)
        history = [TargetHistoryResponse.model_validate(h) for h in result.scalars().all()]
        return TargetHistoryListResponse(history=history, total=len(history))
