"""Service layer for revenue targets and target pacing."""

from collections import defaultdict
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, tuple_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from app.features.audit.schemas import Actor
from app.features.audit.service import AuditService
from app.features.data_platform.models import Target
from app.features.sales_data.policies import normalize_filter_value
from app.features.sales_data.schemas import SalesFilters
from app.features.sales_data.service import DataService
from app.features.targets.schemas import (
    ChannelProgress,
    TargetIn,
    TargetListResponse,
    TargetProgress,
    TargetResponse,
)
from app.shared.channels import normalize_key
from app.shared.periods import PeriodView, days_elapsed, days_in_period, resolve_period_range

logger = get_logger(__name__)

STRETCH_RATIO = 0.85

TargetKey = tuple[int, str, str, str]


def _sentinels() -> set[str]:
    settings = get_settings()
    return {"all", *(s.strip().lower() for s in settings.all_brands_sentinels)}


def _percent(value: float, of: float) -> float | None:
    return round(value / of * 100, 2) if of else None


class TargetService:
    """Read and upsert targets, and measure revenue against them."""

    async def list_targets(
        self, db: AsyncSession, year: int, brand: str | None = None
    ) -> TargetListResponse:
        """List targets for a year, optionally for one brand.

        Args:
            db: Database session.
            year: Target year.
            brand: Brand name; an "all" sentinel or None lists every brand.

        Returns:
            Targets ordered by brand, period and channel.
        """
        stmt = select(Target).where(Target.year == year)
        brand_filter = normalize_filter_value(brand, _sentinels())
        if brand_filter is not None:
            stmt = stmt.where(func.lower(Target.brand) == brand_filter.lower())
        result = await db.execute(stmt.order_by(Target.brand, Target.period, Target.channel))
        targets = [TargetResponse.model_validate(t) for t in result.scalars().all()]
        return TargetListResponse(year=year, targets=targets, total=len(targets))

    async def _current_values(
        self, db: AsyncSession, keys: Sequence[TargetKey]
    ) -> dict[TargetKey, Decimal]:
        grain = tuple_(Target.year, Target.brand, Target.period, Target.channel)
        stmt = select(
            Target.year, Target.brand, Target.period, Target.channel, Target.target
        ).where(grain.in_(keys))
        result = await db.execute(stmt)
        return {
            (row.year, row.brand, row.period, row.channel): row.target for row in result.all()
        }

    async def save_targets(
        self,
        db: AsyncSession,
        targets: Sequence[TargetIn],
        data_service: DataService | None = None,
        actor: Actor | None = None,
    ) -> list[TargetResponse]:
        """Upsert targets on (year, brand, period, channel).

        Every changed cell gets an audit entry and a target history row with
        its old and new value, committed with the upsert. Saving targets
        clears the loader cache so dashboards pick up the new figures on
        their next load.
        """
        rows: dict[TargetKey, dict[str, Any]] = {}
        for t in targets:
            rows[(t.year, t.brand, t.period, t.channel)] = t.model_dump()
        current = await self._current_values(db, list(rows))

        stmt = pg_insert(Target).values(list(rows.values()))
        stmt = stmt.on_conflict_do_update(
            index_elements=["year", "brand", "period", "channel"],
            set_={"target": stmt.excluded.target, "updated_at": func.now()},
        ).returning(
            Target.id,
            Target.year,
            Target.brand,
            Target.channel,
            Target.period,
            Target.target,
            Target.updated_at,
        )

        result = await db.execute(stmt)
        saved = [TargetResponse.model_validate(dict(row)) for row in result.mappings().all()]

        audit = AuditService()
        changed = 0
        for (year, brand, period, channel), row in rows.items():
            old_value = current.get((year, brand, period, channel))
            if old_value is not None and old_value == row["target"]:
                continue
            audit.record_target_change(
                db, year, brand, channel, period, old_value, row["target"], actor
            )
            changed += 1
        await db.commit()

        if data_service is not None:
            data_service.clear_cache()
        logger.info("targets.saved", count=len(saved), submitted=len(targets), changed=changed)
        return saved

    async def get_progress(
        self,
        db: AsyncSession,
        data_service: DataService,
        view: PeriodView,
        year: int,
        period: str | None = None,
        month: int | None = None,
        brand: str | None = None,
        today: date | None = None,
    ) -> TargetProgress:
        """Revenue against target for a dashboard period.

        Quarterly targets apply to quarterly views. Monthly views take the
        month's share of its quarter's target by day count. The company
        total sums every brand's targets.

        Raises:
            BadRequestError: If the period selectors are invalid.
        """
        try:
            start, end = resolve_period_range(view, year, period, month)
            total_days = days_in_period(view, year, period, month)
            elapsed = days_elapsed(view, year, period, month, today=today)
        except ValueError as exc:
            raise BadRequestError(message=str(exc)) from exc

        if view == "annual":
            label, ratio = "annual", 1.0
        elif view == "quarterly":
            label, ratio = (period or "").upper(), 1.0
        else:
            quarter = f"Q{(int(month or 1) - 1) // 3 + 1}"
            label = quarter
            ratio = total_days / days_in_period("quarterly", year, quarter)

        target_rows = await self.list_targets(db, year, brand)
        channel_targets: dict[str, float] = defaultdict(float)
        names: dict[str, str] = {}
        for row in target_rows.targets:
            if row.period != label:
                continue
            key = normalize_key(row.channel)
            names.setdefault(key, row.channel)
            channel_targets[key] += float(row.target) * ratio

        aggregated = await data_service.load_aggregated_sales_data(
            SalesFilters(start_date=start, end_date=end, brand=brand, view=view)
        )
        channel_revenue: dict[str, float] = defaultdict(float)
        for channel, revenue in aggregated.channel_revenues.items():
            key = normalize_key(channel)
            names.setdefault(key, channel)
            channel_revenue[key] += revenue

        channels = [
            ChannelProgress(
                channel=names[key],
                revenue=channel_revenue.get(key, 0.0),
                target=channel_targets.get(key, 0.0),
                target_85=channel_targets.get(key, 0.0) * STRETCH_RATIO,
                achievement_percent=_percent(
                    channel_revenue.get(key, 0.0), channel_targets.get(key, 0.0)
                ),
            )
            for key in sorted(names, key=lambda k: names[k])
        ]
        total_target = sum(channel_targets.values())
        total_revenue = sum(channel_revenue.values())

        return TargetProgress(
            view=view,
            year=year,
            period=label if view == "quarterly" else None,
            month=month if view == "monthly" else None,
            brand=normalize_filter_value(brand, _sentinels()),
            days_in_period=total_days,
            days_elapsed=elapsed,
            days_remaining=max(0, total_days - elapsed),
            total_revenue=total_revenue,
            total_target=total_target,
            total_target_85=total_target * STRETCH_RATIO,
            achievement_percent=_percent(total_revenue, total_target),
            expected_to_date=total_target * elapsed / total_days if total_days else 0.0,
            channels=channels,
        )
