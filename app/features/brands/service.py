"""Service layer for brand management."""

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import BadRequestError, ConflictError, NotFoundError
from app.core.logging import get_logger
from app.features.audit.schemas import Actor
from app.features.audit.service import AuditService
from app.features.brands.schemas import (
    BrandCreate,
    BrandDeleteResponse,
    BrandListResponse,
    BrandResponse,
    BrandUpdate,
)
from app.features.data_platform.models import Brand
from app.features.sales_data.service import DataService

logger = get_logger(__name__)


def _reserved_names() -> set[str]:
    settings = get_settings()
    names = {"all"}
    names.update(n.strip().lower() for n in settings.all_brands_sentinels)
    return names


class BrandService:
    """Create, list, update and delete brands.

    Deletion goes through DataService so sales, SKU, permission and target
    rows are cleaned up along with the brand.
    """

    async def _get(self, db: AsyncSession, brand_id: int) -> Brand:
        brand = await db.get(Brand, brand_id)
        if brand is None:
            raise NotFoundError(
                message=f"Brand {brand_id} not found", details={"brand_id": brand_id}
            )
        return brand

    async def _ensure_unique(
        self, db: AsyncSession, name: str, exclude_id: int | None = None
    ) -> None:
        if name.lower() in _reserved_names():
            raise BadRequestError(message=f"'{name}' is a reserved brand name")
        stmt = select(Brand.id).where(func.lower(Brand.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Brand.id != exclude_id)
        result = await db.execute(stmt)
        if result.scalar_one_or_none() is not None:
            raise ConflictError(message=f"Brand '{name}' already exists", details={"name": name})

    async def list_brands(self, db: AsyncSession, active_only: bool = False) -> BrandListResponse:
        """List brands ordered by name.

        Args:
            db: Database session.
            active_only: Only return active brands.

        Returns:
            Brands and their count.
        """
        stmt = select(Brand)
        if active_only:
            stmt = stmt.where(Brand.is_active.is_(True))
        result = await db.execute(stmt.order_by(Brand.name))
        brands = [BrandResponse.model_validate(b) for b in result.scalars().all()]
        return BrandListResponse(brands=brands, total=len(brands))

    async def create_brand(
        self, db: AsyncSession, payload: BrandCreate, actor: Actor | None = None
    ) -> BrandResponse:
        """Create a brand; names are unique case-insensitively.

        A brand_created audit entry is committed with the brand.

        Raises:
            ConflictError: If a brand with the same name exists.
            BadRequestError: If the name is an "all" sentinel.
        """
        await self._ensure_unique(db, payload.name)
        brand = Brand(name=payload.name, is_active=payload.is_active)
        db.add(brand)
        AuditService().record(
            db,
            "brand_created",
            {"brand_name": payload.name, "is_active": payload.is_active},
            actor,
        )
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictError(
                message=f"Brand '{payload.name}' already exists", details={"name": payload.name}
            ) from exc
        await db.refresh(brand)
        logger.info("brands.created", brand_id=brand.id, name=brand.name)
        return BrandResponse.model_validate(brand)

    async def update_brand(
        self,
        db: AsyncSession,
        brand_id: int,
        payload: BrandUpdate,
        actor: Actor | None = None,
    ) -> BrandResponse:
        """Rename or (de)activate a brand."""
        brand = await self._get(db, brand_id)
        old_name, was_active = brand.name, brand.is_active
        if payload.name is not None and payload.name != brand.name:
            await self._ensure_unique(db, payload.name, exclude_id=brand_id)
            brand.name = payload.name
        if payload.is_active is not None:
            brand.is_active = payload.is_active
        AuditService().record(
            db,
            "brand_updated",
            {
                "brand_id": brand_id,
                "old_name": old_name,
                "new_name": brand.name,
                "was_active": was_active,
                "is_active": brand.is_active,
            },
            actor,
            reference_id=str(brand_id),
        )
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictError(message=f"Brand '{payload.name}' already exists") from exc
        await db.refresh(brand)
        logger.info("brands.updated", brand_id=brand.id, name=brand.name, active=brand.is_active)
        return BrandResponse.model_validate(brand)

    async def delete_brand(
        self,
        db: AsyncSession,
        data_service: DataService,
        brand_id: int,
        reassign_to: str | None = None,
        actor: Actor | None = None,
    ) -> BrandDeleteResponse:
        """Delete a brand and everything that references it.

        Args:
            db: Database session used to resolve the brand.
            data_service: Loader that performs the batched cleanup.
            brand_id: Brand to delete.
            reassign_to: Brand that inherits the sales, SKU and permission rows.
            actor: User the brand_deleted audit entry is attributed to.

        Returns:
            Deleted name and whether anything referenced it.
        """
        brand = await self._get(db, brand_id)
        name = brand.name

        had_references = await data_service.delete_brand(name, reassign_to=reassign_to)
        reassigned_to = reassign_to.strip() if reassign_to else None
        AuditService().record(
            db,
            "brand_deleted",
            {
                "brand_name": name,
                "reassigned_to": reassigned_to,
                "had_references": had_references,
            },
            actor,
            reference_id=str(brand_id),
        )
        await db.commit()
        return BrandDeleteResponse(
            name=name, reassigned_to=reassigned_to, had_references=had_references
        )
