"""Shared SQLAlchemy model mixins."""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ProvenanceMixin:
    """Upload provenance for fact rows.

    ``source_id`` is the deterministic external identifier used as the
    upsert conflict target, so re-uploading the same file is idempotent.
    """

    source: Mapped[str] = mapped_column(String(30), default="manual", server_default="manual")
    source_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    upload_batch_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
