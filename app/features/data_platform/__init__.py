"""Data platform feature: ORM models for the sales dashboard store.

- Fact tables: SalesData, SKUSalesData
- Reference tables: Brand, Target, UserBrandPermission
- Audit tables: AuditLog, TargetHistory
"""

from app.features.data_platform.models import (
    AuditLog,
    Brand,
    SalesData,
    SKUSalesData,
    Target,
    TargetHistory,
    UserBrandPermission,
)

__all__ = [
    "AuditLog",
    "Brand",
    "SKUSalesData",
    "SalesData",
    "Target",
    "TargetHistory",
    "UserBrandPermission",
]
