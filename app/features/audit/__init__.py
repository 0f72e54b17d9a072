"""Audit trail feature: who changed targets, brands and data."""

from app.features.audit.routes import router
from app.features.audit.service import AuditService

__all__ = ["AuditService", "router"]
