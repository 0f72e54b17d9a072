"""Revenue target feature."""

from app.features.targets.routes import router
from app.features.targets.service import TargetService

__all__ = ["TargetService", "router"]
