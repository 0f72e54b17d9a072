"""Brand management feature."""

from app.features.brands.routes import router
from app.features.brands.service import BrandService

__all__ = ["BrandService", "router"]
