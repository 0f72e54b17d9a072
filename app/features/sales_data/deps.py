"""FastAPI dependencies for the sales data feature."""

from fastapi import Request

from app.core.exceptions import ChaiVisionError
from app.features.sales_data.service import DataService


def get_data_service(request: Request) -> DataService:
    """Return the DataService created by the application lifespan.

    Raises:
        ChaiVisionError: If the service was not started (503).
    """
    service = getattr(request.app.state, "data_service", None)
    if service is None:
        raise ChaiVisionError(
            message="Sales data service is not available",
            code="SERVICE_UNAVAILABLE",
            status_code=503,
        )
    return service
