"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import dispose_engine, get_session_maker
from app.core.exceptions import register_exception_handlers
from app.core.health import router as health_router
from app.core.logging import configure_logging, get_logger
from app.core.middleware import RequestIdMiddleware
from app.features.audit.routes import router as audit_router
from app.features.brands.routes import router as brands_router
from app.features.sales_data.config import DataServiceConfig
from app.features.sales_data.routes import router as sales_router
from app.features.sales_data.service import DataService
from app.features.sales_data.store import SqlAlchemyDataStore
from app.features.targets.routes import router as targets_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown.

    Builds the sales DataService, starts its cache sweep and stores it on
    ``app.state`` for the route dependencies.

    Args:
        app: FastAPI application instance.

    Yields:
        None after startup, cleans up on shutdown.
    """
    settings = get_settings()

    # Startup
    configure_logging()
    logger.info(
        "app.startup_started",
        app_name=settings.app_name,
        app_env=settings.app_env,
        debug=settings.debug,
    )

    config = DataServiceConfig.from_settings(settings)
    store = SqlAlchemyDataStore(get_session_maker(), row_cap=config.server_row_cap)
    data_service = DataService(store, config)
    data_service.start()
    app.state.data_service = data_service
    logger.info("app.startup_completed")

    yield

    # Shutdown
    await data_service.aclose()
    app.state.data_service = None
    await dispose_engine()
    logger.info("app.shutdown_completed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Sales and KPI dashboard data API",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware (order matters - first added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins if not settings.is_production else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    # Exception handlers
    register_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(sales_router)
    app.include_router(brands_router)
    app.include_router(targets_router)
    app.include_router(audit_router)

    return app


app = create_app()
