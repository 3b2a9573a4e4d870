"""
Inventory Intelligence - Main Application

FastAPI application entry point. create_app() is the composition root: it
picks the commerce store, builds the InventoryEngine and wires the routes.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from config import Settings, get_settings
from exceptions import AppError
from integrations import CommerceStore, InMemoryCommerceStore, SupabaseCommerceStore, seed_demo_data
from routes import alerts_router, forecasts_router, purchase_orders_router
from services.inventory_engine import InventoryEngine


def configure_logging(settings: Settings) -> None:
    """Structured logging: console output in development, JSON in production."""
    logging.basicConfig(format="%(message)s", level=settings.log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if settings.is_production
                else structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger(__name__)


def create_store(settings: Settings) -> CommerceStore:
    """
    Pick the commerce store once at startup.

    Falls back to the seeded in-memory store when DATA_SOURCE=offline or
    Supabase credentials are missing.
    """
    if settings.use_offline_store:
        logger.warning(
            "using_offline_store",
            data_source=settings.data_source,
            supabase_configured=settings.supabase_configured
        )
        return seed_demo_data(InMemoryCommerceStore())

    return SupabaseCommerceStore()


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[CommerceStore] = None,
    engine: Optional[InventoryEngine] = None
) -> FastAPI:
    """Build the application with its own engine."""
    settings = settings or get_settings()
    engine = engine or InventoryEngine(store or create_store(settings), settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Startup: Train models, start background monitor
        Shutdown: Stop monitor tasks
        """
        logger.info(
            "application_starting",
            environment=settings.environment,
            debug=settings.debug,
            store=engine.store.name
        )

        try:
            await asyncio.to_thread(engine.retrain)
        except AppError as e:
            # Keep serving; reads report "not available" until a retrain succeeds
            logger.error("initial_retrain_failed", code=e.code, error=e.message)

        if settings.monitor_enabled:
            engine.monitor.start()

        yield

        logger.info("application_shutting_down")
        await engine.monitor.stop()

    app = FastAPI(
        title="Inventory Intelligence",
        description="Demand forecasting, reorder optimization and automated purchase orders",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.engine = engine
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ===================
    # ROUTES
    # ===================

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Returns:
            Store connection state and engine status
        """
        engine_status = engine.status()
        store_status = engine_status["store"]["status"]

        return {
            "status": "healthy" if store_status == "healthy" else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
            "engine": engine_status,
        }

    @app.get("/")
    async def root():
        """
        Root endpoint.

        Returns:
            API information and available endpoints
        """
        return {
            "name": "Inventory Intelligence API",
            "version": "0.1.0",
            "docs": "/docs" if settings.debug else "Disabled in production",
            "health": "/health",
            "endpoints": {
                "inventory_intelligence": "/api/inventory-intelligence",
                "purchase_orders": "/api/purchase-orders",
                "alerts": "/api/alerts",
            }
        }

    # ===================
    # ERROR HANDLERS
    # ===================

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler.

        Catches unhandled exceptions and returns standard error format.
        """
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "details": str(exc) if settings.debug else None,
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }
            }
        )

    # ===================
    # INCLUDE ROUTERS
    # ===================
    app.include_router(forecasts_router)  # Prefix already in router
    app.include_router(purchase_orders_router)  # Prefix already in router
    app.include_router(alerts_router)  # Prefix already in router

    return app


configure_logging(get_settings())

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=get_settings().api_host,
        port=get_settings().api_port,
        reload=get_settings().debug
    )
