"""
Inventory intelligence API routes.

Demand forecasts, reorder checks, analytics and model retraining.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
import structlog

from exceptions import NotFoundError, RetrainInProgressError
from models.analytics import (
    CategoryPerformance,
    Dashboard,
    InventoryInsights,
    InventoryPerformance,
    SeasonalTrend,
)
from models.forecast import ForecastResult
from models.reorder import ReorderStatus
from routes.deps import get_engine, handle_error
from services.inventory_engine import InventoryEngine

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/inventory-intelligence", tags=["Inventory Intelligence"])


# ===================
# FORECASTS & REORDER
# ===================

@router.get("/forecast/{product_id}", response_model=ForecastResult)
async def get_demand_forecast(
    product_id: str,
    days: int = Query(30, ge=1, le=365, description="Days to project"),
    engine: InventoryEngine = Depends(get_engine),
):
    """
    Projected daily demand for a product.

    Raises:
        404: No fitted forecast for this product
    """
    try:
        result = engine.get_demand_forecast(product_id, days)

        if not result.available:
            raise NotFoundError("Forecast", product_id, code="FORECAST_NOT_AVAILABLE")

        return result

    except Exception as e:
        return handle_error(e)


@router.get("/reorder-status/{product_id}", response_model=ReorderStatus)
async def get_reorder_status(product_id: str, engine: InventoryEngine = Depends(get_engine)):
    """
    Whether a product needs reordering, and how urgently.

    status is one of calculated, not_calculated, product_not_found.
    """
    try:
        return engine.check_reorder_status(product_id)

    except Exception as e:
        return handle_error(e)


# ===================
# ANALYTICS
# ===================

@router.get("/performance", response_model=InventoryPerformance)
async def get_inventory_performance(engine: InventoryEngine = Depends(get_engine)):
    """Forecast accuracy, stockout risk, overstock and recommendations."""
    try:
        return engine.analyze_inventory_performance()

    except Exception as e:
        return handle_error(e)


@router.get("/dashboard", response_model=Dashboard)
async def get_dashboard(engine: InventoryEngine = Depends(get_engine)):
    """Summary counts, latest alerts and inventory value by category."""
    try:
        return engine.analytics_service.get_dashboard()

    except Exception as e:
        return handle_error(e)


@router.get("/insights", response_model=InventoryInsights)
async def get_inventory_insights(engine: InventoryEngine = Depends(get_engine)):
    """Automated order insights with seasonal and category breakdowns."""
    try:
        return engine.analytics_service.get_inventory_insights()

    except Exception as e:
        return handle_error(e)


@router.get("/seasonal-trends", response_model=list[SeasonalTrend])
async def get_seasonal_trends(engine: InventoryEngine = Depends(get_engine)):
    try:
        return engine.get_seasonal_trends()

    except Exception as e:
        return handle_error(e)


@router.get("/category-performance", response_model=list[CategoryPerformance])
async def get_category_performance(engine: InventoryEngine = Depends(get_engine)):
    try:
        return engine.get_category_performance()

    except Exception as e:
        return handle_error(e)


# ===================
# RETRAIN
# ===================

@router.post("/retrain", status_code=202)
async def retrain_models(background_tasks: BackgroundTasks, engine: InventoryEngine = Depends(get_engine)):
    """
    Start a full model retrain in the background.

    Raises:
        409: A retrain is already running
    """
    try:
        if engine.retraining:
            raise RetrainInProgressError()

        background_tasks.add_task(engine.retrain_in_background)

        logger.info("retrain_scheduled")

        return {
            "message": "Model retraining initiated",
            "last_retrain": engine.last_retrain.finished_at.isoformat() if engine.last_retrain else None,
        }

    except Exception as e:
        return handle_error(e)
