"""
Alerts API routes.

Read access to the in-memory inventory alert log.
"""

from fastapi import APIRouter, Depends, Query
import structlog

from models.alert import AlertListResponse, InventoryAlert
from routes.deps import get_engine, handle_error
from services.inventory_engine import InventoryEngine

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/alerts", tags=["Alerts"])


@router.get("", response_model=AlertListResponse)
async def list_alerts(
    limit: int = Query(20, ge=1, le=1000, description="Maximum alerts to return"),
    engine: InventoryEngine = Depends(get_engine),
):
    """
    Most recent inventory alerts, newest first.

    total is the number of alerts currently retained in the log.
    """
    try:
        alerts = engine.get_inventory_alerts(limit)

        return AlertListResponse(
            alerts=alerts,
            total=len(engine.alert_service),
            unread_count=engine.alert_service.unread_count(),
        )

    except Exception as e:
        return handle_error(e)


@router.patch("/{alert_id}/read", response_model=InventoryAlert)
async def mark_alert_read(alert_id: str, engine: InventoryEngine = Depends(get_engine)):
    """
    Mark an alert as read.

    Raises:
        404: Alert not found (or already evicted from the log)
    """
    try:
        return engine.alert_service.mark_read(alert_id)

    except Exception as e:
        return handle_error(e)
