"""
Alert models and schemas.

Inventory alerts notify operators about:
- Low stock that still needs reordering
- Automated purchase orders
- Forecasts that have gone stale
- Failed retrains
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema


class AlertType(str, Enum):
    """Alert type enumeration."""

    LOW_STOCK = "low_stock"
    AUTO_REORDER = "auto_reorder"
    FORECAST_STALE = "forecast_stale"
    RETRAIN_FAILED = "retrain_failed"


class InventoryAlert(BaseSchema):
    """An entry in the in-memory alert log."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: AlertType
    product_id: Optional[str] = None
    message: str = Field(..., min_length=1, max_length=1000)
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False


class AlertListResponse(BaseSchema):
    """Most recent alerts, newest first."""

    alerts: list[InventoryAlert]
    total: int
    unread_count: int
