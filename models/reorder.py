"""
Reorder schemas: stored inventory control parameters and status checks.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from models.base import BaseSchema
from models.forecast import MAX_CONFIDENCE


class Urgency(str, Enum):
    """Reorder urgency, shared with purchase order priority."""

    CRITICAL = "critical"  # stock <= 50% of reorder point
    HIGH = "high"          # stock <= 80%
    MEDIUM = "medium"      # stock <= 100%
    LOW = "low"            # above reorder point


class ReorderInfo(BaseSchema):
    """Inventory control parameters derived from a forecast."""

    product_id: str
    reorder_point: int = Field(..., ge=0)
    safety_stock: int = Field(..., ge=0)
    economic_order_quantity: int = Field(..., ge=0)
    lead_time_demand: int = Field(..., ge=0)
    lead_time: int = Field(..., ge=0)
    average_daily_demand: float = Field(..., ge=0)
    demand_variability: float = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=MAX_CONFIDENCE)
    last_calculated: datetime


class ReorderCheckStatus(str, Enum):
    """Outcome tag of a reorder check."""

    CALCULATED = "calculated"
    NOT_CALCULATED = "not_calculated"
    PRODUCT_NOT_FOUND = "product_not_found"


class ReorderStatus(BaseSchema):
    """
    Result of checking whether a product needs reordering.

    Only status == CALCULATED carries numbers; the other tags explain why
    no decision could be made.
    """

    product_id: str
    status: ReorderCheckStatus
    needs_reorder: bool = False
    current_stock: Optional[int] = None
    reorder_point: Optional[int] = None
    recommended_order_quantity: Optional[int] = None
    safety_stock: Optional[int] = None
    lead_time_demand: Optional[int] = None
    urgency: Optional[Urgency] = None
    confidence: Optional[float] = None
    message: Optional[str] = None
