"""
Sales history schemas.

OrderLine is what the commerce store hands us; HistoricalSalesRecord is the
per-product, per-day aggregate the forecasting pipeline trains on.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import Field

from models.base import BaseSchema, FrozenSchema


class OrderLine(BaseSchema):
    """A fulfilled order line item from the commerce store."""

    product_id: str = Field(..., description="Product ID")
    quantity: float = Field(..., ge=0, description="Units sold on this line")
    unit_price: float = Field(default=0.0, ge=0, description="Price per unit at sale time")
    revenue: Optional[float] = Field(None, ge=0, description="Line revenue (quantity x price if missing)")
    order_timestamp: datetime = Field(..., description="When the order was placed")
    category: Optional[str] = Field(None, description="Product category")
    order_id: Optional[str] = Field(None, description="Parent order ID")

    @property
    def line_revenue(self) -> float:
        """Revenue, falling back to quantity x unit price."""
        if self.revenue is not None:
            return self.revenue
        return self.quantity * self.unit_price


class SeasonalityTag(FrozenSchema):
    """Calendar position of a sales day."""

    month: int = Field(..., ge=1, le=12)
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Monday .. 6 = Sunday")
    quarter: int = Field(..., ge=1, le=4)

    @classmethod
    def for_date(cls, day: date) -> "SeasonalityTag":
        """Build the tag for a calendar date."""
        return cls(
            month=day.month,
            day_of_week=day.weekday(),
            quarter=(day.month - 1) // 3 + 1,
        )


class HistoricalSalesRecord(FrozenSchema):
    """One product's sales for one calendar day."""

    product_id: str
    date: date
    quantity_sold: float = Field(..., ge=0)
    revenue: float = Field(default=0.0, ge=0)
    order_count: int = Field(default=0, ge=0)
    category: Optional[str] = None
    unit_price: float = Field(default=0.0, ge=0)
    seasonality_tag: SeasonalityTag
