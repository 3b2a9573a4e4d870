"""
Product snapshot schema.

Live product/stock view read from the commerce store. The engine never
writes products except for the best-effort reorder counter.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from models.base import BaseSchema


DEFAULT_SUPPLIER = "Default Supplier"


class ProductSnapshot(BaseSchema):
    """Current state of a sellable product."""

    id: str = Field(..., description="Product ID")
    name: str = Field(default="", description="Display name")
    category: Optional[str] = Field(None, description="Product category")
    price: float = Field(default=0.0, ge=0, description="Retail unit price")
    count_in_stock: int = Field(default=0, ge=0, description="Units on hand")
    lead_time: Optional[int] = Field(None, ge=0, description="Supplier lead time in days, 0 when unset")
    auto_reorder: bool = Field(default=False, description="Allow automated purchase orders")
    supplier: str = Field(default=DEFAULT_SUPPLIER, description="Supplier name")
    is_active: bool = Field(default=True)
    last_reorder_date: Optional[datetime] = None
    reorder_count: int = Field(default=0, ge=0)
