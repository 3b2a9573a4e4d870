"""
Analytics models for dashboards and reporting.

Covers:
- Inventory performance (forecast accuracy, stockout risk, recommendations)
- Seasonal trend reporting
- Category and supplier performance
- Purchase order insights and the dashboard summary
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from models.alert import InventoryAlert
from models.base import BaseSchema
from models.reorder import Urgency


# ===================
# PERFORMANCE ANALYSIS
# ===================

class StockoutRiskItem(BaseSchema):
    product_id: str
    urgency: Optional[Urgency] = None
    current_stock: Optional[int] = None
    reorder_point: Optional[int] = None


class OverstockItem(BaseSchema):
    product_id: str
    current_stock: int
    economic_order_quantity: int


class RecommendationType(str, Enum):
    OVERSTOCK = "overstock"
    GROWTH_OPPORTUNITY = "growth_opportunity"
    SEASONAL_PEAK = "seasonal_peak"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Recommendation(BaseSchema):
    type: RecommendationType
    message: str
    impact: Impact


class ProductRecommendation(BaseSchema):
    product_id: str
    product_name: str
    recommendations: list[Recommendation]


class InventoryPerformance(BaseSchema):
    """Portfolio-wide forecast and stock health."""

    total_products: int
    forecast_accuracy: float = Field(..., ge=0, le=100, description="Mean of 100 - MAPE")
    stockout_risk: list[StockoutRiskItem] = Field(default_factory=list)
    overstock: list[OverstockItem] = Field(default_factory=list)
    optimal_stock: list[str] = Field(default_factory=list, description="Product IDs between ROP and 3x EOQ")
    recommendations: list[ProductRecommendation] = Field(default_factory=list)
    generated_at: datetime


# ===================
# SEASONAL TRENDS
# ===================

class MonthlyFactor(BaseSchema):
    month: int = Field(..., ge=1, le=12)
    name: str
    factor: float


class WeeklyFactor(BaseSchema):
    day: int = Field(..., ge=1, le=7, description="1 = Monday .. 7 = Sunday")
    name: str
    factor: float


class SeasonalTrend(BaseSchema):
    product_id: str
    monthly: list[MonthlyFactor]
    weekly: list[WeeklyFactor]


# ===================
# CATEGORY & SUPPLIER
# ===================

class CategoryPerformance(BaseSchema):
    category: str
    total_products: int
    avg_price: float
    total_stock: int
    low_stock_count: int
    auto_reorder_count: int
    low_stock_ratio: float
    auto_reorder_ratio: float


class SupplierPerformance(BaseSchema):
    supplier: str
    total_orders: int
    avg_lead_time: Optional[float] = None
    avg_delivery_accuracy: Optional[float] = None
    avg_quality_score: Optional[float] = None
    total_value: float
    last_order: Optional[datetime] = None


class UrgencyInsight(BaseSchema):
    """AI-generated orders over the last 30 days for one urgency level."""

    urgency: Urgency
    count: int
    total_value: float
    avg_confidence: float


class InventoryInsights(BaseSchema):
    inventory_insights: list[UrgencyInsight]
    seasonal_trends: list[SeasonalTrend]
    category_performance: list[CategoryPerformance]
    generated_at: datetime


# ===================
# DASHBOARD
# ===================

class CategoryValue(BaseSchema):
    category: str
    total_value: float
    total_products: int
    total_stock: int


class DashboardSummary(BaseSchema):
    total_products: int
    low_stock_products: int
    pending_orders: int
    overdue_orders: int
    forecast_accuracy: float
    stockout_risk: int


class Dashboard(BaseSchema):
    summary: DashboardSummary
    alerts: list[InventoryAlert]
    inventory_by_category: list[CategoryValue]
    recommendations: list[ProductRecommendation]
    generated_at: datetime
