"""
Business logic services.

Each service handles one part of the inventory intelligence pipeline;
InventoryEngine wires them together.
"""

from services.cache_service import TTLCache
from services.history_service import HistoryService, aggregate_order_lines
from services.pattern_service import PatternService, build_profile
from services.forecast_service import ForecastService, fit_forecast
from services.reorder_service import ReorderService, classify_urgency
from services.alert_service import AlertService
from services.purchase_order_service import PurchaseOrderService
from services.analytics_service import AnalyticsService
from services.monitor_service import InventoryMonitor
from services.inventory_engine import InventoryEngine

__all__ = [
    "TTLCache",
    "HistoryService",
    "aggregate_order_lines",
    "PatternService",
    "build_profile",
    "ForecastService",
    "fit_forecast",
    "ReorderService",
    "classify_urgency",
    "AlertService",
    "PurchaseOrderService",
    "AnalyticsService",
    "InventoryMonitor",
    "InventoryEngine",
]
