"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    FrozenSchema,
    PaginatedResponse,
)
from models.sales import (
    OrderLine,
    SeasonalityTag,
    HistoricalSalesRecord,
)
from models.product import (
    DEFAULT_SUPPLIER,
    ProductSnapshot,
)
from models.forecast import (
    MODEL_TAG,
    MAX_CONFIDENCE,
    clamp_confidence,
    SeasonalPatterns,
    TrendStats,
    ProductSeriesProfile,
    TrendPoint,
    SeasonalPoint,
    ForecastPoint,
    DemandForecast,
    FutureForecastPoint,
    ForecastResult,
    RetrainSummary,
)
from models.reorder import (
    Urgency,
    ReorderInfo,
    ReorderCheckStatus,
    ReorderStatus,
)
from models.purchase_order import (
    PurchaseOrderStatus,
    STATUS_ORDER,
    is_valid_status_transition,
    SupplierInfo,
    TrackingInfo,
    TrackingUpdate,
    QualityCheck,
    AuditEntry,
    OrderMetrics,
    PurchaseOrderCreate,
    PurchaseOrder,
    PurchaseOrderListResponse,
)
from models.alert import (
    AlertType,
    InventoryAlert,
    AlertListResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",
    "PaginatedResponse",

    # Sales
    "OrderLine",
    "SeasonalityTag",
    "HistoricalSalesRecord",

    # Product
    "DEFAULT_SUPPLIER",
    "ProductSnapshot",

    # Forecast
    "MODEL_TAG",
    "MAX_CONFIDENCE",
    "clamp_confidence",
    "SeasonalPatterns",
    "TrendStats",
    "ProductSeriesProfile",
    "TrendPoint",
    "SeasonalPoint",
    "ForecastPoint",
    "DemandForecast",
    "FutureForecastPoint",
    "ForecastResult",
    "RetrainSummary",

    # Reorder
    "Urgency",
    "ReorderInfo",
    "ReorderCheckStatus",
    "ReorderStatus",

    # Purchase orders
    "PurchaseOrderStatus",
    "STATUS_ORDER",
    "is_valid_status_transition",
    "SupplierInfo",
    "TrackingInfo",
    "TrackingUpdate",
    "QualityCheck",
    "AuditEntry",
    "OrderMetrics",
    "PurchaseOrderCreate",
    "PurchaseOrder",
    "PurchaseOrderListResponse",

    # Alerts
    "AlertType",
    "InventoryAlert",
    "AlertListResponse",
]
