"""
Purchase order schemas and lifecycle rules.

Status flow:
    pending -> approved -> ordered -> shipped -> delivered
    any non-terminal status -> cancelled
"""

import math
import secrets
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field, computed_field

from models.base import BaseSchema, PaginatedResponse
from models.forecast import MAX_CONFIDENCE
from models.product import DEFAULT_SUPPLIER
from models.reorder import Urgency


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PurchaseOrderStatus(str, Enum):
    """Purchase order status values."""
    PENDING = "pending"
    APPROVED = "approved"
    ORDERED = "ordered"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Status order for transition validation (lower index = earlier in flow)
STATUS_ORDER = {
    PurchaseOrderStatus.PENDING: 0,
    PurchaseOrderStatus.APPROVED: 1,
    PurchaseOrderStatus.ORDERED: 2,
    PurchaseOrderStatus.SHIPPED: 3,
    PurchaseOrderStatus.DELIVERED: 4,
}

TERMINAL_STATUSES = frozenset({PurchaseOrderStatus.DELIVERED, PurchaseOrderStatus.CANCELLED})


def is_terminal(status: PurchaseOrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_valid_status_transition(current: PurchaseOrderStatus, new: PurchaseOrderStatus) -> bool:
    """
    Check if status transition is valid.

    Rules:
    - Can skip forward (PENDING -> ORDERED is OK)
    - Cannot go backward (SHIPPED -> APPROVED is NOT OK)
    - CANCELLED is reachable from every non-terminal status
    - DELIVERED and CANCELLED are terminal
    """
    if is_terminal(current):
        return False

    if new == PurchaseOrderStatus.CANCELLED:
        return True

    return STATUS_ORDER[new] > STATUS_ORDER[current]


def generate_order_number(now: Optional[datetime] = None) -> str:
    """PO-<epoch millis>-<5 random chars>."""
    now = now or utc_now()
    millis = int(now.timestamp() * 1000)
    return f"PO-{millis}-{secrets.token_hex(3).upper()[:5]}"


# ===================
# NESTED SCHEMAS
# ===================

class SupplierInfo(BaseSchema):
    """Who fulfils the order."""

    name: str = Field(default=DEFAULT_SUPPLIER, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None


class TrackingInfo(BaseSchema):
    """Carrier tracking details."""

    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    tracking_url: Optional[str] = None
    status: Optional[str] = None
    last_update: Optional[datetime] = None


class TrackingUpdate(BaseSchema):
    """Partial tracking update; only provided fields are merged."""

    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    tracking_url: Optional[str] = None
    status: Optional[str] = None


class QualityCheck(BaseSchema):
    """Post-delivery inspection."""

    required: bool = True
    completed: bool = False
    completed_date: Optional[datetime] = None
    completed_by: Optional[str] = None
    passed: Optional[bool] = None
    notes: Optional[str] = None


class OrderNote(BaseSchema):
    user: str
    message: str = Field(..., min_length=1, max_length=1000)
    timestamp: datetime = Field(default_factory=utc_now)


class AuditEntry(BaseSchema):
    """Append-only lifecycle log entry."""

    action: str
    actor: str
    timestamp: datetime = Field(default_factory=utc_now)
    details: dict[str, Any] = Field(default_factory=dict)


class OrderMetrics(BaseSchema):
    """Post-delivery performance metrics."""

    lead_time: Optional[int] = Field(None, description="Actual lead time in days")
    delivery_accuracy: Optional[float] = Field(None, ge=0, le=1)
    quality_score: Optional[float] = Field(None, ge=0, le=1)
    cost_variance: Optional[float] = Field(None, description="Actual minus expected cost")


# ===================
# PURCHASE ORDER
# ===================

class PurchaseOrderCreate(BaseSchema):
    """Manual purchase order request."""

    product_id: str = Field(..., min_length=1)
    order_quantity: int = Field(..., ge=1)
    unit_cost: Optional[float] = Field(None, ge=0, description="Defaults to wholesale fraction of price")
    supplier: Optional[SupplierInfo] = None
    priority: Urgency = Urgency.MEDIUM
    notes: Optional[str] = Field(None, max_length=1000)


class PurchaseOrder(BaseSchema):
    """
    A request to restock a product.

    Mutated only through PurchaseOrderService lifecycle methods; never deleted.
    total_cost is always derived from quantity and unit cost at read time.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    order_number: str = Field(default_factory=generate_order_number)
    product_id: str
    product_name: str = ""
    supplier: SupplierInfo = Field(default_factory=SupplierInfo)

    order_quantity: int = Field(..., ge=1)
    unit_cost: float = Field(..., ge=0)

    status: PurchaseOrderStatus = PurchaseOrderStatus.PENDING
    priority: Urgency = Urgency.MEDIUM
    urgency: Urgency = Urgency.MEDIUM

    # Engine snapshot at creation time
    ai_generated: bool = False
    confidence: float = Field(default=0.8, ge=0, le=MAX_CONFIDENCE)
    reorder_point: Optional[int] = Field(None, ge=0)
    current_stock: Optional[int] = Field(None, ge=0)
    safety_stock: Optional[int] = Field(None, ge=0)

    # Dates
    order_date: datetime = Field(default_factory=utc_now)
    expected_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    approved_date: Optional[datetime] = None
    approved_by: Optional[str] = None

    tracking: TrackingInfo = Field(default_factory=TrackingInfo)
    quality_check: QualityCheck = Field(default_factory=QualityCheck)
    notes: list[OrderNote] = Field(default_factory=list)
    metrics: OrderMetrics = Field(default_factory=OrderMetrics)
    audit_log: list[AuditEntry] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def total_cost(self) -> float:
        return self.order_quantity * self.unit_cost

    @property
    def days_until_delivery(self) -> Optional[int]:
        if not self.expected_delivery:
            return None
        delta = self.expected_delivery - utc_now()
        return math.ceil(delta.total_seconds() / 86400)

    @property
    def order_age(self) -> int:
        return (utc_now() - self.order_date).days

    @property
    def is_overdue(self) -> bool:
        if not self.expected_delivery or is_terminal(self.status):
            return False
        return utc_now() > self.expected_delivery

    def record(self, action: str, actor: str, **details: Any) -> None:
        """Append an audit entry."""
        self.audit_log.append(AuditEntry(action=action, actor=actor, details=details))
        self.updated_at = utc_now()


class PurchaseOrderListResponse(PaginatedResponse):
    """List of purchase orders with pagination."""

    data: list[PurchaseOrder]


# ===================
# REQUEST BODIES
# ===================

class ApproveRequest(BaseSchema):
    actor: str = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)


class CancelRequest(BaseSchema):
    actor: str = Field(..., min_length=1)
    reason: str = Field(default="Rejected by admin", max_length=500)


class ActorRequest(BaseSchema):
    actor: str = Field(..., min_length=1)


class ShipRequest(BaseSchema):
    actor: str = Field(..., min_length=1)
    tracking: Optional[TrackingUpdate] = None


class DeliverRequest(BaseSchema):
    actor: str = Field(..., min_length=1)
    actual_unit_cost: Optional[float] = Field(None, ge=0)


class QuantityUpdate(BaseSchema):
    actor: str = Field(..., min_length=1)
    order_quantity: int = Field(..., ge=1)


class QualityCheckRequest(BaseSchema):
    actor: str = Field(..., min_length=1)
    passed: bool
    notes: Optional[str] = Field(None, max_length=1000)
    quality_score: Optional[float] = Field(None, ge=0, le=1)


class NoteRequest(BaseSchema):
    actor: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=1000)
