"""
Purchase order service.

Generates automated purchase orders from reorder checks and drives every
order through its lifecycle:

    pending -> approved -> ordered -> shipped -> delivered
    any non-terminal status -> cancelled

Lifecycle methods load the order, validate the move, mutate a copy and write
it back. An illegal move raises before anything is written.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from config.settings import Settings
from exceptions import (
    InvalidStatusTransitionError,
    ProductNotFoundError,
    PurchaseOrderNotFoundError,
)
from integrations.base import CommerceStore
from models.alert import AlertType
from models.purchase_order import (
    OrderNote,
    PurchaseOrder,
    PurchaseOrderCreate,
    PurchaseOrderStatus,
    SupplierInfo,
    TrackingUpdate,
    is_valid_status_transition,
)
from models.reorder import ReorderCheckStatus
from services.alert_service import AlertService
from services.reorder_service import ReorderService

logger = structlog.get_logger(__name__)


SYSTEM_ACTOR = "system"
TRACKABLE_STATUSES = frozenset({PurchaseOrderStatus.ORDERED, PurchaseOrderStatus.SHIPPED})

# Delivery accuracy when an order arrives after its expected date
LATE_DELIVERY_ACCURACY = 0.5


class PurchaseOrderService:
    """
    Purchase order business logic.

    Handles automated generation, manual creation and lifecycle transitions.
    """

    def __init__(
        self,
        store: CommerceStore,
        reorder_service: ReorderService,
        alert_service: AlertService,
        settings: Settings
    ):
        self.store = store
        self.reorder_service = reorder_service
        self.alert_service = alert_service
        self.settings = settings

    # ===================
    # GENERATION
    # ===================

    def generate_automated_orders(self, now: Optional[datetime] = None) -> list[PurchaseOrder]:
        """
        Draft purchase orders for auto-reorder products that need stock.

        An order is drafted when the reorder check says the product needs
        reordering and its forecast confidence is above confidence_threshold.
        Each draft is persisted and announced with an auto_reorder alert.

        Raises:
            CollaboratorError: If products cannot be listed or an order cannot be saved
        """
        now = now or datetime.now(timezone.utc)
        products = self.store.list_active_products(auto_reorder=True)

        logger.info("generating_automated_orders", candidates=len(products))

        orders = []

        for product in products:
            status = self.reorder_service.evaluate(product)

            if status.status != ReorderCheckStatus.CALCULATED:
                continue
            if not status.needs_reorder:
                continue
            if status.confidence is None or status.confidence <= self.settings.confidence_threshold:
                logger.debug(
                    "automated_order_skipped_low_confidence",
                    product_id=product.id,
                    confidence=status.confidence
                )
                continue

            info = self.reorder_service.get_reorder_info(product.id)
            lead_time = info.lead_time if info else self.settings.default_lead_time_days

            order = PurchaseOrder(
                product_id=product.id,
                product_name=product.name,
                supplier=SupplierInfo(name=product.supplier),
                order_quantity=max(1, status.recommended_order_quantity or 0),
                unit_cost=product.price * self.settings.wholesale_cost_fraction,
                priority=status.urgency,
                urgency=status.urgency,
                ai_generated=True,
                confidence=status.confidence,
                reorder_point=status.reorder_point,
                current_stock=status.current_stock,
                safety_stock=status.safety_stock,
                order_date=now,
                expected_delivery=now + timedelta(days=lead_time),
                created_at=now,
            )
            order.record(
                "created",
                SYSTEM_ACTOR,
                reason="automated_reorder",
                urgency=status.urgency.value,
                confidence=status.confidence
            )

            self.store.persist_purchase_order(order)
            orders.append(order)

            self.alert_service.create_alert(
                AlertType.AUTO_REORDER,
                f"Automated reorder generated for {product.name or product.id}",
                product_id=product.id,
                payload={
                    "order_id": order.id,
                    "order_number": order.order_number,
                    "order_quantity": order.order_quantity,
                    "total_cost": order.total_cost,
                    "urgency": order.urgency.value,
                    "confidence": order.confidence,
                    "expected_delivery": order.expected_delivery.isoformat(),
                },
            )

        logger.info("automated_orders_generated", count=len(orders))

        return orders

    def create_order(self, data: PurchaseOrderCreate, actor: str) -> PurchaseOrder:
        """
        Create a manual purchase order in pending status.

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        product = self.store.get_product(data.product_id)
        if product is None:
            raise ProductNotFoundError(data.product_id)

        now = datetime.now(timezone.utc)
        lead_time = product.lead_time or self.settings.default_lead_time_days
        unit_cost = data.unit_cost
        if unit_cost is None:
            unit_cost = product.price * self.settings.wholesale_cost_fraction

        info = self.reorder_service.get_reorder_info(product.id)

        order = PurchaseOrder(
            product_id=product.id,
            product_name=product.name,
            supplier=data.supplier or SupplierInfo(name=product.supplier),
            order_quantity=data.order_quantity,
            unit_cost=unit_cost,
            priority=data.priority,
            urgency=data.priority,
            ai_generated=False,
            reorder_point=info.reorder_point if info else None,
            current_stock=product.count_in_stock,
            safety_stock=info.safety_stock if info else None,
            order_date=now,
            expected_delivery=now + timedelta(days=lead_time),
            created_at=now,
        )
        if data.notes:
            order.notes.append(OrderNote(user=actor, message=data.notes))
        order.record("created", actor, reason="manual")

        self.store.persist_purchase_order(order)

        logger.info(
            "purchase_order_created",
            order_id=order.id,
            product_id=order.product_id,
            quantity=order.order_quantity
        )

        return order

    # ===================
    # READ OPERATIONS
    # ===================

    def get(self, order_id: str) -> PurchaseOrder:
        """
        Raises:
            PurchaseOrderNotFoundError: If order doesn't exist
        """
        order = self.store.get_purchase_order(order_id)
        if order is None:
            raise PurchaseOrderNotFoundError(order_id)
        return order

    def list_orders(
        self,
        status: Optional[PurchaseOrderStatus] = None,
        ai_generated: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20
    ) -> tuple[list[PurchaseOrder], int]:
        """
        Purchase orders, newest first.

        Returns:
            Tuple of (orders on this page, total count)
        """
        orders = self.store.list_purchase_orders(status=status, ai_generated=ai_generated)
        offset = (page - 1) * page_size
        return orders[offset:offset + page_size], len(orders)

    def get_overdue_orders(self) -> list[PurchaseOrder]:
        """Non-terminal orders past their expected delivery date."""
        orders = self.store.list_purchase_orders()
        overdue = [o for o in orders if o.is_overdue]
        overdue.sort(key=lambda o: o.expected_delivery)
        return overdue

    # ===================
    # LIFECYCLE
    # ===================

    def approve(self, order_id: str, actor: str, notes: Optional[str] = None) -> PurchaseOrder:
        """
        Approve a pending order.

        Bumps the product's reorder counter afterwards; a failure there is
        logged and does not undo the approval.
        """
        order = self.get(order_id)

        if order.status != PurchaseOrderStatus.PENDING:
            raise InvalidStatusTransitionError(
                order.status.value,
                PurchaseOrderStatus.APPROVED.value,
                "Only pending orders can be approved"
            )

        now = datetime.now(timezone.utc)
        order.status = PurchaseOrderStatus.APPROVED
        order.approved_date = now
        order.approved_by = actor
        if notes:
            order.notes.append(OrderNote(user=actor, message=notes))
        order.record("approved", actor, notes=notes)

        self.store.update_purchase_order(order)

        try:
            self.store.increment_reorder_count(order.product_id, now)
        except Exception as e:
            logger.warning(
                "reorder_count_update_failed",
                product_id=order.product_id,
                error=str(e),
                error_type=type(e).__name__
            )

        logger.info("purchase_order_approved", order_id=order.id, approved_by=actor)

        return order

    def cancel(self, order_id: str, actor: str, reason: str = "Rejected by admin") -> PurchaseOrder:
        """Cancel any non-terminal order."""
        order = self.get(order_id)
        self._check_transition(order, PurchaseOrderStatus.CANCELLED)

        order.status = PurchaseOrderStatus.CANCELLED
        order.record("cancelled", actor, reason=reason)

        self.store.update_purchase_order(order)

        logger.info("purchase_order_cancelled", order_id=order.id, reason=reason)

        return order

    def mark_ordered(self, order_id: str, actor: str) -> PurchaseOrder:
        """approved -> ordered."""
        order = self.get(order_id)

        if order.status != PurchaseOrderStatus.APPROVED:
            raise InvalidStatusTransitionError(
                order.status.value,
                PurchaseOrderStatus.ORDERED.value,
                "Only approved orders can be placed with the supplier"
            )

        order.status = PurchaseOrderStatus.ORDERED
        order.record("ordered", actor)

        self.store.update_purchase_order(order)

        logger.info("purchase_order_placed", order_id=order.id)

        return order

    def mark_shipped(
        self,
        order_id: str,
        actor: str,
        tracking: Optional[TrackingUpdate] = None
    ) -> PurchaseOrder:
        """ordered -> shipped, optionally with tracking details."""
        order = self.get(order_id)

        if order.status != PurchaseOrderStatus.ORDERED:
            raise InvalidStatusTransitionError(
                order.status.value,
                PurchaseOrderStatus.SHIPPED.value,
                "Only ordered purchase orders can be shipped"
            )

        order.status = PurchaseOrderStatus.SHIPPED
        if tracking:
            self._merge_tracking(order, tracking)
        order.record("shipped", actor, tracking_number=order.tracking.tracking_number)

        self.store.update_purchase_order(order)

        logger.info("purchase_order_shipped", order_id=order.id)

        return order

    def update_tracking(
        self,
        order_id: str,
        tracking: TrackingUpdate,
        actor: str = SYSTEM_ACTOR
    ) -> PurchaseOrder:
        """Merge tracking fields; only for ordered or shipped orders."""
        order = self.get(order_id)

        if order.status not in TRACKABLE_STATUSES:
            raise InvalidStatusTransitionError(
                order.status.value,
                order.status.value,
                "Tracking can only be updated for ordered or shipped orders"
            )

        self._merge_tracking(order, tracking)
        order.record("tracking_updated", actor, **tracking.model_dump(exclude_none=True))

        self.store.update_purchase_order(order)

        return order

    def mark_delivered(
        self,
        order_id: str,
        actor: str,
        actual_unit_cost: Optional[float] = None,
        now: Optional[datetime] = None
    ) -> PurchaseOrder:
        """
        Record delivery and post-delivery metrics.

        delivery_accuracy is 1.0 when on time, 0.5 when late.
        lead_time is whole days (rounded up) since the order date.
        cost_variance is (actual - planned unit cost) * quantity.
        """
        order = self.get(order_id)
        self._check_transition(order, PurchaseOrderStatus.DELIVERED)

        now = now or datetime.now(timezone.utc)
        order.status = PurchaseOrderStatus.DELIVERED
        order.actual_delivery = now

        on_time = order.expected_delivery is None or now <= order.expected_delivery
        order.metrics.delivery_accuracy = 1.0 if on_time else LATE_DELIVERY_ACCURACY
        order.metrics.lead_time = max(0, math.ceil((now - order.order_date).total_seconds() / 86400))
        if actual_unit_cost is not None:
            order.metrics.cost_variance = round((actual_unit_cost - order.unit_cost) * order.order_quantity, 2)

        order.record(
            "delivered",
            actor,
            on_time=on_time,
            lead_time=order.metrics.lead_time,
            actual_unit_cost=actual_unit_cost
        )

        self.store.update_purchase_order(order)

        logger.info(
            "purchase_order_delivered",
            order_id=order.id,
            on_time=on_time,
            lead_time=order.metrics.lead_time
        )

        return order

    def update_quantity(self, order_id: str, quantity: int, actor: str) -> PurchaseOrder:
        """Change the quantity of a pending order; total cost follows."""
        order = self.get(order_id)

        if order.status != PurchaseOrderStatus.PENDING:
            raise InvalidStatusTransitionError(
                order.status.value,
                order.status.value,
                "Quantity can only be changed while the order is pending"
            )

        previous = order.order_quantity
        order.order_quantity = quantity
        order.record("quantity_updated", actor, previous=previous, new=quantity)

        self.store.update_purchase_order(order)

        return order

    def record_quality_check(
        self,
        order_id: str,
        actor: str,
        passed: bool,
        notes: Optional[str] = None,
        quality_score: Optional[float] = None
    ) -> PurchaseOrder:
        """Record the post-delivery inspection."""
        order = self.get(order_id)

        if order.status != PurchaseOrderStatus.DELIVERED:
            raise InvalidStatusTransitionError(
                order.status.value,
                order.status.value,
                "Quality checks can only be recorded after delivery"
            )

        order.quality_check.completed = True
        order.quality_check.completed_date = datetime.now(timezone.utc)
        order.quality_check.completed_by = actor
        order.quality_check.passed = passed
        order.quality_check.notes = notes
        if quality_score is None:
            quality_score = 1.0 if passed else 0.0
        order.metrics.quality_score = quality_score
        order.record("quality_checked", actor, passed=passed, quality_score=quality_score)

        self.store.update_purchase_order(order)

        return order

    def add_note(self, order_id: str, actor: str, message: str) -> PurchaseOrder:
        order = self.get(order_id)

        order.notes.append(OrderNote(user=actor, message=message))
        order.record("note_added", actor)

        self.store.update_purchase_order(order)

        return order

    # ===================
    # HELPERS
    # ===================

    @staticmethod
    def _check_transition(order: PurchaseOrder, new_status: PurchaseOrderStatus) -> None:
        if not is_valid_status_transition(order.status, new_status):
            raise InvalidStatusTransitionError(order.status.value, new_status.value)

    @staticmethod
    def _merge_tracking(order: PurchaseOrder, tracking: TrackingUpdate) -> None:
        for field, value in tracking.model_dump(exclude_none=True).items():
            setattr(order.tracking, field, value)
        order.tracking.last_update = datetime.now(timezone.utc)
