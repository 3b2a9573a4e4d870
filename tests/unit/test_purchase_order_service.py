"""
Unit tests for PurchaseOrderService.

Tests:
1. Automated generation
2. Manual creation and reads
3. Lifecycle transitions
4. Delivery metrics
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from exceptions import (
    CollaboratorError,
    InvalidStatusTransitionError,
    ProductNotFoundError,
    PurchaseOrderNotFoundError,
)
from models.alert import AlertType
from models.purchase_order import PurchaseOrderCreate, PurchaseOrderStatus, TrackingUpdate
from models.reorder import Urgency
from services.alert_service import AlertService
from services.purchase_order_service import PurchaseOrderService
from services.reorder_service import ReorderService
from tests.factories import ForecastFactory, ProductFactory


NOW = datetime(2025, 6, 1, 12, tzinfo=timezone.utc)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def reorder_service(memory_store, settings):
    return ReorderService(memory_store, settings)


@pytest.fixture
def alert_service(settings):
    return AlertService(settings)


@pytest.fixture
def service(memory_store, reorder_service, alert_service, settings):
    return PurchaseOrderService(memory_store, reorder_service, alert_service, settings)


def stock_product(store, reorder_service, confidence=0.9, **overrides):
    """Add a product and give it reorder parameters (ROP 70, EOQ from price 100)."""
    data = {"id": "p1", "count_in_stock": 20, "lead_time": 7, "price": 100.0, "auto_reorder": True}
    data.update(overrides)
    product = store.add_product(ProductFactory.create(**data))
    forecasts = {product.id: ForecastFactory.create(product.id, confidence=confidence)}
    reorder_service.calculate_reorder_points(store.list_active_products(), forecasts, NOW)
    return product


@pytest.fixture
def pending_order(service, memory_store):
    memory_store.add_product(ProductFactory.create(id="p1", price=10.0, lead_time=5))
    return service.create_order(PurchaseOrderCreate(product_id="p1", order_quantity=20, unit_cost=5), "admin")


# ===================
# TEST 1: AUTOMATED GENERATION
# ===================

class TestGenerateAutomatedOrders:

    def test_generates_order_for_low_stock(self, service, memory_store, reorder_service, alert_service):
        stock_product(memory_store, reorder_service)

        orders = service.generate_automated_orders(now=NOW)

        assert len(orders) == 1
        order = orders[0]
        info = reorder_service.get_reorder_info("p1")
        assert order.ai_generated is True
        assert order.status == PurchaseOrderStatus.PENDING
        assert order.order_quantity == info.economic_order_quantity
        assert order.unit_cost == pytest.approx(60.0)
        assert order.total_cost == pytest.approx(order.order_quantity * 60.0)
        assert order.urgency == Urgency.CRITICAL
        assert order.reorder_point == 70
        assert order.current_stock == 20
        assert order.expected_delivery == NOW + timedelta(days=7)
        assert order.audit_log[0].action == "created"
        assert order.audit_log[0].actor == "system"

        assert memory_store.get_purchase_order(order.id) is not None

        alert = alert_service.get_alerts()[0]
        assert alert.type == AlertType.AUTO_REORDER
        assert alert.payload["order_id"] == order.id
        assert alert.payload["order_number"] == order.order_number
        assert alert.payload["total_cost"] == order.total_cost

    def test_estimated_cost_keeps_full_precision(self, service, memory_store, reorder_service):
        stock_product(memory_store, reorder_service, price=19.99)

        order = service.generate_automated_orders(now=NOW)[0]

        assert order.unit_cost == pytest.approx(19.99 * 0.6)
        assert order.total_cost == pytest.approx(19.99 * order.order_quantity * 0.6)

    def test_zero_lead_time_uses_default(self, service, memory_store, reorder_service):
        stock_product(memory_store, reorder_service, lead_time=0)

        order = service.generate_automated_orders(now=NOW)[0]

        assert order.reorder_point == 70
        assert order.expected_delivery == NOW + timedelta(days=7)

    def test_low_confidence_is_skipped(self, service, memory_store, reorder_service):
        stock_product(memory_store, reorder_service, confidence=0.8)

        assert service.generate_automated_orders(now=NOW) == []

    def test_enough_stock_is_skipped(self, service, memory_store, reorder_service):
        stock_product(memory_store, reorder_service, count_in_stock=500)

        assert service.generate_automated_orders(now=NOW) == []

    def test_auto_reorder_disabled_is_skipped(self, service, memory_store, reorder_service):
        stock_product(memory_store, reorder_service, auto_reorder=False)

        assert service.generate_automated_orders(now=NOW) == []

    def test_product_without_reorder_point_is_skipped(self, service, memory_store):
        memory_store.add_product(ProductFactory.create(id="p1", count_in_stock=0, auto_reorder=True))

        assert service.generate_automated_orders(now=NOW) == []

    def test_zero_eoq_still_orders_one_unit(self, service, memory_store, reorder_service):
        product = memory_store.add_product(
            ProductFactory.create(id="p1", count_in_stock=0, auto_reorder=True, price=100.0)
        )
        forecasts = {"p1": ForecastFactory.create("p1", predictions=[0.0] * 30, confidence=0.9)}
        reorder_service.calculate_reorder_points([product], forecasts, NOW)

        orders = service.generate_automated_orders(now=NOW)

        assert orders[0].order_quantity == 1

    def test_store_failure_propagates(self, reorder_service, alert_service, settings):
        store = MagicMock()
        store.list_active_products.side_effect = CollaboratorError("list_active_products", "down")
        service = PurchaseOrderService(store, reorder_service, alert_service, settings)

        with pytest.raises(CollaboratorError):
            service.generate_automated_orders()


# ===================
# TEST 2: CREATION & READS
# ===================

class TestCreateAndRead:

    def test_create_manual_order(self, pending_order):
        assert pending_order.total_cost == 100
        assert pending_order.ai_generated is False
        assert pending_order.audit_log[0].details == {"reason": "manual"}
        assert pending_order.supplier.name == "Acme Supply"

    def test_default_unit_cost_is_wholesale_fraction(self, service, memory_store):
        memory_store.add_product(ProductFactory.create(id="p2", price=50.0))

        order = service.create_order(PurchaseOrderCreate(product_id="p2", order_quantity=1), "admin")

        assert order.unit_cost == pytest.approx(30.0)

    def test_manual_order_with_zero_lead_time(self, service, memory_store):
        memory_store.add_product(ProductFactory.create(id="p3", lead_time=0))

        order = service.create_order(PurchaseOrderCreate(product_id="p3", order_quantity=1), "admin")

        assert order.expected_delivery - order.order_date == timedelta(days=7)

    def test_create_for_unknown_product(self, service):
        with pytest.raises(ProductNotFoundError):
            service.create_order(PurchaseOrderCreate(product_id="ghost", order_quantity=1), "admin")

    def test_get_unknown_order(self, service):
        with pytest.raises(PurchaseOrderNotFoundError):
            service.get("missing")

    def test_list_orders_paginates_newest_first(self, service, memory_store):
        memory_store.add_product(ProductFactory.create(id="p1"))
        created = [
            service.create_order(PurchaseOrderCreate(product_id="p1", order_quantity=i + 1), "admin")
            for i in range(3)
        ]

        page, total = service.list_orders(page=1, page_size=2)

        assert total == 3
        assert len(page) == 2
        assert page[0].order_date >= page[1].order_date
        assert {o.id for o in created} >= {o.id for o in page}

    def test_overdue_orders(self, service, memory_store, pending_order):
        late = service.get(pending_order.id)
        late.expected_delivery = datetime.now(timezone.utc) - timedelta(days=2)
        memory_store.update_purchase_order(late)

        overdue = service.get_overdue_orders()

        assert [o.id for o in overdue] == [pending_order.id]


# ===================
# TEST 3: LIFECYCLE
# ===================

class TestLifecycle:

    def test_full_lifecycle(self, service, pending_order, memory_store):
        order_id = pending_order.id

        service.approve(order_id, "alice", notes="looks good")
        service.mark_ordered(order_id, "alice")
        service.mark_shipped(order_id, "bob", TrackingUpdate(tracking_number="1Z999", carrier="UPS"))
        delivered = service.mark_delivered(order_id, "bob")

        assert delivered.status == PurchaseOrderStatus.DELIVERED
        assert [e.action for e in delivered.audit_log] == ["created", "approved", "ordered", "shipped", "delivered"]
        assert delivered.approved_by == "alice"
        assert delivered.tracking.tracking_number == "1Z999"
        assert delivered.notes[0].message == "looks good"
        assert memory_store.get_purchase_order(order_id).status == PurchaseOrderStatus.DELIVERED

    def test_approve_then_cancel_succeeds(self, service, pending_order):
        service.approve(pending_order.id, "alice")

        cancelled = service.cancel(pending_order.id, "alice", "Supplier out of stock")

        assert cancelled.status == PurchaseOrderStatus.CANCELLED
        assert cancelled.audit_log[-1].details == {"reason": "Supplier out of stock"}

    def test_cancel_then_approve_fails(self, service, pending_order):
        service.cancel(pending_order.id, "alice")

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            service.approve(pending_order.id, "alice")

        assert exc_info.value.status_code == 409
        # Nothing written by the failed call
        assert service.get(pending_order.id).status == PurchaseOrderStatus.CANCELLED

    def test_approve_bumps_reorder_count(self, service, pending_order, memory_store):
        service.approve(pending_order.id, "alice")

        product = memory_store.get_product("p1")
        assert product.reorder_count == 1
        assert product.last_reorder_date is not None

    def test_reorder_count_failure_does_not_undo_approval(self, service, pending_order, memory_store):
        memory_store.increment_reorder_count = MagicMock(
            side_effect=CollaboratorError("increment_reorder_count", "down")
        )

        order = service.approve(pending_order.id, "alice")

        assert order.status == PurchaseOrderStatus.APPROVED
        assert memory_store.get_purchase_order(pending_order.id).status == PurchaseOrderStatus.APPROVED

    def test_unexpected_reorder_count_error_does_not_fail_approval(self, service, pending_order, memory_store):
        memory_store.increment_reorder_count = MagicMock(side_effect=RuntimeError("boom"))

        order = service.approve(pending_order.id, "alice")

        assert order.status == PurchaseOrderStatus.APPROVED

    def test_cannot_ship_pending(self, service, pending_order):
        with pytest.raises(InvalidStatusTransitionError):
            service.mark_shipped(pending_order.id, "bob")

    def test_cannot_order_pending(self, service, pending_order):
        with pytest.raises(InvalidStatusTransitionError):
            service.mark_ordered(pending_order.id, "bob")

    def test_delivered_cannot_be_cancelled(self, service, pending_order):
        service.mark_delivered(pending_order.id, "bob")

        with pytest.raises(InvalidStatusTransitionError):
            service.cancel(pending_order.id, "alice")

    def test_tracking_only_for_ordered_or_shipped(self, service, pending_order):
        with pytest.raises(InvalidStatusTransitionError):
            service.update_tracking(pending_order.id, TrackingUpdate(carrier="DHL"))

        service.approve(pending_order.id, "alice")
        service.mark_ordered(pending_order.id, "alice")
        order = service.update_tracking(pending_order.id, TrackingUpdate(carrier="DHL"))

        assert order.tracking.carrier == "DHL"
        assert order.tracking.last_update is not None

    def test_tracking_merge_keeps_existing_fields(self, service, pending_order):
        service.approve(pending_order.id, "alice")
        service.mark_ordered(pending_order.id, "alice")
        service.mark_shipped(pending_order.id, "bob", TrackingUpdate(tracking_number="1Z999"))

        order = service.update_tracking(pending_order.id, TrackingUpdate(status="in_transit"))

        assert order.tracking.tracking_number == "1Z999"
        assert order.tracking.status == "in_transit"

    def test_update_quantity_recomputes_total(self, service, pending_order):
        order = service.update_quantity(pending_order.id, 30, "alice")

        assert order.total_cost == 150
        assert service.get(pending_order.id).total_cost == 150

    def test_update_quantity_after_approval_fails(self, service, pending_order):
        service.approve(pending_order.id, "alice")

        with pytest.raises(InvalidStatusTransitionError):
            service.update_quantity(pending_order.id, 30, "alice")

    def test_add_note(self, service, pending_order):
        order = service.add_note(pending_order.id, "alice", "Call supplier on Monday")

        assert order.notes[-1].user == "alice"
        assert order.audit_log[-1].action == "note_added"


# ===================
# TEST 4: DELIVERY METRICS
# ===================

class TestDeliveryMetrics:

    def test_on_time_delivery(self, service, pending_order):
        arrived = pending_order.order_date + timedelta(days=3)

        order = service.mark_delivered(pending_order.id, "bob", actual_unit_cost=5.5, now=arrived)

        assert order.metrics.delivery_accuracy == 1.0
        assert order.metrics.lead_time == 3
        assert order.metrics.cost_variance == pytest.approx(10.0)
        assert order.actual_delivery == arrived

    def test_late_delivery(self, service, pending_order):
        arrived = pending_order.expected_delivery + timedelta(hours=1)

        order = service.mark_delivered(pending_order.id, "bob", now=arrived)

        assert order.metrics.delivery_accuracy == 0.5
        assert order.metrics.lead_time == 6
        assert order.metrics.cost_variance is None

    def test_quality_check_after_delivery(self, service, pending_order):
        service.mark_delivered(pending_order.id, "bob")

        order = service.record_quality_check(pending_order.id, "carol", passed=True, notes="All units intact")

        assert order.quality_check.completed is True
        assert order.quality_check.passed is True
        assert order.metrics.quality_score == 1.0

    def test_quality_check_before_delivery_fails(self, service, pending_order):
        with pytest.raises(InvalidStatusTransitionError):
            service.record_quality_check(pending_order.id, "carol", passed=False)
