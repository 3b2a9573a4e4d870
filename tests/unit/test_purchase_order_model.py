"""
Unit tests for the purchase order model and its status rules.
"""

import re
import pytest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from models.purchase_order import (
    STATUS_ORDER,
    PurchaseOrderStatus,
    generate_order_number,
    is_valid_status_transition,
)
from tests.factories import PurchaseOrderFactory


class TestStatusTransitions:

    def test_forward_moves_allowed(self):
        assert is_valid_status_transition(PurchaseOrderStatus.PENDING, PurchaseOrderStatus.APPROVED)
        assert is_valid_status_transition(PurchaseOrderStatus.ORDERED, PurchaseOrderStatus.SHIPPED)
        assert is_valid_status_transition(PurchaseOrderStatus.SHIPPED, PurchaseOrderStatus.DELIVERED)

    def test_skip_forward_allowed(self):
        assert is_valid_status_transition(PurchaseOrderStatus.PENDING, PurchaseOrderStatus.ORDERED)

    def test_backward_moves_rejected(self):
        assert not is_valid_status_transition(PurchaseOrderStatus.SHIPPED, PurchaseOrderStatus.APPROVED)
        assert not is_valid_status_transition(PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.PENDING)

    def test_same_status_rejected(self):
        assert not is_valid_status_transition(PurchaseOrderStatus.PENDING, PurchaseOrderStatus.PENDING)

    @pytest.mark.parametrize("status", list(STATUS_ORDER)[:-1])
    def test_cancel_from_any_open_status(self, status):
        assert is_valid_status_transition(status, PurchaseOrderStatus.CANCELLED)

    @pytest.mark.parametrize("terminal", [PurchaseOrderStatus.DELIVERED, PurchaseOrderStatus.CANCELLED])
    def test_terminal_statuses_are_closed(self, terminal):
        for target in PurchaseOrderStatus:
            assert not is_valid_status_transition(terminal, target)


class TestPurchaseOrder:

    def test_total_cost_follows_quantity(self):
        order = PurchaseOrderFactory.create(order_quantity=20, unit_cost=5)
        assert order.total_cost == 100

        order.order_quantity = 30

        assert order.total_cost == 150
        assert order.model_dump()["total_cost"] == 150

    def test_total_cost_is_not_rounded_to_cents(self):
        order = PurchaseOrderFactory.create(order_quantity=37, unit_cost=19.99 * 0.6)

        assert order.unit_cost == pytest.approx(11.994)
        assert order.total_cost == pytest.approx(19.99 * 37 * 0.6)
        assert order.total_cost == pytest.approx(443.778)

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            PurchaseOrderFactory.create(order_quantity=0)

    def test_defaults(self):
        order = PurchaseOrderFactory.create()

        assert order.status == PurchaseOrderStatus.PENDING
        assert order.ai_generated is False
        assert order.audit_log == []
        assert order.quality_check.required is True

    def test_order_number_format(self):
        now = datetime(2025, 6, 1, tzinfo=timezone.utc)

        number = generate_order_number(now)

        assert re.fullmatch(rf"PO-{int(now.timestamp() * 1000)}-[0-9A-F]{{5}}", number)

    def test_record_appends_audit_entry(self):
        order = PurchaseOrderFactory.create()

        order.record("approved", "alice", notes="ok")

        assert len(order.audit_log) == 1
        assert order.audit_log[0].actor == "alice"
        assert order.audit_log[0].details == {"notes": "ok"}
        assert order.updated_at is not None

    def test_overdue(self):
        past = datetime.now(timezone.utc) - timedelta(days=1)

        open_order = PurchaseOrderFactory.create(expected_delivery=past)
        delivered = PurchaseOrderFactory.create(expected_delivery=past, status=PurchaseOrderStatus.DELIVERED)
        no_date = PurchaseOrderFactory.create()

        assert open_order.is_overdue is True
        assert delivered.is_overdue is False
        assert no_date.is_overdue is False
