"""
Unit tests for sales history aggregation.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

from exceptions import CollaboratorError
from services.cache_service import TTLCache
from services.history_service import HistoryService, aggregate_order_lines
from tests.factories import OrderLineFactory


NOW = datetime(2025, 6, 1, 12, tzinfo=timezone.utc)


# ===================
# AGGREGATION
# ===================

class TestAggregateOrderLines:

    def test_empty_input(self):
        assert aggregate_order_lines([]) == {}

    def test_groups_by_product_and_day(self):
        day = datetime(2025, 3, 3, 9, tzinfo=timezone.utc)
        lines = [
            OrderLineFactory.create("p1", quantity=2, unit_price=10, order_timestamp=day),
            OrderLineFactory.create("p1", quantity=3, unit_price=12, order_timestamp=day + timedelta(hours=5)),
            OrderLineFactory.create("p1", quantity=1, unit_price=10, order_timestamp=day + timedelta(days=1)),
            OrderLineFactory.create("p2", quantity=4, unit_price=5, order_timestamp=day),
        ]

        history = aggregate_order_lines(lines)

        assert set(history) == {"p1", "p2"}
        first, second = history["p1"]
        assert first.date == date(2025, 3, 3)
        assert first.quantity_sold == 5
        assert first.revenue == pytest.approx(2 * 10 + 3 * 12)
        assert first.order_count == 2
        # Price of the most recent line that day
        assert first.unit_price == 12
        assert second.date == date(2025, 3, 4)
        assert history["p2"][0].quantity_sold == 4

    def test_records_sorted_by_date(self):
        lines = [
            OrderLineFactory.create("p1", order_timestamp=datetime(2025, 3, 5, tzinfo=timezone.utc)),
            OrderLineFactory.create("p1", order_timestamp=datetime(2025, 3, 1, tzinfo=timezone.utc)),
            OrderLineFactory.create("p1", order_timestamp=datetime(2025, 3, 3, tzinfo=timezone.utc)),
        ]

        dates = [r.date for r in aggregate_order_lines(lines)["p1"]]

        assert dates == sorted(dates)

    def test_days_are_utc_calendar_days(self):
        # 23:30 at UTC-5 is 04:30 the next day in UTC
        local = timezone(timedelta(hours=-5))
        line = OrderLineFactory.create("p1", order_timestamp=datetime(2025, 3, 3, 23, 30, tzinfo=local))

        record = aggregate_order_lines([line])["p1"][0]

        assert record.date == date(2025, 3, 4)

    def test_seasonality_tag(self):
        # 2025-03-03 is a Monday in Q1
        line = OrderLineFactory.create("p1", order_timestamp=datetime(2025, 3, 3, 12, tzinfo=timezone.utc))

        tag = aggregate_order_lines([line])["p1"][0].seasonality_tag

        assert tag.month == 3
        assert tag.day_of_week == 0
        assert tag.quarter == 1

    def test_revenue_falls_back_to_quantity_times_price(self):
        line = OrderLineFactory.create("p1", quantity=3, unit_price=7.5)

        record = aggregate_order_lines([line])["p1"][0]

        assert record.revenue == pytest.approx(22.5)

    def test_missing_category_is_none(self):
        line = OrderLineFactory.create("p1", category=None)

        assert aggregate_order_lines([line])["p1"][0].category is None


# ===================
# SERVICE
# ===================

class TestHistoryService:

    def test_load_history_uses_trailing_window(self, memory_store, settings):
        memory_store.add_order_lines([
            OrderLineFactory.create("p1", quantity=1, order_timestamp=NOW - timedelta(days=400)),
            OrderLineFactory.create("p1", quantity=2, order_timestamp=NOW - timedelta(days=10)),
        ])
        service = HistoryService(memory_store, TTLCache(), settings)

        history = service.load_history(now=NOW)

        assert len(history["p1"]) == 1
        assert history["p1"][0].quantity_sold == 2

    def test_only_fulfilled_orders_count(self, memory_store, settings):
        memory_store.add_order_lines(
            [OrderLineFactory.create("p1", order_timestamp=NOW - timedelta(days=1))],
            status="pending"
        )
        memory_store.add_order_lines(
            [OrderLineFactory.create("p2", order_timestamp=NOW - timedelta(days=1))],
            status="shipped"
        )
        service = HistoryService(memory_store, TTLCache(), settings)

        assert set(service.load_history(now=NOW)) == {"p2"}

    def test_cached_until_reload_without_cache(self, memory_store, settings):
        service = HistoryService(memory_store, TTLCache(), settings)
        assert service.load_history(now=NOW) == {}

        memory_store.add_order_lines([OrderLineFactory.create("p1", order_timestamp=NOW - timedelta(days=1))])

        assert service.load_history(now=NOW) == {}
        assert "p1" in service.load_history(use_cache=False, now=NOW)

    def test_invalidate_drops_cached_history(self, memory_store, settings):
        service = HistoryService(memory_store, TTLCache(), settings)
        service.load_history(now=NOW)
        memory_store.add_order_lines([OrderLineFactory.create("p1", order_timestamp=NOW - timedelta(days=1))])

        service.invalidate()

        assert "p1" in service.load_history(now=NOW)

    def test_store_failure_propagates_as_collaborator_error(self, settings):
        store = MagicMock()
        store.get_fulfilled_order_lines.side_effect = RuntimeError("connection reset")
        service = HistoryService(store, TTLCache(), settings)

        with pytest.raises(CollaboratorError) as exc_info:
            service.load_history()

        assert exc_info.value.status_code == 503

    def test_get_product_history_unknown_product(self, memory_store, settings):
        service = HistoryService(memory_store, TTLCache(), settings)

        assert service.get_product_history("missing") == []
