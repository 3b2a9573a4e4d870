"""
Unit tests for the bounded alert log and Telegram push rules.
"""

import pytest
from unittest.mock import MagicMock

from exceptions import AlertNotFoundError, TelegramError
from models.alert import AlertType
from services.alert_service import AlertService


@pytest.fixture
def notifier():
    return MagicMock(return_value=True)


@pytest.fixture
def service(settings, notifier):
    return AlertService(settings, notifier=notifier)


class TestAlertLog:

    def test_capacity_keeps_most_recent(self, service):
        for i in range(150):
            service.create_alert(AlertType.FORECAST_STALE, f"alert {i}")

        assert len(service) == 100
        alerts = service.get_alerts(limit=1000)
        assert len(alerts) == 100
        assert alerts[0].message == "alert 149"
        assert alerts[-1].message == "alert 50"

    def test_newest_first_with_limit(self, service):
        for i in range(5):
            service.create_alert(AlertType.FORECAST_STALE, f"alert {i}")

        assert [a.message for a in service.get_alerts(limit=2)] == ["alert 4", "alert 3"]

    def test_configurable_capacity(self, settings):
        service = AlertService(settings.model_copy(update={"alert_log_capacity": 3}))
        for i in range(5):
            service.create_alert(AlertType.FORECAST_STALE, f"alert {i}")

        assert len(service) == 3

    def test_mark_read(self, service):
        alert = service.create_alert(AlertType.FORECAST_STALE, "stale")
        assert service.unread_count() == 1

        service.mark_read(alert.id)

        assert service.unread_count() == 0
        assert service.get_alerts()[0].read is True

    def test_mark_read_unknown(self, service):
        with pytest.raises(AlertNotFoundError):
            service.mark_read("nope")

    def test_clear(self, service):
        service.create_alert(AlertType.FORECAST_STALE, "stale")

        service.clear()

        assert len(service) == 0


class TestTelegramPush:

    def test_auto_reorder_is_pushed(self, service, notifier):
        alert = service.create_alert(AlertType.AUTO_REORDER, "PO created", product_id="p1")

        notifier.assert_called_once_with(alert)

    def test_critical_low_stock_is_pushed(self, service, notifier):
        service.create_alert(AlertType.LOW_STOCK, "low", payload={"urgency": "critical"})

        assert notifier.call_count == 1

    def test_non_critical_low_stock_stays_local(self, service, notifier):
        service.create_alert(AlertType.LOW_STOCK, "low", payload={"urgency": "high"})
        service.create_alert(AlertType.FORECAST_STALE, "stale")
        service.create_alert(AlertType.RETRAIN_FAILED, "failed")

        notifier.assert_not_called()

    def test_push_failure_does_not_fail_append(self, settings):
        notifier = MagicMock(side_effect=TelegramError("Telegram API error: Bad Request"))
        service = AlertService(settings, notifier=notifier)

        alert = service.create_alert(AlertType.AUTO_REORDER, "PO created")

        assert service.get_alerts()[0].id == alert.id

    def test_no_notifier_without_telegram_config(self, settings):
        service = AlertService(settings)

        assert service._notifier is None
