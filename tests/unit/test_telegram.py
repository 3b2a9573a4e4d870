"""
Unit tests for the Telegram integration.
"""

import pytest
import requests
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from exceptions import TelegramError
from integrations.telegram import format_alert_message, send_alert_to_telegram, send_message
from models.alert import AlertType, InventoryAlert


@pytest.fixture
def telegram_settings(settings):
    return settings.model_copy(update={"telegram_bot_token": "123:abc", "telegram_chat_id": "-100"})


@pytest.fixture
def alert():
    return InventoryAlert(
        type=AlertType.AUTO_REORDER,
        product_id="prod-audio-001",
        message="Automated reorder generated for Studio Buds",
        payload={"urgency": "critical", "order_number": "PO-1-ABCDE"},
        timestamp=datetime(2025, 6, 1, 9, 30, tzinfo=timezone.utc),
    )


def ok_response(message_id=42):
    response = MagicMock()
    response.json.return_value = {"ok": True, "result": {"message_id": message_id}}
    response.raise_for_status.return_value = None
    return response


class TestFormatAlertMessage:

    def test_includes_alert_details(self, alert):
        text = format_alert_message(alert)

        assert text.startswith("🛒 *Automated purchase order*")
        assert "Automated reorder generated for Studio Buds" in text
        assert "`prod-audio-001`" in text
        assert "Urgency: CRITICAL" in text
        assert "PO: `PO-1-ABCDE`" in text
        assert "2025-06-01 09:30 UTC" in text

    def test_minimal_alert(self):
        text = format_alert_message(InventoryAlert(type=AlertType.FORECAST_STALE, message="stale"))

        assert "Stale forecast" in text
        assert "Product:" not in text


class TestSendMessage:

    def test_not_configured_returns_false(self, settings):
        with patch("integrations.telegram.requests.post") as post:
            assert send_message("hello", settings=settings) is False
            post.assert_not_called()

    def test_posts_to_bot_api(self, telegram_settings):
        with patch("integrations.telegram.requests.post", return_value=ok_response()) as post:
            assert send_message("hello", settings=telegram_settings) is True

        url = post.call_args.args[0]
        payload = post.call_args.kwargs["json"]
        assert url == "https://api.telegram.org/bot123:abc/sendMessage"
        assert payload["chat_id"] == "-100"
        assert payload["text"] == "hello"
        assert payload["parse_mode"] == "Markdown"

    def test_api_error_raises(self, telegram_settings):
        response = ok_response()
        response.json.return_value = {"ok": False, "description": "Bad Request: chat not found"}

        with patch("integrations.telegram.requests.post", return_value=response):
            with pytest.raises(TelegramError) as exc_info:
                send_message("hello", settings=telegram_settings)

        assert "chat not found" in exc_info.value.message

    def test_network_error_raises(self, telegram_settings):
        with patch("integrations.telegram.requests.post", side_effect=requests.exceptions.ConnectionError("boom")):
            with pytest.raises(TelegramError):
                send_message("hello", settings=telegram_settings)

    def test_send_alert(self, telegram_settings, alert):
        with patch("integrations.telegram.requests.post", return_value=ok_response()) as post:
            assert send_alert_to_telegram(alert, settings=telegram_settings) is True

        assert "Studio Buds" in post.call_args.kwargs["json"]["text"]
