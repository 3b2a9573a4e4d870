"""
Telegram bot integration for sending alerts.

Pushes formatted inventory alerts to a Telegram channel/chat.
"""

from typing import Optional

import requests
import structlog

from config.settings import Settings, get_settings
from exceptions import TelegramError
from models.alert import AlertType, InventoryAlert

logger = structlog.get_logger(__name__)


TYPE_EMOJIS = {
    AlertType.LOW_STOCK: "📦",
    AlertType.AUTO_REORDER: "🛒",
    AlertType.FORECAST_STALE: "⏰",
    AlertType.RETRAIN_FAILED: "🚨",
}

TYPE_TITLES = {
    AlertType.LOW_STOCK: "Low stock",
    AlertType.AUTO_REORDER: "Automated purchase order",
    AlertType.FORECAST_STALE: "Stale forecast",
    AlertType.RETRAIN_FAILED: "Model retrain failed",
}

TELEGRAM_API = "https://api.telegram.org"


def get_telegram_config(settings: Optional[Settings] = None) -> tuple[Optional[str], Optional[str]]:
    """
    Get Telegram configuration.

    Returns:
        tuple: (bot_token, chat_id)
    """
    settings = settings or get_settings()
    bot_token = settings.telegram_bot_token
    chat_id = settings.telegram_chat_id

    if not bot_token or not chat_id:
        logger.debug(
            "telegram_not_configured",
            has_token=bool(bot_token),
            has_chat_id=bool(chat_id)
        )

    return bot_token, chat_id


def format_alert_message(alert: InventoryAlert) -> str:
    """
    Format alert as Telegram message with emojis and formatting.

    Args:
        alert: Alert to format

    Returns:
        Formatted message string
    """
    emoji = TYPE_EMOJIS.get(alert.type, "•")
    title = TYPE_TITLES.get(alert.type, alert.type.value)

    lines = [
        f"{emoji} *{title}*",
        "",
        alert.message,
    ]

    if alert.product_id:
        lines.append("")
        lines.append(f"Product: `{alert.product_id}`")

    urgency = alert.payload.get("urgency")
    if urgency:
        lines.append(f"Urgency: {str(urgency).upper()}")

    order_number = alert.payload.get("order_number")
    if order_number:
        lines.append(f"PO: `{order_number}`")

    timestamp = alert.timestamp.strftime("%Y-%m-%d %H:%M UTC")
    lines.append("")
    lines.append(f"🕐 {timestamp}")

    return "\n".join(lines)


def send_message(
    message: str,
    parse_mode: str = "Markdown",
    settings: Optional[Settings] = None
) -> bool:
    """
    Send message to Telegram.

    Args:
        message: Message text to send
        parse_mode: Telegram parse mode (Markdown or HTML)

    Returns:
        True if sent, False if Telegram is not configured

    Raises:
        TelegramError: If send fails
    """
    bot_token, chat_id = get_telegram_config(settings)

    if not bot_token or not chat_id:
        return False

    url = f"{TELEGRAM_API}/bot{bot_token}/sendMessage"

    payload = {
        "chat_id": chat_id,
        "text": message,
        "parse_mode": parse_mode,
        "disable_web_page_preview": True,
    }

    try:
        logger.info("sending_telegram_message", chat_id=chat_id)

        response = requests.post(url, json=payload, timeout=10)
        response.raise_for_status()

        result = response.json()

        if not result.get("ok"):
            error_msg = result.get("description", "Unknown error")
            logger.error("telegram_api_error", error=error_msg)
            raise TelegramError(f"Telegram API error: {error_msg}")

        logger.info("telegram_message_sent", message_id=result.get("result", {}).get("message_id"))
        return True

    except requests.exceptions.RequestException as e:
        logger.error("telegram_request_failed", error=str(e))
        raise TelegramError(f"Failed to send Telegram message: {str(e)}")


def send_alert_to_telegram(alert: InventoryAlert, settings: Optional[Settings] = None) -> bool:
    """
    Send alert to Telegram with formatted message.

    Raises:
        TelegramError: If send fails
    """
    message = format_alert_message(alert)
    return send_message(message, settings=settings)
