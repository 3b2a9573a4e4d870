"""
Alert service.

Keeps the most recent inventory alerts in a bounded in-memory log and pushes
the important ones to Telegram.
"""

import threading
from collections import deque
from typing import Any, Callable, Optional

import structlog

from config.settings import Settings
from exceptions import AlertNotFoundError, TelegramError
from integrations.telegram import send_alert_to_telegram
from models.alert import AlertType, InventoryAlert
from models.reorder import Urgency

logger = structlog.get_logger(__name__)


Notifier = Callable[[InventoryAlert], bool]


class AlertService:
    """
    Bounded alert log.

    Holds at most alert_log_capacity alerts; appending beyond that evicts
    the oldest. Reads are newest first.
    """

    def __init__(self, settings: Settings, notifier: Optional[Notifier] = None):
        self.settings = settings
        self._alerts: deque[InventoryAlert] = deque(maxlen=settings.alert_log_capacity)
        self._lock = threading.Lock()

        if notifier is None and settings.telegram_configured:
            notifier = lambda alert: send_alert_to_telegram(alert, settings=settings)
        self._notifier = notifier

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create_alert(
        self,
        type: AlertType,
        message: str,
        product_id: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None
    ) -> InventoryAlert:
        """
        Append an alert to the log.

        Critical low-stock and auto-reorder alerts are also pushed to
        Telegram; a failed push is logged and never fails the append.
        """
        alert = InventoryAlert(
            type=type,
            product_id=product_id,
            message=message,
            payload=payload or {},
        )

        with self._lock:
            self._alerts.append(alert)

        logger.info(
            "inventory_alert_created",
            alert_id=alert.id,
            type=alert.type.value,
            product_id=product_id
        )

        if self._notifier and self._should_push(alert):
            try:
                if self._notifier(alert):
                    logger.info("alert_sent_to_telegram", alert_id=alert.id)
            except TelegramError as e:
                logger.warning(
                    "telegram_send_failed",
                    alert_id=alert.id,
                    error=str(e)
                )

        return alert

    def mark_read(self, alert_id: str) -> InventoryAlert:
        """
        Mark an alert as read.

        Raises:
            AlertNotFoundError: If the alert is not (or no longer) in the log
        """
        with self._lock:
            for alert in self._alerts:
                if alert.id == alert_id:
                    alert.read = True
                    return alert

        raise AlertNotFoundError(alert_id)

    def clear(self) -> None:
        with self._lock:
            self._alerts.clear()

    # ===================
    # READ OPERATIONS
    # ===================

    def get_alerts(self, limit: int = 20) -> list[InventoryAlert]:
        """Most recent alerts, newest first."""
        with self._lock:
            newest_first = list(reversed(self._alerts))
        return newest_first[:max(limit, 0)]

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for alert in self._alerts if not alert.read)

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

    @staticmethod
    def _should_push(alert: InventoryAlert) -> bool:
        if alert.type == AlertType.AUTO_REORDER:
            return True
        if alert.type == AlertType.LOW_STOCK:
            return alert.payload.get("urgency") == Urgency.CRITICAL.value
        return False
