"""
Background inventory monitor.

Two independent periodic jobs run as asyncio tasks inside the app lifespan:
- stock check: low-stock and stale-forecast alerts (every 5 minutes)
- auto orders: automated purchase order generation (daily)

Each job sleeps first, then runs in a worker thread. A failing run is logged
and the job keeps its schedule.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from config.settings import Settings
from integrations.base import CommerceStore
from models.alert import AlertType, InventoryAlert
from models.purchase_order import PurchaseOrder
from models.reorder import ReorderCheckStatus
from services.alert_service import AlertService
from services.forecast_service import ForecastService
from services.purchase_order_service import PurchaseOrderService
from services.reorder_service import ReorderService

logger = structlog.get_logger(__name__)


class InventoryMonitor:
    """Owns the periodic stock-check and auto-order tasks."""

    def __init__(
        self,
        store: CommerceStore,
        reorder_service: ReorderService,
        forecast_service: ForecastService,
        alert_service: AlertService,
        purchase_order_service: PurchaseOrderService,
        settings: Settings
    ):
        self.store = store
        self.reorder_service = reorder_service
        self.forecast_service = forecast_service
        self.alert_service = alert_service
        self.purchase_order_service = purchase_order_service
        self.settings = settings
        self._tasks: list[asyncio.Task] = []
        self._stale_reported: set[tuple[str, datetime]] = set()

    # ===================
    # JOBS
    # ===================

    def run_stock_check(self, now: Optional[datetime] = None) -> list[InventoryAlert]:
        """
        Alert on low stock that needs reordering and on stale forecasts.

        Ends by dropping cached projections so the next read is fresh.
        """
        now = now or datetime.now(timezone.utc)
        alerts = []

        products = self.store.list_active_products(max_stock=self.settings.low_stock_threshold)

        for product in products:
            status = self.reorder_service.evaluate(product)
            if status.status != ReorderCheckStatus.CALCULATED or not status.needs_reorder:
                continue

            alerts.append(self.alert_service.create_alert(
                AlertType.LOW_STOCK,
                f"{product.name or product.id} is low on stock ({status.current_stock} left, "
                f"reorder point {status.reorder_point})",
                product_id=product.id,
                payload={
                    "current_stock": status.current_stock,
                    "reorder_point": status.reorder_point,
                    "recommended_order_quantity": status.recommended_order_quantity,
                    "urgency": status.urgency.value,
                },
            ))

        stale = self.forecast_service.get_stale_forecasts(self.settings.forecast_stale_after_hours, now)
        current = {(f.product_id, f.last_updated) for f in stale}
        # Forget refreshed or dropped forecasts
        self._stale_reported &= current
        for forecast in stale:
            key = (forecast.product_id, forecast.last_updated)
            if key in self._stale_reported:
                continue
            self._stale_reported.add(key)

            alerts.append(self.alert_service.create_alert(
                AlertType.FORECAST_STALE,
                f"Forecast for {forecast.product_id} has not been refreshed since "
                f"{forecast.last_updated.strftime('%Y-%m-%d %H:%M UTC')}",
                product_id=forecast.product_id,
                payload={"last_updated": forecast.last_updated.isoformat()},
            ))

        self.forecast_service.invalidate_cache()

        logger.info(
            "stock_check_completed",
            low_stock_candidates=len(products),
            stale_forecasts=len(stale),
            alerts_created=len(alerts)
        )

        return alerts

    def run_auto_orders(self) -> list[PurchaseOrder]:
        orders = self.purchase_order_service.generate_automated_orders()
        logger.info("auto_order_run_completed", orders_created=len(orders))
        return orders

    # ===================
    # SCHEDULING
    # ===================

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        """Schedule both jobs on the running event loop."""
        if self.running:
            return

        self._tasks = [
            asyncio.create_task(
                self._run_periodically("stock_check", self.settings.stock_monitor_interval_seconds, self.run_stock_check),
                name="inventory-stock-check",
            ),
            asyncio.create_task(
                self._run_periodically("auto_orders", self.settings.auto_order_interval_seconds, self.run_auto_orders),
                name="inventory-auto-orders",
            ),
        ]

        logger.info(
            "inventory_monitor_started",
            stock_interval=self.settings.stock_monitor_interval_seconds,
            auto_order_interval=self.settings.auto_order_interval_seconds
        )

    async def stop(self) -> None:
        """Cancel both jobs and wait for them to finish."""
        for task in self._tasks:
            task.cancel()

        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        logger.info("inventory_monitor_stopped")

    async def _run_periodically(self, job: str, interval: float, func: Callable[[], object]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await asyncio.to_thread(func)
            except Exception as e:
                logger.error(
                    "monitor_job_failed",
                    job=job,
                    error=str(e),
                    error_type=type(e).__name__
                )
