"""
Inventory intelligence engine.

Composition root for the forecasting and reorder pipeline. One engine is
built per app (see main.create_app) and reached from routes through
routes.deps.get_engine.

Retrain pipeline:
    reload history -> build profiles -> fit forecasts -> reorder points
"""

import random
import threading
from datetime import datetime, timezone
from typing import Optional

import structlog

from config.settings import Settings, get_settings
from exceptions import AppError, CollaboratorError, RetrainInProgressError
from integrations.base import CommerceStore
from models.alert import AlertType, InventoryAlert
from models.forecast import ForecastResult, RetrainSummary
from models.purchase_order import PurchaseOrder, TrackingUpdate
from models.reorder import ReorderStatus
from services.alert_service import AlertService, Notifier
from services.analytics_service import AnalyticsService
from services.cache_service import TTLCache
from services.forecast_service import ForecastService
from services.history_service import HistoryService
from services.monitor_service import InventoryMonitor
from services.pattern_service import PatternService
from services.purchase_order_service import PurchaseOrderService
from services.reorder_service import ReorderService

logger = structlog.get_logger(__name__)


class InventoryEngine:
    """
    Owns every inventory intelligence service and their in-memory state.

    Forecasts, profiles and reorder points are replaced wholesale by retrain();
    a failed retrain leaves the previous state in place.
    """

    def __init__(
        self,
        store: CommerceStore,
        settings: Optional[Settings] = None,
        cache: Optional[TTLCache] = None,
        rng: Optional[random.Random] = None,
        notifier: Optional[Notifier] = None
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.cache = cache or TTLCache()

        self.history_service = HistoryService(store, self.cache, self.settings)
        self.pattern_service = PatternService()
        self.forecast_service = ForecastService(self.settings, self.cache, rng)
        self.reorder_service = ReorderService(store, self.settings)
        self.alert_service = AlertService(self.settings, notifier)
        self.purchase_order_service = PurchaseOrderService(
            store, self.reorder_service, self.alert_service, self.settings
        )
        self.analytics_service = AnalyticsService(
            store,
            self.forecast_service,
            self.reorder_service,
            self.alert_service,
            self.purchase_order_service,
            self.cache,
            self.settings,
        )
        self.monitor = InventoryMonitor(
            store,
            self.reorder_service,
            self.forecast_service,
            self.alert_service,
            self.purchase_order_service,
            self.settings,
        )

        self._retrain_lock = threading.Lock()
        self._retrain_started_at: Optional[datetime] = None
        self.last_retrain: Optional[RetrainSummary] = None

    # ===================
    # RETRAIN
    # ===================

    @property
    def retraining(self) -> bool:
        return self._retrain_lock.locked()

    def retrain(self, now: Optional[datetime] = None) -> RetrainSummary:
        """
        Reload history and rebuild profiles, forecasts and reorder points.

        Raises:
            RetrainInProgressError: If another retrain is running
            CollaboratorError: If the store cannot be read; previous state is kept
        """
        if not self._retrain_lock.acquire(blocking=False):
            started = self._retrain_started_at.isoformat() if self._retrain_started_at else None
            raise RetrainInProgressError(started)

        try:
            started_at = now or datetime.now(timezone.utc)
            self._retrain_started_at = started_at

            logger.info("retrain_started", store=self.store.name)

            try:
                history = self.history_service.load_history(use_cache=False, now=started_at)
                products = self.store.list_active_products()
            except CollaboratorError as e:
                logger.error("retrain_failed", error=e.message, operation=e.details.get("operation"))
                self.alert_service.create_alert(
                    AlertType.RETRAIN_FAILED,
                    f"Model retrain failed: {e.message}",
                    payload={"error": e.message, "started_at": started_at.isoformat()},
                )
                raise

            profiles = self.pattern_service.build_profiles(history)
            forecasts = self.forecast_service.train(profiles, now=started_at)
            reorder_points = self.reorder_service.calculate_reorder_points(products, forecasts, now=started_at)

            self.analytics_service.invalidate_cache()
            self.forecast_service.invalidate_cache()

            summary = RetrainSummary(
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
                products_with_history=len(history),
                profiles_built=len(profiles),
                forecasts_trained=len(forecasts),
                reorder_points_calculated=len(reorder_points),
            )
            self.last_retrain = summary

            logger.info(
                "retrain_completed",
                profiles=summary.profiles_built,
                forecasts=summary.forecasts_trained,
                reorder_points=summary.reorder_points_calculated,
                duration_seconds=round(summary.duration_seconds, 3)
            )

            return summary

        finally:
            self._retrain_started_at = None
            self._retrain_lock.release()

    def retrain_in_background(self) -> Optional[RetrainSummary]:
        """Retrain for background tasks: errors are logged, not raised."""
        try:
            return self.retrain()
        except AppError as e:
            logger.error("background_retrain_failed", code=e.code, error=e.message)
            return None

    # ===================
    # FORECASTS & REORDER
    # ===================

    def get_demand_forecast(self, product_id: str, days: Optional[int] = None) -> ForecastResult:
        return self.forecast_service.get_demand_forecast(product_id, days)

    def check_reorder_status(self, product_id: str) -> ReorderStatus:
        return self.reorder_service.check_reorder_status(product_id)

    def generate_automated_orders(self) -> list[PurchaseOrder]:
        return self.purchase_order_service.generate_automated_orders()

    def get_inventory_alerts(self, limit: int = 20) -> list[InventoryAlert]:
        return self.alert_service.get_alerts(limit)

    # ===================
    # ANALYTICS
    # ===================

    def analyze_inventory_performance(self):
        return self.analytics_service.analyze_inventory_performance()

    def get_seasonal_trends(self):
        return self.analytics_service.get_seasonal_trends()

    def get_category_performance(self):
        return self.analytics_service.get_category_performance()

    # ===================
    # ORDER LIFECYCLE
    # ===================

    def approve(self, order_id: str, actor: str, notes: Optional[str] = None) -> PurchaseOrder:
        return self.purchase_order_service.approve(order_id, actor, notes)

    def cancel(self, order_id: str, actor: str, reason: str = "Rejected by admin") -> PurchaseOrder:
        return self.purchase_order_service.cancel(order_id, actor, reason)

    def mark_ordered(self, order_id: str, actor: str) -> PurchaseOrder:
        return self.purchase_order_service.mark_ordered(order_id, actor)

    def mark_shipped(self, order_id: str, actor: str, tracking: Optional[TrackingUpdate] = None) -> PurchaseOrder:
        return self.purchase_order_service.mark_shipped(order_id, actor, tracking)

    def update_tracking(self, order_id: str, tracking: TrackingUpdate) -> PurchaseOrder:
        return self.purchase_order_service.update_tracking(order_id, tracking)

    def mark_delivered(self, order_id: str, actor: str, actual_unit_cost: Optional[float] = None) -> PurchaseOrder:
        return self.purchase_order_service.mark_delivered(order_id, actor, actual_unit_cost)

    # ===================
    # STATUS
    # ===================

    def status(self) -> dict:
        """Engine state for /health."""
        return {
            "store": self.store.check_connection(),
            "forecasts": len(self.forecast_service.forecasts),
            "reorder_points": len(self.reorder_service.reorder_points),
            "alerts": len(self.alert_service),
            "retraining": self.retraining,
            "last_retrain": self.last_retrain.finished_at.isoformat() if self.last_retrain else None,
            "monitor_running": self.monitor.running,
        }
