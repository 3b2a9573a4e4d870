"""
Analytics service for inventory intelligence reporting.

Handles aggregation of:
- Forecast accuracy, stockout risk and per-product recommendations
- Seasonal indices per product
- Category and supplier performance
- Automated order insights and the dashboard summary
"""

import calendar
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from statistics import mean
from typing import Optional

import structlog

from config.settings import Settings
from integrations.base import CommerceStore
from models.analytics import (
    CategoryPerformance,
    CategoryValue,
    Dashboard,
    DashboardSummary,
    Impact,
    InventoryInsights,
    InventoryPerformance,
    MonthlyFactor,
    OverstockItem,
    ProductRecommendation,
    Recommendation,
    RecommendationType,
    SeasonalTrend,
    StockoutRiskItem,
    SupplierPerformance,
    UrgencyInsight,
    WeeklyFactor,
)
from models.forecast import DemandForecast
from models.product import ProductSnapshot
from models.purchase_order import PurchaseOrderStatus
from models.reorder import ReorderCheckStatus, Urgency
from services.alert_service import AlertService
from services.cache_service import TTLCache
from services.forecast_service import ForecastService
from services.purchase_order_service import PurchaseOrderService
from services.reorder_service import ReorderService

logger = structlog.get_logger(__name__)


UNCATEGORIZED = "Uncategorized"

# Thresholds for recommendations
OVERSTOCK_EOQ_MULTIPLE = 3
HIGH_GROWTH = 0.2
SEASONAL_PEAK_INDEX = 1.5

INSIGHTS_WINDOW_DAYS = 30
DASHBOARD_ALERTS = 5
DASHBOARD_RECOMMENDATIONS = 5

PERFORMANCE_CACHE_KEY = "analytics:performance"
INSIGHTS_CACHE_KEY = "analytics:insights"
DASHBOARD_CACHE_KEY = "analytics:dashboard"


def calculate_forecast_accuracy(forecast: DemandForecast) -> float:
    """
    100 - MAPE over points with a known actual, floored at 0.

    Zero total actual demand counts as 100% error.
    """
    points = [p for p in forecast.points if p.actual is not None]
    if not points:
        return 0.0

    total_error = sum(abs(p.predicted - p.actual) for p in points)
    total_actual = sum(p.actual for p in points)

    mape = (total_error / total_actual) * 100 if total_actual > 0 else 100.0
    return max(0.0, 100.0 - mape)


def _avg(values: list[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    return mean(present) if present else None


class AnalyticsService:
    """
    Inventory analytics.

    Reads the engine's in-memory forecasts and reorder points together with
    live product and purchase order data from the store.
    """

    def __init__(
        self,
        store: CommerceStore,
        forecast_service: ForecastService,
        reorder_service: ReorderService,
        alert_service: AlertService,
        purchase_order_service: PurchaseOrderService,
        cache: TTLCache,
        settings: Settings
    ):
        self.store = store
        self.forecast_service = forecast_service
        self.reorder_service = reorder_service
        self.alert_service = alert_service
        self.purchase_order_service = purchase_order_service
        self.cache = cache
        self.settings = settings

    def invalidate_cache(self) -> None:
        self.cache.delete_prefix("analytics:")

    # ===================
    # PERFORMANCE
    # ===================

    def analyze_inventory_performance(self, now: Optional[datetime] = None) -> InventoryPerformance:
        """
        Forecast accuracy, stockout risk, overstock and recommendations.

        Cached for performance_cache_ttl seconds.
        """
        cached = self.cache.get(PERFORMANCE_CACHE_KEY)
        if cached is not None:
            return cached

        now = now or datetime.now(timezone.utc)
        forecasts = self.forecast_service.forecasts
        products = {p.id: p for p in self.store.list_active_products()}

        accuracies = []
        stockout_risk = []
        overstock = []
        optimal_stock = []
        recommendations = []

        for product_id, forecast in forecasts.items():
            accuracy = calculate_forecast_accuracy(forecast)
            if accuracy > 0:
                accuracies.append(accuracy)

            product = products.get(product_id)
            if product is None:
                continue

            status = self.reorder_service.evaluate(product)
            if status.status != ReorderCheckStatus.CALCULATED:
                continue

            info = self.reorder_service.get_reorder_info(product_id)
            overstock_level = info.economic_order_quantity * OVERSTOCK_EOQ_MULTIPLE

            if status.needs_reorder:
                stockout_risk.append(StockoutRiskItem(
                    product_id=product_id,
                    urgency=status.urgency,
                    current_stock=status.current_stock,
                    reorder_point=status.reorder_point,
                ))
            if product.count_in_stock > overstock_level:
                overstock.append(OverstockItem(
                    product_id=product_id,
                    current_stock=product.count_in_stock,
                    economic_order_quantity=info.economic_order_quantity,
                ))
            elif not status.needs_reorder:
                optimal_stock.append(product_id)

            recommendation = self._recommend(product, overstock_level, now)
            if recommendation:
                recommendations.append(recommendation)

        performance = InventoryPerformance(
            total_products=len(forecasts),
            forecast_accuracy=mean(accuracies) if accuracies else 0.0,
            stockout_risk=stockout_risk,
            overstock=overstock,
            optimal_stock=optimal_stock,
            recommendations=recommendations,
            generated_at=now,
        )

        self.cache.set(PERFORMANCE_CACHE_KEY, performance, self.settings.performance_cache_ttl)

        logger.info(
            "inventory_performance_analyzed",
            products=performance.total_products,
            forecast_accuracy=round(performance.forecast_accuracy, 2),
            stockout_risk=len(stockout_risk)
        )

        return performance

    def _recommend(
        self,
        product: ProductSnapshot,
        overstock_level: int,
        now: datetime
    ) -> Optional[ProductRecommendation]:
        items = []

        if product.count_in_stock > overstock_level:
            items.append(Recommendation(
                type=RecommendationType.OVERSTOCK,
                message="Consider reducing order quantities or running promotions",
                impact=Impact.HIGH,
            ))

        profile = self.forecast_service.get_profile(product.id)
        if profile is not None:
            growth = profile.trends.growth
            if growth is not None and growth > HIGH_GROWTH:
                items.append(Recommendation(
                    type=RecommendationType.GROWTH_OPPORTUNITY,
                    message="High growth trend detected - consider increasing stock levels",
                    impact=Impact.MEDIUM,
                ))

            if profile.seasonal_patterns.monthly[now.month - 1] > SEASONAL_PEAK_INDEX:
                items.append(Recommendation(
                    type=RecommendationType.SEASONAL_PEAK,
                    message="Seasonal peak period - ensure adequate stock",
                    impact=Impact.HIGH,
                ))

        if not items:
            return None

        return ProductRecommendation(
            product_id=product.id,
            product_name=product.name,
            recommendations=items,
        )

    # ===================
    # SEASONALITY & CATEGORIES
    # ===================

    def get_seasonal_trends(self) -> list[SeasonalTrend]:
        """Monthly and weekday indices for every profiled product."""
        trends = []

        for product_id, profile in self.forecast_service.profiles.items():
            patterns = profile.seasonal_patterns
            trends.append(SeasonalTrend(
                product_id=product_id,
                monthly=[
                    MonthlyFactor(month=i + 1, name=calendar.month_name[i + 1], factor=factor)
                    for i, factor in enumerate(patterns.monthly)
                ],
                weekly=[
                    WeeklyFactor(day=i + 1, name=calendar.day_name[i], factor=factor)
                    for i, factor in enumerate(patterns.weekly)
                ],
            ))

        return trends

    def get_category_performance(self) -> list[CategoryPerformance]:
        """Stock health per category, largest categories first."""
        groups: dict[str, list[ProductSnapshot]] = defaultdict(list)
        for product in self.store.list_active_products():
            groups[product.category or UNCATEGORIZED].append(product)

        results = []
        for category, products in groups.items():
            total = len(products)
            low_stock = sum(1 for p in products if p.count_in_stock < self.settings.low_stock_threshold)
            auto_reorder = sum(1 for p in products if p.auto_reorder)

            results.append(CategoryPerformance(
                category=category,
                total_products=total,
                avg_price=round(mean(p.price for p in products), 2),
                total_stock=sum(p.count_in_stock for p in products),
                low_stock_count=low_stock,
                auto_reorder_count=auto_reorder,
                low_stock_ratio=low_stock / total,
                auto_reorder_ratio=auto_reorder / total,
            ))

        results.sort(key=lambda c: c.total_products, reverse=True)
        return results

    # ===================
    # PURCHASE ORDER ANALYTICS
    # ===================

    def get_supplier_performance(self, supplier: Optional[str] = None) -> list[SupplierPerformance]:
        """Delivery metrics per supplier from delivered orders, highest value first."""
        delivered = self.store.list_purchase_orders(status=PurchaseOrderStatus.DELIVERED)
        if supplier:
            delivered = [o for o in delivered if o.supplier.name == supplier]

        groups = defaultdict(list)
        for order in delivered:
            groups[order.supplier.name].append(order)

        results = []
        for name, orders in groups.items():
            results.append(SupplierPerformance(
                supplier=name,
                total_orders=len(orders),
                avg_lead_time=_avg([o.metrics.lead_time for o in orders]),
                avg_delivery_accuracy=_avg([o.metrics.delivery_accuracy for o in orders]),
                avg_quality_score=_avg([o.metrics.quality_score for o in orders]),
                total_value=round(sum(o.total_cost for o in orders), 2),
                last_order=max(o.order_date for o in orders),
            ))

        results.sort(key=lambda s: s.total_value, reverse=True)
        return results

    def get_urgency_insights(self, now: Optional[datetime] = None) -> list[UrgencyInsight]:
        """Automated orders from the last 30 days grouped by urgency."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=INSIGHTS_WINDOW_DAYS)
        orders = [
            o for o in self.store.list_purchase_orders(ai_generated=True)
            if o.created_at >= cutoff
        ]

        groups: dict[Urgency, list] = defaultdict(list)
        for order in orders:
            groups[order.urgency].append(order)

        insights = [
            UrgencyInsight(
                urgency=urgency,
                count=len(group),
                total_value=round(sum(o.total_cost for o in group), 2),
                avg_confidence=mean(o.confidence for o in group),
            )
            for urgency, group in groups.items()
        ]

        insights.sort(key=lambda i: i.count, reverse=True)
        return insights

    def get_inventory_insights(self) -> InventoryInsights:
        """Order insights, seasonal trends and category performance. Cached."""
        cached = self.cache.get(INSIGHTS_CACHE_KEY)
        if cached is not None:
            return cached

        insights = InventoryInsights(
            inventory_insights=self.get_urgency_insights(),
            seasonal_trends=self.get_seasonal_trends(),
            category_performance=self.get_category_performance(),
            generated_at=datetime.now(timezone.utc),
        )

        self.cache.set(INSIGHTS_CACHE_KEY, insights, self.settings.insights_cache_ttl)
        return insights

    # ===================
    # DASHBOARD
    # ===================

    def get_dashboard(self) -> Dashboard:
        """Summary counts, latest alerts, top recommendations, stock value by category."""
        cached = self.cache.get(DASHBOARD_CACHE_KEY)
        if cached is not None:
            return cached

        products = self.store.list_active_products()
        pending = self.store.list_purchase_orders(status=PurchaseOrderStatus.PENDING, ai_generated=True)
        overdue = self.purchase_order_service.get_overdue_orders()
        performance = self.analyze_inventory_performance()

        by_category: dict[str, list[ProductSnapshot]] = defaultdict(list)
        for product in products:
            by_category[product.category or UNCATEGORIZED].append(product)

        inventory_by_category = sorted(
            (
                CategoryValue(
                    category=category,
                    total_value=round(sum(p.price * p.count_in_stock for p in group), 2),
                    total_products=len(group),
                    total_stock=sum(p.count_in_stock for p in group),
                )
                for category, group in by_category.items()
            ),
            key=lambda c: c.total_value,
            reverse=True,
        )

        dashboard = Dashboard(
            summary=DashboardSummary(
                total_products=len(products),
                low_stock_products=sum(
                    1 for p in products if p.count_in_stock < self.settings.low_stock_threshold
                ),
                pending_orders=len(pending),
                overdue_orders=len(overdue),
                forecast_accuracy=performance.forecast_accuracy,
                stockout_risk=len(performance.stockout_risk),
            ),
            alerts=self.alert_service.get_alerts(DASHBOARD_ALERTS),
            inventory_by_category=inventory_by_category,
            recommendations=performance.recommendations[:DASHBOARD_RECOMMENDATIONS],
            generated_at=datetime.now(timezone.utc),
        )

        self.cache.set(DASHBOARD_CACHE_KEY, dashboard, self.settings.dashboard_cache_ttl)

        logger.info(
            "dashboard_generated",
            products=dashboard.summary.total_products,
            low_stock=dashboard.summary.low_stock_products,
            overdue=dashboard.summary.overdue_orders
        )

        return dashboard
