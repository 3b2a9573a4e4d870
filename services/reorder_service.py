"""
Reorder point optimization.

Derives safety stock, reorder point and economic order quantity from each
product's fitted forecast, and classifies how urgently stock needs topping up.

Formulas:
    lead_time_demand = average_daily_demand * lead_time
    safety_stock     = z * sqrt(lead_time) * demand_variability
    reorder_point    = ceil(lead_time_demand + safety_stock)
    EOQ              = sqrt(2 * annual_demand * ordering_cost / holding_cost)
"""

import math
from datetime import datetime, timezone
from statistics import mean, pstdev
from typing import Optional

import structlog

from config.settings import Settings
from integrations.base import CommerceStore
from models.forecast import DemandForecast
from models.product import ProductSnapshot
from models.reorder import ReorderCheckStatus, ReorderInfo, ReorderStatus, Urgency

logger = structlog.get_logger(__name__)


# Average daily demand uses the most recent month of predictions
DEMAND_WINDOW_POINTS = 30
DAYS_PER_YEAR = 365

# Used when holding cost is zero (free product or zero holding rate)
FALLBACK_EOQ = 100

NOT_CALCULATED_MESSAGE = "No reorder point calculated"


def _ceil(value: float) -> int:
    """Ceiling that ignores float noise below 1e-6."""
    return max(0, math.ceil(round(value, 6)))


def calculate_economic_order_quantity(
    annual_demand: float,
    unit_price: float,
    ordering_cost: float = 50.0,
    holding_cost_rate: float = 0.20
) -> float:
    """Classic EOQ; exactly FALLBACK_EOQ when holding cost is not positive."""
    holding_cost = unit_price * holding_cost_rate
    if holding_cost <= 0:
        return float(FALLBACK_EOQ)

    return math.sqrt(2 * max(annual_demand, 0.0) * ordering_cost / holding_cost)


def calculate_reorder_info(
    product: ProductSnapshot,
    forecast: DemandForecast,
    settings: Settings,
    now: Optional[datetime] = None
) -> ReorderInfo:
    """Reorder parameters for one product from its fitted forecast."""
    lead_time = product.lead_time or settings.default_lead_time_days
    predictions = [p.predicted for p in forecast.points]

    recent = predictions[-DEMAND_WINDOW_POINTS:]
    average_daily_demand = max(0.0, mean(recent)) if recent else 0.0
    demand_variability = pstdev(predictions) if predictions else 0.0

    lead_time_demand = average_daily_demand * lead_time
    safety_stock = settings.safety_stock_z_score * math.sqrt(lead_time) * demand_variability
    reorder_point = _ceil(lead_time_demand + safety_stock)

    eoq = calculate_economic_order_quantity(
        average_daily_demand * DAYS_PER_YEAR,
        product.price,
        settings.ordering_cost,
        settings.holding_cost_rate,
    )

    return ReorderInfo(
        product_id=product.id,
        reorder_point=reorder_point,
        safety_stock=_ceil(safety_stock),
        economic_order_quantity=_ceil(eoq),
        lead_time_demand=_ceil(lead_time_demand),
        lead_time=lead_time,
        average_daily_demand=average_daily_demand,
        demand_variability=demand_variability,
        confidence=forecast.confidence,
        last_calculated=now or datetime.now(timezone.utc),
    )


def classify_urgency(current_stock: int, reorder_point: int) -> Urgency:
    """
    Urgency from stock relative to the reorder point.

    <= 50% critical, <= 80% high, <= 100% medium, else low.
    With a zero reorder point only an empty shelf is critical.
    """
    if reorder_point <= 0:
        return Urgency.CRITICAL if current_stock <= 0 else Urgency.LOW

    ratio = current_stock / reorder_point

    if ratio <= 0.5:
        return Urgency.CRITICAL
    elif ratio <= 0.8:
        return Urgency.HIGH
    elif ratio <= 1.0:
        return Urgency.MEDIUM
    return Urgency.LOW


class ReorderService:
    """
    Holds reorder parameters per product and answers reorder checks.

    The parameter map is replaced wholesale by calculate_reorder_points().
    """

    def __init__(self, store: CommerceStore, settings: Settings):
        self.store = store
        self.settings = settings
        self.reorder_points: dict[str, ReorderInfo] = {}

    def calculate_reorder_points(
        self,
        products: list[ProductSnapshot],
        forecasts: dict[str, DemandForecast],
        now: Optional[datetime] = None
    ) -> dict[str, ReorderInfo]:
        """Recompute parameters for every product that has a forecast."""
        now = now or datetime.now(timezone.utc)
        reorder_points = {}

        for product in products:
            forecast = forecasts.get(product.id)
            if forecast is None:
                continue
            reorder_points[product.id] = calculate_reorder_info(product, forecast, self.settings, now)

        self.reorder_points = reorder_points

        logger.info(
            "reorder_points_calculated",
            count=len(reorder_points),
            products=len(products)
        )

        return reorder_points

    def get_reorder_info(self, product_id: str) -> Optional[ReorderInfo]:
        return self.reorder_points.get(product_id)

    def evaluate(self, product: ProductSnapshot) -> ReorderStatus:
        """Reorder check against an already loaded product snapshot."""
        info = self.reorder_points.get(product.id)
        if info is None:
            return ReorderStatus(
                product_id=product.id,
                status=ReorderCheckStatus.NOT_CALCULATED,
                current_stock=product.count_in_stock,
                message=NOT_CALCULATED_MESSAGE,
            )

        current_stock = product.count_in_stock

        return ReorderStatus(
            product_id=product.id,
            status=ReorderCheckStatus.CALCULATED,
            needs_reorder=current_stock <= info.reorder_point,
            current_stock=current_stock,
            reorder_point=info.reorder_point,
            recommended_order_quantity=info.economic_order_quantity,
            safety_stock=info.safety_stock,
            lead_time_demand=info.lead_time_demand,
            urgency=classify_urgency(current_stock, info.reorder_point),
            confidence=info.confidence,
        )

    def check_reorder_status(self, product_id: str) -> ReorderStatus:
        """
        Check whether a product needs reordering.

        Raises:
            CollaboratorError: If the product lookup fails
        """
        product = self.store.get_product(product_id)
        if product is None:
            return ReorderStatus(
                product_id=product_id,
                status=ReorderCheckStatus.PRODUCT_NOT_FOUND,
                message="Product not found",
            )

        return self.evaluate(product)
