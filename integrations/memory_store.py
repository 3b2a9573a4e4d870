"""
In-memory commerce store.

Used when Supabase is not configured (offline mode) and as the store fake
in tests. seed_demo_data() fills it with a small deterministic catalog and
a year of fulfilled sales so the engine has something to train on.
"""

import math
import random
import threading
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import structlog

from integrations.base import CommerceStore
from models.product import ProductSnapshot
from models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from models.sales import OrderLine

logger = structlog.get_logger(__name__)


FULFILLED_ORDER_STATUSES = frozenset({"shipped", "delivered"})

# (id, name, category, price, stock, lead_time, auto_reorder, base daily units)
DEMO_CATALOG = [
    ("prod-phone-001", "Galaxy Nova 12", "Smartphones", 699.0, 8, 7, True, 6.0),
    ("prod-phone-002", "Pixelite 8a", "Smartphones", 449.0, 140, 10, True, 4.0),
    ("prod-laptop-001", "AeroBook 14", "Laptops", 1199.0, 5, 14, True, 2.0),
    ("prod-laptop-002", "Workstation Pro 16", "Laptops", 2299.0, 22, 21, False, 0.8),
    ("prod-audio-001", "Studio Buds", "Audio", 129.0, 3, 5, True, 12.0),
    ("prod-audio-002", "Arc Soundbar", "Audio", 349.0, 60, 7, False, 1.5),
    ("prod-wear-001", "Pulse Watch 3", "Wearables", 249.0, 9, None, True, 5.0),
]

# Holiday season and back-to-school bump; weekends sell more
DEMO_MONTHLY_LIFT = [0.8, 0.75, 0.9, 0.95, 1.0, 0.95, 1.0, 1.15, 1.1, 1.0, 1.3, 1.6]
DEMO_WEEKDAY_LIFT = [0.9, 0.85, 0.9, 0.95, 1.1, 1.25, 1.05]


class InMemoryCommerceStore(CommerceStore):
    """
    Thread-safe in-memory implementation of the commerce store.

    Everything handed out is a deep copy so callers cannot mutate stored state
    without going through the store.
    """

    name = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._products: dict[str, ProductSnapshot] = {}
        self._order_lines: list[tuple[OrderLine, str]] = []
        self._purchase_orders: dict[str, PurchaseOrder] = {}

    # ===================
    # SEEDING
    # ===================

    def add_product(self, product: ProductSnapshot) -> ProductSnapshot:
        with self._lock:
            self._products[product.id] = product.model_copy(deep=True)
        return product

    def add_order_lines(self, lines: Iterable[OrderLine], status: str = "delivered") -> int:
        """Store order lines under the given parent order status."""
        with self._lock:
            count = 0
            for line in lines:
                self._order_lines.append((line.model_copy(deep=True), status))
                count += 1
        return count

    def set_stock(self, product_id: str, count_in_stock: int) -> None:
        with self._lock:
            product = self._products[product_id]
            product.count_in_stock = count_in_stock

    def clear(self) -> None:
        with self._lock:
            self._products.clear()
            self._order_lines.clear()
            self._purchase_orders.clear()

    # ===================
    # SALES HISTORY
    # ===================

    def get_fulfilled_order_lines(self, since: datetime) -> list[OrderLine]:
        with self._lock:
            return [
                line.model_copy(deep=True)
                for line, status in self._order_lines
                if status in FULFILLED_ORDER_STATUSES and line.order_timestamp >= since
            ]

    # ===================
    # PRODUCTS
    # ===================

    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        with self._lock:
            product = self._products.get(product_id)
            return product.model_copy(deep=True) if product else None

    def list_active_products(
        self,
        auto_reorder: Optional[bool] = None,
        max_stock: Optional[int] = None,
        category: Optional[str] = None,
    ) -> list[ProductSnapshot]:
        with self._lock:
            products = [p for p in self._products.values() if p.is_active]

            if auto_reorder is not None:
                products = [p for p in products if p.auto_reorder == auto_reorder]
            if max_stock is not None:
                products = [p for p in products if p.count_in_stock < max_stock]
            if category is not None:
                products = [p for p in products if p.category == category]

            return [p.model_copy(deep=True) for p in products]

    def increment_reorder_count(self, product_id: str, when: datetime) -> None:
        with self._lock:
            product = self._products.get(product_id)
            if not product:
                return
            product.reorder_count += 1
            product.last_reorder_date = when

    # ===================
    # PURCHASE ORDERS
    # ===================

    def persist_purchase_order(self, order: PurchaseOrder) -> PurchaseOrder:
        with self._lock:
            self._purchase_orders[order.id] = order.model_copy(deep=True)
        return order

    def update_purchase_order(self, order: PurchaseOrder) -> PurchaseOrder:
        with self._lock:
            self._purchase_orders[order.id] = order.model_copy(deep=True)
        return order

    def get_purchase_order(self, order_id: str) -> Optional[PurchaseOrder]:
        with self._lock:
            order = self._purchase_orders.get(order_id)
            return order.model_copy(deep=True) if order else None

    def list_purchase_orders(
        self,
        status: Optional[PurchaseOrderStatus] = None,
        ai_generated: Optional[bool] = None,
    ) -> list[PurchaseOrder]:
        with self._lock:
            orders = list(self._purchase_orders.values())

            if status is not None:
                orders = [o for o in orders if o.status == status]
            if ai_generated is not None:
                orders = [o for o in orders if o.ai_generated == ai_generated]

            orders.sort(key=lambda o: o.order_date, reverse=True)
            return [o.model_copy(deep=True) for o in orders]

    def check_connection(self) -> dict:
        with self._lock:
            return {
                "status": "offline",
                "store": self.name,
                "products_count": len(self._products),
            }


def seed_demo_data(
    store: InMemoryCommerceStore,
    days: int = 365,
    seed: int = 42,
    now: Optional[datetime] = None,
) -> InMemoryCommerceStore:
    """
    Fill a store with the demo catalog and `days` days of fulfilled sales.

    Demand follows a monthly and weekday lift with mild upward drift and
    seeded noise, so the same seed always produces the same history.
    """
    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc)
    start = (now - timedelta(days=days)).replace(hour=12, minute=0, second=0, microsecond=0)

    line_count = 0

    for pid, name, category, price, stock, lead_time, auto_reorder, base in DEMO_CATALOG:
        store.add_product(ProductSnapshot(
            id=pid,
            name=name,
            category=category,
            price=price,
            count_in_stock=stock,
            lead_time=lead_time,
            auto_reorder=auto_reorder,
            supplier=f"{category} Distribution Co.",
        ))

        lines = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            drift = 1 + 0.15 * offset / days
            expected = (
                base
                * drift
                * DEMO_MONTHLY_LIFT[day.month - 1]
                * DEMO_WEEKDAY_LIFT[day.weekday()]
            )
            quantity = max(0, int(round(expected * rng.uniform(0.7, 1.3))))
            if quantity == 0:
                continue

            # Split the day's units over a few orders
            orders = max(1, min(quantity, math.ceil(quantity / 3)))
            remaining = quantity
            for n in range(orders):
                units = remaining if n == orders - 1 else max(1, remaining // (orders - n))
                remaining -= units
                lines.append(OrderLine(
                    product_id=pid,
                    quantity=units,
                    unit_price=price,
                    revenue=units * price,
                    order_timestamp=day + timedelta(minutes=n * 7),
                    category=category,
                    order_id=f"demo-{pid}-{offset}-{n}",
                ))

        line_count += store.add_order_lines(lines)

    logger.info(
        "demo_data_seeded",
        products=len(DEMO_CATALOG),
        order_lines=line_count,
        days=days,
        seed=seed
    )

    return store
