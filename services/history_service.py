"""
Historical sales aggregation.

Turns fulfilled order lines from the commerce store into one record per
product per calendar day (UTC), tagged with its calendar position.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import pandas as pd
import structlog

from config.settings import Settings
from exceptions import CollaboratorError
from integrations.base import CommerceStore
from models.sales import HistoricalSalesRecord, OrderLine, SeasonalityTag
from services.cache_service import TTLCache

logger = structlog.get_logger(__name__)


History = dict[str, list[HistoricalSalesRecord]]


def aggregate_order_lines(lines: Iterable[OrderLine]) -> History:
    """
    Group order lines by product and calendar day.

    quantity and revenue are summed, order_count is the number of lines,
    category and unit_price come from the most recent line of the day.

    Returns:
        product_id -> records sorted by date ascending
    """
    rows = [
        {
            "product_id": line.product_id,
            "quantity": line.quantity,
            "revenue": line.line_revenue,
            "unit_price": line.unit_price,
            "category": line.category,
            "order_timestamp": line.order_timestamp,
        }
        for line in lines
    ]

    if not rows:
        return {}

    df = pd.DataFrame(rows)
    df["order_timestamp"] = pd.to_datetime(df["order_timestamp"], utc=True)
    df["date"] = df["order_timestamp"].dt.date
    df = df.sort_values("order_timestamp", kind="stable")

    daily = (
        df.groupby(["product_id", "date"], sort=True)
        .agg(
            quantity_sold=("quantity", "sum"),
            revenue=("revenue", "sum"),
            order_count=("quantity", "size"),
            category=("category", "last"),
            unit_price=("unit_price", "last"),
        )
        .reset_index()
    )

    history: History = {}
    for row in daily.itertuples(index=False):
        history.setdefault(row.product_id, []).append(HistoricalSalesRecord(
            product_id=row.product_id,
            date=row.date,
            quantity_sold=float(row.quantity_sold),
            revenue=float(row.revenue),
            order_count=int(row.order_count),
            category=None if pd.isna(row.category) else row.category,
            unit_price=float(row.unit_price),
            seasonality_tag=SeasonalityTag.for_date(row.date),
        ))

    return history


class HistoryService:
    """
    Loads and caches aggregated sales history.

    The aggregate for a window is cached for history_cache_ttl seconds.
    """

    def __init__(self, store: CommerceStore, cache: TTLCache, settings: Settings):
        self.store = store
        self.cache = cache
        self.settings = settings

    def _cache_key(self, window_days: int) -> str:
        return f"history:{window_days}"

    def load_history(
        self,
        window_days: Optional[int] = None,
        use_cache: bool = True,
        now: Optional[datetime] = None
    ) -> History:
        """
        Aggregate fulfilled order lines from the last `window_days` days.

        Args:
            window_days: Trailing window (defaults to history_window_days)
            use_cache: Return the cached aggregate if still fresh
            now: Reference time (defaults to current UTC time)

        Raises:
            CollaboratorError: If the store read fails
        """
        window_days = window_days or self.settings.history_window_days
        key = self._cache_key(window_days)

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("history_cache_hit", window_days=window_days)
                return cached

        since = (now or datetime.now(timezone.utc)) - timedelta(days=window_days)

        logger.info("loading_sales_history", window_days=window_days, since=since.isoformat())

        try:
            lines = self.store.get_fulfilled_order_lines(since)
        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("load_sales_history_failed", error=str(e))
            raise CollaboratorError("get_fulfilled_order_lines", str(e)) from e

        history = aggregate_order_lines(lines)

        self.cache.set(key, history, self.settings.history_cache_ttl)

        logger.info(
            "sales_history_loaded",
            order_lines=len(lines),
            products=len(history),
            records=sum(len(r) for r in history.values())
        )

        return history

    def get_product_history(self, product_id: str, window_days: Optional[int] = None) -> list[HistoricalSalesRecord]:
        """Daily records for one product; empty when it has no sales."""
        return self.load_history(window_days).get(product_id, [])

    def invalidate(self) -> None:
        self.cache.delete_prefix("history:")
