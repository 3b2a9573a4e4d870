"""
Supabase-backed commerce store (live mode).

Tables:
    order_lines      one row per fulfilled or pending order line
    products         product catalog with stock levels
    purchase_orders  purchase orders; nested parts stored as jsonb

Every failure is re-raised as CollaboratorError so the engine can keep its
last-known-good state.
"""

from datetime import datetime
from typing import Optional

import structlog

from config import check_connection, get_supabase_client
from exceptions import CollaboratorError
from integrations.base import CommerceStore
from models.product import ProductSnapshot
from models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from models.sales import OrderLine

logger = structlog.get_logger(__name__)


FULFILLED_ORDER_STATUSES = ["shipped", "delivered"]

# Supabase caps responses at 1000 rows
PAGE_SIZE = 1000


class SupabaseCommerceStore(CommerceStore):
    """Commerce store reading and writing Supabase tables."""

    name = "supabase"

    def __init__(self, client=None):
        self._client = client
        self.lines_table = "order_lines"
        self.products_table = "products"
        self.orders_table = "purchase_orders"

    @property
    def db(self):
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    # ===================
    # SALES HISTORY
    # ===================

    def get_fulfilled_order_lines(self, since: datetime) -> list[OrderLine]:
        logger.debug("fetching_order_lines", since=since.isoformat())

        try:
            rows = []
            offset = 0
            while True:
                result = (
                    self.db.table(self.lines_table)
                    .select("product_id, quantity, unit_price, revenue, order_timestamp, category, order_id")
                    .in_("order_status", FULFILLED_ORDER_STATUSES)
                    .gte("order_timestamp", since.isoformat())
                    .order("order_timestamp")
                    .range(offset, offset + PAGE_SIZE - 1)
                    .execute()
                )
                batch = result.data or []
                rows.extend(batch)
                if len(batch) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE

            lines = [OrderLine.model_validate(row) for row in rows]

            logger.info("order_lines_fetched", count=len(lines))
            return lines

        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("fetch_order_lines_failed", error=str(e))
            raise CollaboratorError("get_fulfilled_order_lines", str(e)) from e

    # ===================
    # PRODUCTS
    # ===================

    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        try:
            result = (
                self.db.table(self.products_table)
                .select("*")
                .eq("id", product_id)
                .limit(1)
                .execute()
            )

            if not result.data:
                return None

            return ProductSnapshot.model_validate(result.data[0])

        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("get_product_failed", product_id=product_id, error=str(e))
            raise CollaboratorError("get_product", str(e)) from e

    def list_active_products(
        self,
        auto_reorder: Optional[bool] = None,
        max_stock: Optional[int] = None,
        category: Optional[str] = None,
    ) -> list[ProductSnapshot]:
        try:
            query = self.db.table(self.products_table).select("*").eq("is_active", True)

            if auto_reorder is not None:
                query = query.eq("auto_reorder", auto_reorder)
            if max_stock is not None:
                query = query.lt("count_in_stock", max_stock)
            if category is not None:
                query = query.eq("category", category)

            result = query.execute()

            return [ProductSnapshot.model_validate(row) for row in result.data]

        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("list_products_failed", error=str(e))
            raise CollaboratorError("list_active_products", str(e)) from e

    def increment_reorder_count(self, product_id: str, when: datetime) -> None:
        try:
            result = (
                self.db.table(self.products_table)
                .select("reorder_count")
                .eq("id", product_id)
                .limit(1)
                .execute()
            )

            if not result.data:
                return

            current = result.data[0].get("reorder_count") or 0

            (
                self.db.table(self.products_table)
                .update({
                    "reorder_count": current + 1,
                    "last_reorder_date": when.isoformat(),
                })
                .eq("id", product_id)
                .execute()
            )

        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("increment_reorder_count_failed", product_id=product_id, error=str(e))
            raise CollaboratorError("increment_reorder_count", str(e)) from e

    # ===================
    # PURCHASE ORDERS
    # ===================

    def persist_purchase_order(self, order: PurchaseOrder) -> PurchaseOrder:
        try:
            self.db.table(self.orders_table).insert(order.model_dump(mode="json")).execute()

            logger.debug("purchase_order_persisted", order_id=order.id)
            return order

        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("persist_purchase_order_failed", order_id=order.id, error=str(e))
            raise CollaboratorError("persist_purchase_order", str(e)) from e

    def update_purchase_order(self, order: PurchaseOrder) -> PurchaseOrder:
        try:
            data = order.model_dump(mode="json", exclude={"id", "created_at"})

            self.db.table(self.orders_table).update(data).eq("id", order.id).execute()

            return order

        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("update_purchase_order_failed", order_id=order.id, error=str(e))
            raise CollaboratorError("update_purchase_order", str(e)) from e

    def get_purchase_order(self, order_id: str) -> Optional[PurchaseOrder]:
        try:
            result = (
                self.db.table(self.orders_table)
                .select("*")
                .eq("id", order_id)
                .limit(1)
                .execute()
            )

            if not result.data:
                return None

            return PurchaseOrder.model_validate(result.data[0])

        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("get_purchase_order_failed", order_id=order_id, error=str(e))
            raise CollaboratorError("get_purchase_order", str(e)) from e

    def list_purchase_orders(
        self,
        status: Optional[PurchaseOrderStatus] = None,
        ai_generated: Optional[bool] = None,
    ) -> list[PurchaseOrder]:
        try:
            query = self.db.table(self.orders_table).select("*")

            if status is not None:
                query = query.eq("status", status.value)
            if ai_generated is not None:
                query = query.eq("ai_generated", ai_generated)

            result = query.order("order_date", desc=True).execute()

            return [PurchaseOrder.model_validate(row) for row in result.data]

        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("list_purchase_orders_failed", error=str(e))
            raise CollaboratorError("list_purchase_orders", str(e)) from e

    def check_connection(self) -> dict:
        return {**check_connection(), "store": self.name}
