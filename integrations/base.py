"""
Commerce store port.

The engine reads sales history and product snapshots from, and writes
purchase orders back to, whatever implements this interface. Two
implementations exist:

- SupabaseCommerceStore: live mode, backed by Supabase tables
- InMemoryCommerceStore: offline/degraded mode and test fake

Which one is used is decided once at startup (see main.create_store).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from models.product import ProductSnapshot
from models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from models.sales import OrderLine


class CommerceStore(ABC):
    """
    Collaborator contract for the inventory engine.

    Implementations raise CollaboratorError when the backing store fails.
    """

    name: str = "abstract"

    # ===================
    # SALES HISTORY
    # ===================

    @abstractmethod
    def get_fulfilled_order_lines(self, since: datetime) -> list[OrderLine]:
        """Order lines of fulfilled (shipped/delivered) orders placed since `since`."""

    # ===================
    # PRODUCTS
    # ===================

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[ProductSnapshot]:
        """Current snapshot of one product, or None if unknown."""

    @abstractmethod
    def list_active_products(
        self,
        auto_reorder: Optional[bool] = None,
        max_stock: Optional[int] = None,
        category: Optional[str] = None,
    ) -> list[ProductSnapshot]:
        """
        Active products, optionally filtered.

        Args:
            auto_reorder: Only products with this auto-reorder flag
            max_stock: Only products with count_in_stock strictly below this
            category: Only products in this category
        """

    @abstractmethod
    def increment_reorder_count(self, product_id: str, when: datetime) -> None:
        """Bump reorder_count and set last_reorder_date."""

    # ===================
    # PURCHASE ORDERS
    # ===================

    @abstractmethod
    def persist_purchase_order(self, order: PurchaseOrder) -> PurchaseOrder:
        """Insert a new purchase order."""

    @abstractmethod
    def update_purchase_order(self, order: PurchaseOrder) -> PurchaseOrder:
        """Replace a stored purchase order with this version."""

    @abstractmethod
    def get_purchase_order(self, order_id: str) -> Optional[PurchaseOrder]:
        """One purchase order, or None."""

    @abstractmethod
    def list_purchase_orders(
        self,
        status: Optional[PurchaseOrderStatus] = None,
        ai_generated: Optional[bool] = None,
    ) -> list[PurchaseOrder]:
        """Purchase orders, newest order_date first."""

    def check_connection(self) -> dict:
        """Health details for /health."""
        return {"status": "healthy", "store": self.name}
