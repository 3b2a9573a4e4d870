"""
Purchase order API routes.

Listing, manual creation, automated generation and lifecycle transitions.
Illegal transitions return 409 with the current and requested status.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
import structlog

from models.analytics import SupplierPerformance
from models.purchase_order import (
    ActorRequest,
    ApproveRequest,
    CancelRequest,
    DeliverRequest,
    NoteRequest,
    PurchaseOrder,
    PurchaseOrderCreate,
    PurchaseOrderListResponse,
    PurchaseOrderStatus,
    QualityCheckRequest,
    QuantityUpdate,
    ShipRequest,
    TrackingUpdate,
)
from routes.deps import get_engine, handle_error
from services.inventory_engine import InventoryEngine

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/purchase-orders", tags=["Purchase Orders"])


# ===================
# READ ROUTES
# ===================

@router.get("", response_model=PurchaseOrderListResponse)
async def list_purchase_orders(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    status: Optional[PurchaseOrderStatus] = Query(None, description="Filter by status"),
    ai_generated: Optional[bool] = Query(None, description="Only automated (true) or manual (false) orders"),
    engine: InventoryEngine = Depends(get_engine),
):
    """List purchase orders, newest first."""
    try:
        orders, total = engine.purchase_order_service.list_orders(
            status=status,
            ai_generated=ai_generated,
            page=page,
            page_size=page_size
        )

        return PurchaseOrderListResponse.create(orders, total, page, page_size)

    except Exception as e:
        return handle_error(e)


@router.get("/suppliers/performance", response_model=list[SupplierPerformance])
async def get_supplier_performance(
    supplier: Optional[str] = Query(None, description="Only this supplier"),
    engine: InventoryEngine = Depends(get_engine),
):
    """Delivery metrics per supplier from delivered orders."""
    try:
        return engine.analytics_service.get_supplier_performance(supplier)

    except Exception as e:
        return handle_error(e)


@router.get("/overdue", response_model=list[PurchaseOrder])
async def get_overdue_orders(engine: InventoryEngine = Depends(get_engine)):
    """Open orders past their expected delivery date."""
    try:
        return engine.purchase_order_service.get_overdue_orders()

    except Exception as e:
        return handle_error(e)


@router.get("/{order_id}", response_model=PurchaseOrder)
async def get_purchase_order(order_id: str, engine: InventoryEngine = Depends(get_engine)):
    """
    Raises:
        404: Order not found
    """
    try:
        return engine.purchase_order_service.get(order_id)

    except Exception as e:
        return handle_error(e)


# ===================
# CREATE ROUTES
# ===================

@router.post("", response_model=PurchaseOrder, status_code=201)
async def create_purchase_order(
    data: PurchaseOrderCreate,
    actor: str = Query("admin", min_length=1, description="Who is creating the order"),
    engine: InventoryEngine = Depends(get_engine),
):
    """
    Create a manual purchase order in pending status.

    Raises:
        404: Product not found
    """
    try:
        return engine.purchase_order_service.create_order(data, actor)

    except Exception as e:
        return handle_error(e)


@router.post("/generate", response_model=list[PurchaseOrder], status_code=201)
async def generate_purchase_orders(engine: InventoryEngine = Depends(get_engine)):
    """Run automated purchase order generation now."""
    try:
        orders = engine.generate_automated_orders()

        logger.info("manual_order_generation", count=len(orders))

        return orders

    except Exception as e:
        return handle_error(e)


# ===================
# LIFECYCLE ROUTES
# ===================

@router.put("/{order_id}/approve", response_model=PurchaseOrder)
async def approve_purchase_order(order_id: str, data: ApproveRequest, engine: InventoryEngine = Depends(get_engine)):
    """
    Approve a pending order.

    Raises:
        404: Order not found
        409: Order is not pending
    """
    try:
        return engine.approve(order_id, data.actor, data.notes)

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/reject", response_model=PurchaseOrder)
async def reject_purchase_order(order_id: str, data: CancelRequest, engine: InventoryEngine = Depends(get_engine)):
    """
    Cancel an order that is not yet delivered or cancelled.

    Raises:
        404: Order not found
        409: Order is already terminal
    """
    try:
        return engine.cancel(order_id, data.actor, data.reason)

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/order", response_model=PurchaseOrder)
async def place_purchase_order(order_id: str, data: ActorRequest, engine: InventoryEngine = Depends(get_engine)):
    """Mark an approved order as placed with the supplier."""
    try:
        return engine.mark_ordered(order_id, data.actor)

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/ship", response_model=PurchaseOrder)
async def ship_purchase_order(order_id: str, data: ShipRequest, engine: InventoryEngine = Depends(get_engine)):
    """Mark an ordered purchase order as shipped."""
    try:
        return engine.mark_shipped(order_id, data.actor, data.tracking)

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/tracking", response_model=PurchaseOrder)
async def update_purchase_order_tracking(
    order_id: str,
    data: TrackingUpdate,
    engine: InventoryEngine = Depends(get_engine),
):
    """
    Merge carrier tracking details.

    Raises:
        409: Order is not ordered or shipped
    """
    try:
        return engine.update_tracking(order_id, data)

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/deliver", response_model=PurchaseOrder)
async def deliver_purchase_order(order_id: str, data: DeliverRequest, engine: InventoryEngine = Depends(get_engine)):
    """Record delivery and compute delivery metrics."""
    try:
        return engine.mark_delivered(order_id, data.actor, data.actual_unit_cost)

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/quantity", response_model=PurchaseOrder)
async def update_purchase_order_quantity(
    order_id: str,
    data: QuantityUpdate,
    engine: InventoryEngine = Depends(get_engine),
):
    """
    Change the quantity of a pending order.

    Raises:
        409: Order is no longer pending
    """
    try:
        return engine.purchase_order_service.update_quantity(order_id, data.order_quantity, data.actor)

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/quality-check", response_model=PurchaseOrder)
async def record_quality_check(
    order_id: str,
    data: QualityCheckRequest,
    engine: InventoryEngine = Depends(get_engine),
):
    """Record the post-delivery inspection."""
    try:
        return engine.purchase_order_service.record_quality_check(
            order_id,
            data.actor,
            data.passed,
            notes=data.notes,
            quality_score=data.quality_score
        )

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/notes", response_model=PurchaseOrder)
async def add_purchase_order_note(order_id: str, data: NoteRequest, engine: InventoryEngine = Depends(get_engine)):
    try:
        return engine.purchase_order_service.add_note(order_id, data.actor, data.message)

    except Exception as e:
        return handle_error(e)
