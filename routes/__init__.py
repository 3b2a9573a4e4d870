"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.forecasts import router as forecasts_router
from routes.purchase_orders import router as purchase_orders_router
from routes.alerts import router as alerts_router

__all__ = [
    "forecasts_router",
    "purchase_orders_router",
    "alerts_router",
]
