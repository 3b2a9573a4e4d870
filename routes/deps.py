"""
Shared route dependencies.

The engine is built once in main.create_app and stored on app.state.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
import structlog

from exceptions import AppError
from services.inventory_engine import InventoryEngine

logger = structlog.get_logger(__name__)


def get_engine(request: Request) -> InventoryEngine:
    """Inventory engine of the running app."""
    return request.app.state.engine


def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )
