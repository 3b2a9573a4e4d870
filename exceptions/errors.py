"""
Custom exception classes for the application.

Read APIs never raise for missing data; they return tagged results.
These exceptions cover lookups, illegal lifecycle moves and collaborator failures.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "PRODUCT_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ConflictError(AppError):
    """Conflict with current resource state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


# ===================
# COLLABORATOR ERRORS
# ===================

class CollaboratorError(ExternalServiceError):
    """The sales history or product store could not be read or written."""

    def __init__(self, operation: str, message: str):
        super().__init__(
            service="commerce_store",
            message=f"Commerce store {operation} failed: {message}",
            details={"operation": operation}
        )


# ===================
# PRODUCT ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


# ===================
# PURCHASE ORDER ERRORS
# ===================

class PurchaseOrderNotFoundError(NotFoundError):
    """Purchase order not found."""

    def __init__(self, order_id: str):
        super().__init__(
            resource="Purchase order",
            identifier=order_id,
            code="PURCHASE_ORDER_NOT_FOUND"
        )


class InvalidStatusTransitionError(ConflictError):
    """Lifecycle operation not allowed from the order's current status."""

    def __init__(self, current_status: str, new_status: str, reason: Optional[str] = None):
        super().__init__(
            code="INVALID_STATUS_TRANSITION",
            message=f"Cannot transition from {current_status} to {new_status}",
            details={
                "current_status": current_status,
                "new_status": new_status,
                "reason": reason or "Status can only move forward; delivered and cancelled are terminal"
            }
        )


# ===================
# ENGINE ERRORS
# ===================

class RetrainInProgressError(ConflictError):
    """A retrain was requested while another one is still running."""

    def __init__(self, started_at: Optional[str] = None):
        super().__init__(
            code="RETRAIN_IN_PROGRESS",
            message="A model retrain is already running",
            details={"started_at": started_at}
        )


# ===================
# ALERT ERRORS
# ===================

class AlertNotFoundError(NotFoundError):
    """Alert not found."""

    def __init__(self, alert_id: str):
        super().__init__(
            resource="Alert",
            identifier=alert_id,
            code="ALERT_NOT_FOUND"
        )


class TelegramError(AppError):
    """Telegram API error."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="TELEGRAM_ERROR",
            message=message,
            status_code=500,
            details=details
        )
