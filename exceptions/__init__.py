"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ConflictError,
    ExternalServiceError,

    # Collaborators
    CollaboratorError,

    # Products
    ProductNotFoundError,

    # Purchase orders
    PurchaseOrderNotFoundError,
    InvalidStatusTransitionError,

    # Engine
    RetrainInProgressError,

    # Alerts
    AlertNotFoundError,
    TelegramError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ConflictError",
    "ExternalServiceError",

    # Collaborators
    "CollaboratorError",

    # Products
    "ProductNotFoundError",

    # Purchase orders
    "PurchaseOrderNotFoundError",
    "InvalidStatusTransitionError",

    # Engine
    "RetrainInProgressError",

    # Alerts
    "AlertNotFoundError",
    "TelegramError",
]
