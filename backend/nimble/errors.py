# Overview: Domain exception hierarchy shared by services and routes.

"""
Error kinds raised by the service layer.

Services raise, routes never swallow: the app factory registers handlers
that turn each kind into a JSON response with a fixed status code.

- ValidationError        -> 400
- NotFoundError          -> 404
- ConflictError          -> 409 (OrderStateError, InsufficientStockError)
- ProrationError         -> 422
- TransactionError       -> 500 (store failure, already rolled back)
"""

from __future__ import annotations


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., deleting a referenced supplier)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderStateError(ConflictError):
    """Raised when an operation is invalid for the order's current status."""


class InsufficientStockError(ConflictError):
    """Raised when a sale asks for more units than are in stock."""


class NotFoundError(LookupError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, kind: str, entity_id):
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id

    def __str__(self) -> str:
        return self.args[0]


class TransactionError(RuntimeError):
    """Raised when the store fails during a multi-step operation (after rollback)."""


class ProrationError(ArithmeticError):
    """Raised when costs cannot be prorated (zero-value subtotal)."""
