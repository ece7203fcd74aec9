"""Typed failures raised by the inventory engine.

Business errors derive from ``InventoryError`` and are always recoverable by the
caller. ``InfrastructureError`` is kept outside that hierarchy: it means the
storage layer failed and the whole operation was rolled back.
"""


class InventoryError(Exception):
    """Base class for business rule failures."""

    code = "inventory_error"

    def __init__(self, message: str = "", **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self) -> dict:
        payload = {"detail": self.message, "code": self.code}
        if self.details:
            payload.update(self.details)
        return payload


class InvalidInput(InventoryError):
    """Malformed or out-of-range request."""

    code = "invalid_input"


class ValidationFailed(InvalidInput):
    """Checkout payload failed a business validation (totals, discounts, prices)."""

    code = "validation_failed"


class InsufficientStock(InventoryError):
    code = "insufficient_stock"

    def __init__(self, product_id, requested: int, available: int, message: str = ""):
        message = message or (
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}"
        )
        super().__init__(message, product_id=product_id, requested=requested, available=available)
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidState(InventoryError):
    """Transition not legal from the current state."""

    code = "invalid_state"


class KeyConflict(InventoryError):
    """Idempotency key reused with a different payload."""

    code = "key_conflict"


class NotFound(InventoryError):
    code = "not_found"


class InfrastructureError(Exception):
    """Storage unavailable or transaction aborted by the database."""

    code = "infrastructure_error"
