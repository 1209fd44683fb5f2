"""
Domain exceptions for cart, inventory and order operations.

Every error carries a stable ``code`` that the API layer exposes to clients,
and ``details`` with the machine-readable context of the failure.
"""
from __future__ import annotations

from uuid import UUID


class MarketplaceError(Exception):
    """Base class for all marketplace errors."""

    code = "MARKETPLACE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def details(self) -> dict:
        return {}


class ValidationError(MarketplaceError):
    code = "VALIDATION_ERROR"


class UnauthenticatedError(MarketplaceError):
    code = "UNAUTHENTICATED"


class EmptyCartError(MarketplaceError):
    code = "EMPTY_CART"

    def __init__(self, user_id: UUID):
        self.user_id = user_id
        super().__init__("Cart is empty")


class InsufficientStockError(MarketplaceError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, supply_id: UUID, requested: int, available: int):
        self.supply_id = supply_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough stock for supply {supply_id} "
            f"(requested {requested}, available {available})"
        )

    @property
    def details(self) -> dict:
        return {
            "supplyId": str(self.supply_id),
            "requested": self.requested,
            "available": self.available,
        }


class InvalidTransitionError(MarketplaceError):
    code = "INVALID_TRANSITION"

    def __init__(self, order_id: UUID, from_status: str, to_status: str):
        self.order_id = order_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Order {order_id} cannot move from {from_status} to {to_status}"
        )

    @property
    def details(self) -> dict:
        return {
            "orderId": str(self.order_id),
            "fromStatus": self.from_status,
            "toStatus": self.to_status,
        }


class NotFoundError(MarketplaceError):
    code = "NOT_FOUND"


class OrderNotFoundError(NotFoundError):

    def __init__(self, order_id: UUID):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class SupplyNotFoundError(NotFoundError):

    def __init__(self, supply_id: UUID):
        self.supply_id = supply_id
        super().__init__(f"Supply {supply_id} not found")


class CartLineNotFoundError(NotFoundError):

    def __init__(self, supply_id: UUID):
        self.supply_id = supply_id
        super().__init__(f"Supply {supply_id} is not in the cart")


class PermissionDeniedError(MarketplaceError):
    code = "FORBIDDEN"
