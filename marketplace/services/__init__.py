"""
Application services for cart and order operations.
"""
from marketplace.services.cart import CartService
from marketplace.services.lifecycle import OrderLifecycleService
from marketplace.services.orders import OrderService
from marketplace.services.reorder import ReorderResult, ReorderService

__all__ = [
    "CartService",
    "OrderLifecycleService",
    "OrderService",
    "ReorderResult",
    "ReorderService",
]
