from marketplace.domain.cart import CartLine, PricedCartView
from marketplace.domain.order import Order, OrderItem, OrderStatus, ShippingInfo

__all__ = ["CartLine", "PricedCartView", "Order", "OrderItem", "OrderStatus", "ShippingInfo"]
