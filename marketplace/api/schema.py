"""
GraphQL schema definition using Ariadne.
"""
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from ariadne import (
    MutationType,
    QueryType,
    ScalarType,
    format_error,
    load_schema_from_path,
    make_executable_schema,
    unwrap_graphql_error,
)
from django.conf import settings

from marketplace.domain.cart import PricedCartView
from marketplace.domain.exceptions import MarketplaceError, PermissionDeniedError, UnauthenticatedError
from marketplace.domain.order import Order, ShippingInfo
from marketplace.services import CartService, OrderLifecycleService, OrderService, ReorderService

# Load schema from .graphql files
SCHEMAS_DIR = Path(__file__).parent / "schemas"
type_defs = load_schema_from_path(SCHEMAS_DIR)

STAFF_ROLE = "staff"

query = QueryType()
mutation = MutationType()


def current_user(info) -> UUID:
    """Authenticated user id, resolved by the view from the X-User-ID header."""
    user_id = info.context.get("user_id")
    if user_id is None:
        raise UnauthenticatedError("Missing or invalid X-User-ID header")
    return user_id


def require_staff(info) -> UUID:
    """Fulfilment transitions are reserved for staff (X-User-Role: staff)."""
    user_id = current_user(info)
    if info.context.get("user_role") != STAFF_ROLE:
        raise PermissionDeniedError("Only staff can change order fulfilment status")
    return user_id


def cart_to_dict(view: PricedCartView) -> dict:
    return {
        "id": view.cart_id,
        "items": [
            {
                "supplyId": entry.line.supply_id,
                "name": entry.line.name,
                "unit": entry.line.unit,
                "image": entry.line.image,
                "unitPrice": entry.priced.unit_price,
                "quantity": entry.priced.quantity,
                "subtotal": entry.priced.subtotal,
                "discount": entry.priced.discount_amount,
                "total": entry.priced.line_total,
            }
            for entry in view.lines
        ],
        "totalItems": view.total_items,
        "subtotal": view.totals.subtotal,
        "discount": view.totals.discount,
        "tax": view.totals.tax,
        "total": view.totals.total,
    }


def order_to_dict(order: Order) -> dict:
    shipping = order.shipping
    return {
        "id": order.id,
        "userId": order.user_id,
        "status": order.status.value,
        "subtotal": order.subtotal,
        "discount": order.discount,
        "tax": order.tax,
        "total": order.total,
        "shipping": {
            "address": shipping.address,
            "city": shipping.city,
            "state": shipping.state,
            "zip": shipping.zip,
            "country": shipping.country,
            "phone": shipping.phone,
            "notes": shipping.notes,
        },
        "items": [
            {
                "supplyId": item.supply_id,
                "name": item.supply_name,
                "quantity": item.quantity,
                "unitPrice": item.unit_price,
                "discount": item.discount,
                "subtotal": item.subtotal,
            }
            for item in order.items
        ],
        "createdAt": order.created_at,
        "shippedAt": order.shipped_at,
        "deliveredAt": order.delivered_at,
        "trackingNumber": order.tracking_number,
    }


@query.field("cart")
def resolve_cart(_, info):
    return cart_to_dict(CartService().preview_cart(current_user(info)))


@query.field("order")
def resolve_order(_, info, id):
    order = OrderService().get_order(id, user_id=current_user(info))
    return order_to_dict(order)


@query.field("orders")
def resolve_orders(_, info, status=None, sortBy="created_at", sortDir="desc", limit=None, offset=0):
    """Resolve order history with filtering, sorting and pagination."""
    orders = OrderService().list_orders(
        current_user(info),
        status=status,
        sort_by=sortBy or "created_at",
        sort_dir=sortDir or "desc",
        limit=limit,
        offset=offset or 0,
    )
    return [order_to_dict(order) for order in orders]


@mutation.field("addCartItem")
def resolve_add_cart_item(_, info, supplyId, quantity):
    return cart_to_dict(CartService().add_item(current_user(info), supplyId, quantity))


@mutation.field("updateCartItem")
def resolve_update_cart_item(_, info, supplyId, quantity):
    return cart_to_dict(CartService().update_item(current_user(info), supplyId, quantity))


@mutation.field("removeCartItem")
def resolve_remove_cart_item(_, info, supplyId):
    return cart_to_dict(CartService().remove_item(current_user(info), supplyId))


@mutation.field("clearCart")
def resolve_clear_cart(_, info):
    return cart_to_dict(CartService().clear_cart(current_user(info)))


@mutation.field("checkout")
def resolve_checkout(_, info, input: dict):
    """Resolve checkout mutation."""
    shipping = ShippingInfo(
        address=input["shippingAddress"],
        city=input["shippingCity"],
        state=input["shippingState"],
        zip=input["shippingZip"],
        phone=input["shippingPhone"],
        country=input.get("shippingCountry") or settings.MARKETPLACE_DEFAULT_SHIPPING_COUNTRY,
        notes=input.get("notes"),
    )
    order = OrderService().checkout(current_user(info), shipping)
    return order_to_dict(order)


@mutation.field("cancelOrder")
def resolve_cancel_order(_, info, orderId):
    order = OrderLifecycleService().cancel(orderId, user_id=current_user(info))
    return order_to_dict(order)


@mutation.field("reorder")
def resolve_reorder(_, info, orderId):
    result = ReorderService().reorder(current_user(info), orderId)
    return {"cart": cart_to_dict(result.cart), "skipped": result.skipped}


@mutation.field("startProcessingOrder")
def resolve_start_processing_order(_, info, orderId):
    require_staff(info)
    return order_to_dict(OrderLifecycleService().start_processing(orderId))


@mutation.field("shipOrder")
def resolve_ship_order(_, info, orderId, trackingNumber):
    require_staff(info)
    return order_to_dict(OrderLifecycleService().ship(orderId, trackingNumber))


@mutation.field("deliverOrder")
def resolve_deliver_order(_, info, orderId):
    require_staff(info)
    return order_to_dict(OrderLifecycleService().deliver(orderId))


def format_marketplace_error(error, debug: bool = False) -> dict:
    """Add the domain error code and details to GraphQL error extensions."""
    formatted = format_error(error, debug)
    original = unwrap_graphql_error(error)
    if isinstance(original, MarketplaceError):
        extensions = formatted.setdefault("extensions", {})
        extensions["code"] = original.code
        extensions.update(original.details)
    return formatted


# Define custom scalars
decimal_scalar = ScalarType("Decimal")
uuid_scalar = ScalarType("UUID")
datetime_scalar = ScalarType("DateTime")


@decimal_scalar.serializer
def serialize_decimal(value):
    """Serialize Decimal to string."""
    return str(value)


@decimal_scalar.value_parser
def parse_decimal_value(value):
    """Parse Decimal from string."""
    if isinstance(value, float):
        raise ValueError("Decimal values must be sent as strings")
    return Decimal(str(value))


@uuid_scalar.serializer
def serialize_uuid(value):
    """Serialize UUID to string."""
    return str(value)


@uuid_scalar.value_parser
def parse_uuid_value(value):
    """Parse UUID from string."""
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


@uuid_scalar.literal_parser
def parse_uuid_literal(ast, variable_values=None):
    """Parse UUID from GraphQL literal."""
    return UUID(str(ast.value))


@datetime_scalar.serializer
def serialize_datetime(value):
    """Serialize DateTime to ISO format string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# Create executable schema
schema = make_executable_schema(
    type_defs,
    query,
    mutation,
    datetime_scalar,
    decimal_scalar,
    uuid_scalar,
)
