"""
Infrastructure repositories for domain entities.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db.models import F
from django.utils import timezone

from marketplace.domain.cart import CartLine
from marketplace.domain.exceptions import CartLineNotFoundError, InvalidTransitionError
from marketplace.domain.order import Order, OrderItem, OrderStatus, ShippingInfo
from marketplace.domain.pricing import OrderTotals
from marketplace.infra.models import (
    CartLineORM,
    CartORM,
    OrderItemORM,
    OrderORM,
    SupplyORM,
)

logger = logging.getLogger(__name__)


class SupplyRepository:
    """Read access to the supply catalog."""

    def get_by_id(self, supply_id: UUID) -> SupplyORM | None:
        return SupplyORM.objects.filter(id=supply_id).first()

    def get_many(self, supply_ids) -> dict[UUID, SupplyORM]:
        return SupplyORM.objects.in_bulk(list(supply_ids))


class CartRepository:
    """Repository for carts and their lines. Callers hold ``cart_lock``."""

    def get_or_create(self, user_id: UUID) -> CartORM:
        """Get the user's cart, creating it on first access."""
        cart, created = CartORM.objects.get_or_create(user_id=user_id)
        if created:
            logger.info("cart_created", extra={"user_id": str(user_id)})
        return cart

    def get_lines(self, cart: CartORM) -> list[CartLine]:
        """Cart lines joined with the catalog, ordered by supply id."""
        lines_orm = (
            CartLineORM.objects
            .filter(cart=cart)
            .select_related("supply")
            .order_by("supply_id")
        )
        return [self._to_domain(line_orm) for line_orm in lines_orm]

    def get_quantity(self, cart: CartORM, supply_id: UUID) -> int:
        return (
            CartLineORM.objects
            .filter(cart=cart, supply_id=supply_id)
            .values_list("quantity", flat=True)
            .first()
        ) or 0

    def add_quantity(self, cart: CartORM, supply_id: UUID, quantity: int) -> None:
        """Merge ``quantity`` into the line for ``supply_id``, creating it if absent."""
        updated = CartLineORM.objects.filter(cart=cart, supply_id=supply_id).update(
            quantity=F("quantity") + quantity,
        )
        if not updated:
            CartLineORM.objects.create(cart=cart, supply_id=supply_id, quantity=quantity)

    def set_quantity(self, cart: CartORM, supply_id: UUID, quantity: int) -> None:
        updated = CartLineORM.objects.filter(cart=cart, supply_id=supply_id).update(
            quantity=quantity,
        )
        if not updated:
            raise CartLineNotFoundError(supply_id)

    def remove_line(self, cart: CartORM, supply_id: UUID) -> None:
        deleted, _ = CartLineORM.objects.filter(cart=cart, supply_id=supply_id).delete()
        if not deleted:
            raise CartLineNotFoundError(supply_id)

    def clear(self, cart: CartORM) -> int:
        deleted, _ = CartLineORM.objects.filter(cart=cart).delete()
        return deleted

    def _to_domain(self, line_orm: CartLineORM) -> CartLine:
        supply = line_orm.supply
        return CartLine(
            supply_id=supply.id,
            name=supply.name,
            unit=supply.unit,
            unit_price=supply.price,
            quantity=line_orm.quantity,
            image=supply.images[0] if supply.images else None,
        )


class OrderRepository:
    """Repository for Order aggregate."""

    SORT_FIELDS = ("created_at", "total", "status")

    def get_by_id(self, order_id: UUID, user_id: UUID | None = None) -> Order | None:
        """Get order by ID with items, optionally scoped to its owner."""
        queryset = OrderORM.objects.prefetch_related("items").filter(id=order_id)
        if user_id is not None:
            queryset = queryset.filter(user_id=user_id)
        order_orm = queryset.first()
        return self._to_domain(order_orm) if order_orm else None

    def get_for_update(self, order_id: UUID, user_id: UUID | None = None) -> Order | None:
        """Lock the order row for the rest of the transaction and load it."""
        queryset = OrderORM.objects.select_for_update().filter(id=order_id)
        if user_id is not None:
            queryset = queryset.filter(user_id=user_id)
        order_orm = queryset.first()
        if order_orm is None:
            return None
        return self._to_domain(order_orm)

    def list_for_user(
        self,
        user_id: UUID,
        status: str | None = None,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
        limit: int = 10,
        offset: int = 0,
    ) -> list[Order]:
        """Orders of one user with optional status filter, sorting and paging."""
        queryset = OrderORM.objects.filter(user_id=user_id).prefetch_related("items")
        if status in {choice.value for choice in OrderStatus}:
            queryset = queryset.filter(status=status)

        if sort_by not in self.SORT_FIELDS:
            sort_by = "created_at"
        prefix = "" if sort_dir == "asc" else "-"
        queryset = queryset.order_by(f"{prefix}{sort_by}", f"{prefix}id")

        return [self._to_domain(order_orm) for order_orm in queryset[offset:offset + limit]]

    def create(self, order: Order) -> UUID:
        """Insert a new order with its items."""
        shipping = order.shipping
        order_orm = OrderORM.objects.create(
            id=order.id,
            user_id=order.user_id,
            status=order.status.value,
            subtotal=order.subtotal,
            discount=order.discount,
            tax=order.tax,
            total=order.total,
            shipping_address=shipping.address,
            shipping_city=shipping.city,
            shipping_state=shipping.state,
            shipping_zip=shipping.zip,
            shipping_country=shipping.country,
            shipping_phone=shipping.phone,
            notes=shipping.notes,
        )
        OrderItemORM.objects.bulk_create([
            OrderItemORM(
                order=order_orm,
                supply_id=item.supply_id,
                supply_name=item.supply_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount=item.discount,
                subtotal=item.subtotal,
            )
            for item in order.items
        ])
        order.created_at = order_orm.created_at
        return order_orm.id

    def save_status(self, order: Order, expected: OrderStatus) -> None:
        """
        Persist a status transition, guarded on the status it was made from.

        Only status and its shipping/delivery stamps are ever updated.
        """
        updated = OrderORM.objects.filter(id=order.id, status=expected.value).update(
            status=order.status.value,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            tracking_number=order.tracking_number,
            updated_at=timezone.now(),
        )
        if not updated:
            current = (
                OrderORM.objects.filter(id=order.id)
                .values_list("status", flat=True)
                .first()
            )
            raise InvalidTransitionError(order.id, current or expected.value, order.status.value)

    def _to_domain(self, order_orm: OrderORM) -> Order:
        """Convert ORM model to domain entity."""
        items = [
            OrderItem(
                supply_id=item_orm.supply_id,
                supply_name=item_orm.supply_name,
                quantity=item_orm.quantity,
                unit_price=item_orm.unit_price,
                discount=item_orm.discount,
                subtotal=item_orm.subtotal,
            )
            for item_orm in sorted(order_orm.items.all(), key=lambda item: str(item.supply_id))
        ]
        shipping = ShippingInfo(
            address=order_orm.shipping_address,
            city=order_orm.shipping_city,
            state=order_orm.shipping_state,
            zip=order_orm.shipping_zip,
            phone=order_orm.shipping_phone,
            country=order_orm.shipping_country,
            notes=order_orm.notes,
        )
        return Order(
            id=order_orm.id,
            user_id=order_orm.user_id,
            shipping=shipping,
            items=items,
            totals=OrderTotals(
                subtotal=order_orm.subtotal,
                discount=order_orm.discount,
                tax=order_orm.tax,
                total=order_orm.total,
            ),
            status=OrderStatus(order_orm.status),
            created_at=order_orm.created_at,
            shipped_at=order_orm.shipped_at,
            delivered_at=order_orm.delivered_at,
            tracking_number=order_orm.tracking_number,
        )
