"""
Checkout and order queries.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.conf import settings
from django.db import transaction

from marketplace.domain.events import OrderPlaced
from marketplace.domain.exceptions import EmptyCartError, MarketplaceError, OrderNotFoundError
from marketplace.domain.order import Order, OrderItem, ShippingInfo
from marketplace.domain.pricing import price_line
from marketplace.infra.inventory import InventoryLedger
from marketplace.infra.locks import cart_lock
from marketplace.infra.outbox import OutboxRepository
from marketplace.infra.repositories import CartRepository, OrderRepository, SupplyRepository

logger = logging.getLogger(__name__)


class OrderService:
    """Service for order operations."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        cart_repo: CartRepository | None = None,
        supply_repo: SupplyRepository | None = None,
        ledger: InventoryLedger | None = None,
        outbox_repo: OutboxRepository | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.supply_repo = supply_repo or SupplyRepository()
        self.ledger = ledger or InventoryLedger()
        self.outbox_repo = outbox_repo or OutboxRepository()

    def checkout(self, user_id: UUID, shipping: ShippingInfo) -> Order:
        """
        Turn the user's cart into a pending order.

        Stock decrements, the order and its items, the cart clear and the
        outbox event commit together or not at all.
        """
        try:
            order = self._checkout(user_id, shipping)
        except MarketplaceError as e:
            logger.warning(
                "checkout_failed",
                extra={"user_id": str(user_id), "error": e.code, **e.details},
            )
            raise

        logger.info(
            "checkout_committed",
            extra={
                "user_id": str(user_id),
                "order_id": str(order.id),
                "total": str(order.total),
                "items_count": len(order.items),
            },
        )
        return order

    @transaction.atomic
    def _checkout(self, user_id: UUID, shipping: ShippingInfo) -> Order:
        with cart_lock(user_id):
            cart = self.cart_repo.get_or_create(user_id)
            lines = self.cart_repo.get_lines(cart)
            if not lines:
                raise EmptyCartError(user_id)

            # Lines come sorted by supply id, so concurrent checkouts lock
            # supply rows in the same order
            for line in lines:
                self.ledger.check_and_decrement(line.supply_id, line.quantity)

            # Re-read after decrementing: the rows are locked now, so these
            # are the prices this order commits with
            supplies = self.supply_repo.get_many(line.supply_id for line in lines)
            items = []
            for line in lines:
                supply = supplies[line.supply_id]
                items.append(OrderItem.from_priced_line(
                    supply_id=supply.id,
                    supply_name=supply.name,
                    line=price_line(supply.price, line.quantity),
                ))

            order = Order.place(user_id=user_id, shipping=shipping, items=items)
            self.order_repo.create(order)
            self.cart_repo.clear(cart)

            self.outbox_repo.add_event(
                OrderPlaced(
                    aggregate_id=order.id,
                    user_id=user_id,
                    subtotal=order.subtotal,
                    tax=order.tax,
                    total=order.total,
                    items_count=len(items),
                ),
                "Order",
            )
        return order

    def get_order(self, order_id: UUID, user_id: UUID | None = None) -> Order:
        """Get order by ID. With ``user_id``, only that user's order is visible."""
        order = self.order_repo.get_by_id(order_id, user_id=user_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(
        self,
        user_id: UUID,
        status: str | None = None,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Order]:
        """Get orders of a user with filtering, sorting and pagination.

        ``limit`` defaults to MARKETPLACE_ORDERS_PAGE_SIZE and is capped at
        MARKETPLACE_ORDERS_PAGE_SIZE_MAX.
        """
        if limit is None:
            limit = settings.MARKETPLACE_ORDERS_PAGE_SIZE
        return self.order_repo.list_for_user(
            user_id,
            status=status,
            sort_by=sort_by,
            sort_dir=sort_dir,
            limit=min(max(limit, 0), settings.MARKETPLACE_ORDERS_PAGE_SIZE_MAX),
            offset=max(offset, 0),
        )
