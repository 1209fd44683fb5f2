"""
Reorder: refill a cart from a historical order, best effort.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from django.db import transaction

from marketplace.domain.cart import PricedCartView, price_cart
from marketplace.domain.exceptions import OrderNotFoundError
from marketplace.infra.inventory import InventoryLedger
from marketplace.infra.locks import cart_lock
from marketplace.infra.repositories import CartRepository, OrderRepository, SupplyRepository

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT = "Unknown product"


@dataclass(frozen=True)
class ReorderResult:
    cart: PricedCartView
    skipped: list[str] = field(default_factory=list)


class ReorderService:
    """
    Replace the user's cart with the items of one of their past orders.

    Items are checked one by one against current stock and copied only when
    enough is available. Nothing is reserved and partial success is normal:
    items that cannot be copied are reported by name in ``skipped``.
    """

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        cart_repo: CartRepository | None = None,
        supply_repo: SupplyRepository | None = None,
        ledger: InventoryLedger | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.cart_repo = cart_repo or CartRepository()
        self.supply_repo = supply_repo or SupplyRepository()
        self.ledger = ledger or InventoryLedger()

    @transaction.atomic
    def reorder(self, user_id: UUID, order_id: UUID) -> ReorderResult:
        order = self.order_repo.get_by_id(order_id, user_id=user_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        with cart_lock(user_id):
            cart = self.cart_repo.get_or_create(user_id)
            self.cart_repo.clear(cart)

            supplies = self.supply_repo.get_many(item.supply_id for item in order.items)
            skipped = []
            for item in order.items:
                supply = supplies.get(item.supply_id)
                if supply is None or not self.ledger.has_stock(item.supply_id, item.quantity):
                    if supply is not None:
                        skipped.append(supply.name)
                    else:
                        skipped.append(item.supply_name or UNKNOWN_PRODUCT)
                    continue
                self.cart_repo.add_quantity(cart, item.supply_id, item.quantity)

            view = price_cart(cart.id, cart.user_id, self.cart_repo.get_lines(cart))

        logger.info(
            "order_reordered",
            extra={
                "user_id": str(user_id),
                "order_id": str(order_id),
                "added": len(view.lines),
                "skipped": len(skipped),
            },
        )
        return ReorderResult(cart=view, skipped=skipped)
