"""
Cart operations.

Stock checks made here are advisory: they give the shopper early feedback but
reserve nothing. Checkout re-checks every line against the inventory ledger.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction

from marketplace.domain.cart import PricedCartView, price_cart
from marketplace.domain.exceptions import (
    CartLineNotFoundError,
    InsufficientStockError,
    SupplyNotFoundError,
    ValidationError,
)
from marketplace.infra.locks import cart_lock
from marketplace.infra.models import CartORM
from marketplace.infra.repositories import CartRepository, SupplyRepository

logger = logging.getLogger(__name__)


class CartService:
    """Service for cart operations."""

    def __init__(
        self,
        cart_repo: CartRepository | None = None,
        supply_repo: SupplyRepository | None = None,
    ):
        self.cart_repo = cart_repo or CartRepository()
        self.supply_repo = supply_repo or SupplyRepository()

    @transaction.atomic
    def get_cart(self, user_id: UUID) -> CartORM:
        """Get the user's cart, creating it on first access."""
        with cart_lock(user_id):
            return self.cart_repo.get_or_create(user_id)

    @transaction.atomic
    def preview_cart(self, user_id: UUID) -> PricedCartView:
        """Priced view of the user's cart. Creates the cart on first access."""
        with cart_lock(user_id):
            cart = self.cart_repo.get_or_create(user_id)
            return self._view(cart)

    @transaction.atomic
    def add_item(self, user_id: UUID, supply_id: UUID, quantity: int) -> PricedCartView:
        """Add supply to cart, merging with an existing line."""
        self._validate_quantity(quantity)
        with cart_lock(user_id):
            cart = self.cart_repo.get_or_create(user_id)
            merged = self.cart_repo.get_quantity(cart, supply_id) + quantity
            self._check_stock(supply_id, merged)
            self.cart_repo.add_quantity(cart, supply_id, quantity)
            logger.info(
                "cart_item_added",
                extra={"user_id": str(user_id), "supply_id": str(supply_id), "quantity": merged},
            )
            return self._view(cart)

    @transaction.atomic
    def update_item(self, user_id: UUID, supply_id: UUID, quantity: int) -> PricedCartView:
        """Replace the quantity of an existing cart line."""
        self._validate_quantity(quantity)
        with cart_lock(user_id):
            cart = self.cart_repo.get_or_create(user_id)
            if not self.cart_repo.get_quantity(cart, supply_id):
                raise CartLineNotFoundError(supply_id)
            self._check_stock(supply_id, quantity)
            self.cart_repo.set_quantity(cart, supply_id, quantity)
            logger.info(
                "cart_item_updated",
                extra={"user_id": str(user_id), "supply_id": str(supply_id), "quantity": quantity},
            )
            return self._view(cart)

    @transaction.atomic
    def remove_item(self, user_id: UUID, supply_id: UUID) -> PricedCartView:
        with cart_lock(user_id):
            cart = self.cart_repo.get_or_create(user_id)
            self.cart_repo.remove_line(cart, supply_id)
            logger.info(
                "cart_item_removed",
                extra={"user_id": str(user_id), "supply_id": str(supply_id)},
            )
            return self._view(cart)

    @transaction.atomic
    def clear_cart(self, user_id: UUID) -> PricedCartView:
        with cart_lock(user_id):
            cart = self.cart_repo.get_or_create(user_id)
            removed = self.cart_repo.clear(cart)
            logger.info("cart_cleared", extra={"user_id": str(user_id), "lines": removed})
            return self._view(cart)

    def _view(self, cart: CartORM) -> PricedCartView:
        return price_cart(cart.id, cart.user_id, self.cart_repo.get_lines(cart))

    def _check_stock(self, supply_id: UUID, quantity: int) -> None:
        supply = self.supply_repo.get_by_id(supply_id)
        if supply is None:
            raise SupplyNotFoundError(supply_id)
        if supply.stock_quantity < quantity:
            raise InsufficientStockError(
                supply_id,
                requested=quantity,
                available=supply.stock_quantity,
            )

    @staticmethod
    def _validate_quantity(quantity: int) -> None:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
