"""
Inventory ledger: authoritative stock counts on the supply catalog.

Stock is only ever changed with single conditional UPDATE statements, so the
check and the write happen in one database operation and two transactions
contending for the last unit can never both succeed. The mutating methods
run inside the caller's transaction and never commit on their own.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from marketplace.domain.exceptions import (
    InsufficientStockError,
    SupplyNotFoundError,
    ValidationError,
)
from marketplace.infra.models import SupplyORM

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Check-and-decrement and restock commands against ``SupplyORM``."""

    def __init__(self, using: str = "default"):
        self.using = using

    def check_and_decrement(self, supply_id: UUID, quantity: int) -> None:
        """
        Atomically take ``quantity`` units out of stock.

        Equivalent to
        ``UPDATE supply SET stock_quantity = stock_quantity - :q
        WHERE id = :id AND stock_quantity >= :q``.
        """
        self._validate(quantity)
        self._require_transaction()

        updated = (
            SupplyORM.objects.using(self.using)
            .filter(id=supply_id, stock_quantity__gte=quantity)
            .update(
                stock_quantity=F("stock_quantity") - quantity,
                updated_at=timezone.now(),
            )
        )
        if updated:
            logger.debug(
                "stock_decremented",
                extra={"supply_id": str(supply_id), "quantity": quantity},
            )
            return

        available = self.available(supply_id)
        if available is None:
            raise SupplyNotFoundError(supply_id)
        logger.info(
            "insufficient_stock",
            extra={
                "supply_id": str(supply_id),
                "requested": quantity,
                "available": available,
            },
        )
        raise InsufficientStockError(supply_id, requested=quantity, available=available)

    def restock(self, supply_id: UUID, quantity: int) -> None:
        """Atomically return ``quantity`` units to stock."""
        self._validate(quantity)
        self._require_transaction()

        updated = (
            SupplyORM.objects.using(self.using)
            .filter(id=supply_id)
            .update(
                stock_quantity=F("stock_quantity") + quantity,
                updated_at=timezone.now(),
            )
        )
        if not updated:
            raise SupplyNotFoundError(supply_id)
        logger.debug(
            "stock_restocked",
            extra={"supply_id": str(supply_id), "quantity": quantity},
        )

    def set_stock(self, supply_id: UUID, quantity: int) -> None:
        """
        Overwrite the stock count of a supply.

        Admin-only override for catalog maintenance (seeding, stock takes).
        Checkout and cancellation never call this.
        """
        if quantity < 0:
            raise ValidationError("Stock quantity must not be negative")
        self._require_transaction()

        updated = (
            SupplyORM.objects.using(self.using)
            .filter(id=supply_id)
            .update(stock_quantity=quantity, updated_at=timezone.now())
        )
        if not updated:
            raise SupplyNotFoundError(supply_id)
        logger.info(
            "stock_overwritten",
            extra={"supply_id": str(supply_id), "quantity": quantity},
        )

    def available(self, supply_id: UUID) -> int | None:
        """Current stock, or None when the supply does not exist."""
        return (
            SupplyORM.objects.using(self.using)
            .filter(id=supply_id)
            .values_list("stock_quantity", flat=True)
            .first()
        )

    def has_stock(self, supply_id: UUID, quantity: int) -> bool:
        """Read-only availability check. Reserves nothing."""
        available = self.available(supply_id)
        return available is not None and available >= quantity

    def _validate(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Stock quantity must be positive")

    def _require_transaction(self) -> None:
        if not transaction.get_connection(self.using).in_atomic_block:
            raise RuntimeError("Stock changes must run inside transaction.atomic()")
