"""
Order status transitions and the cancellation compensation (restock).
"""
from __future__ import annotations

import logging
from typing import Callable
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from marketplace.domain.events import OrderCancelled, OrderStatusChanged
from marketplace.domain.exceptions import OrderNotFoundError, SupplyNotFoundError
from marketplace.domain.order import Order, OrderStatus
from marketplace.infra.inventory import InventoryLedger
from marketplace.infra.outbox import OutboxRepository
from marketplace.infra.repositories import OrderRepository

logger = logging.getLogger(__name__)


class OrderLifecycleService:
    """Service for moving orders through their status state machine."""

    def __init__(
        self,
        order_repo: OrderRepository | None = None,
        ledger: InventoryLedger | None = None,
        outbox_repo: OutboxRepository | None = None,
    ):
        self.order_repo = order_repo or OrderRepository()
        self.ledger = ledger or InventoryLedger()
        self.outbox_repo = outbox_repo or OutboxRepository()

    @transaction.atomic
    def cancel(self, order_id: UUID, user_id: UUID | None = None) -> Order:
        """
        Cancel a pending or processing order and return its items to stock.

        The order row stays locked until commit and the status update is
        conditional on the status read under that lock, so a concurrent or
        repeated cancel fails with InvalidTransitionError instead of
        restocking twice. Items whose supply was deleted from the catalog
        are skipped; any other restock failure aborts the cancellation.
        """
        order = self._load_for_update(order_id, user_id)
        previous = order.cancel()
        self.order_repo.save_status(order, expected=previous)

        restocked = []
        skipped = []
        for item in order.items:
            try:
                self.ledger.restock(item.supply_id, item.quantity)
            except SupplyNotFoundError:
                # Quantity of a deleted supply is dropped, not tracked
                logger.warning(
                    "restock_skipped_missing_supply",
                    extra={
                        "order_id": str(order.id),
                        "supply_id": str(item.supply_id),
                        "quantity": item.quantity,
                    },
                )
                skipped.append(str(item.supply_id))
                continue
            restocked.append({"supply_id": str(item.supply_id), "quantity": item.quantity})

        self.outbox_repo.add_event(
            OrderCancelled(
                aggregate_id=order.id,
                from_status=previous.value,
                restocked=restocked,
                skipped_supply_ids=skipped,
            ),
            "Order",
        )
        logger.info(
            "order_cancelled",
            extra={
                "order_id": str(order.id),
                "from_status": previous.value,
                "restocked": len(restocked),
                "skipped": len(skipped),
            },
        )
        return order

    def start_processing(self, order_id: UUID) -> Order:
        """pending -> processing."""
        return self._advance(order_id, lambda order: order.start_processing())

    def ship(self, order_id: UUID, tracking_number: str) -> Order:
        """processing -> shipped."""
        return self._advance(
            order_id,
            lambda order: order.ship(tracking_number, shipped_at=timezone.now()),
        )

    def deliver(self, order_id: UUID) -> Order:
        """shipped -> delivered."""
        return self._advance(
            order_id,
            lambda order: order.deliver(delivered_at=timezone.now()),
        )

    @transaction.atomic
    def _advance(self, order_id: UUID, transition: Callable[[Order], OrderStatus]) -> Order:
        order = self._load_for_update(order_id)
        previous = transition(order)
        self.order_repo.save_status(order, expected=previous)

        self.outbox_repo.add_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                from_status=previous.value,
                to_status=order.status.value,
                tracking_number=order.tracking_number,
            ),
            "Order",
        )
        logger.info(
            "order_status_changed",
            extra={
                "order_id": str(order.id),
                "from_status": previous.value,
                "to_status": order.status.value,
            },
        )
        return order

    def _load_for_update(self, order_id: UUID, user_id: UUID | None = None) -> Order:
        order = self.order_repo.get_for_update(order_id, user_id=user_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order
