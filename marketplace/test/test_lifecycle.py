"""
Tests for order status transitions and cancellation restock.
"""
from uuid import uuid4

from django.test import TestCase

from marketplace.domain.exceptions import (
    InvalidTransitionError,
    OrderNotFoundError,
    ValidationError,
)
from marketplace.domain.order import OrderStatus
from marketplace.infra.models import OrderORM
from marketplace.infra.outbox import OutboxEvent
from marketplace.services import CartService, OrderLifecycleService, OrderService
from marketplace.test.helpers import make_shipping, make_supply, stock_of


class OrderLifecycleTest(TestCase):
    """Tests for OrderLifecycleService."""

    def setUp(self):
        self.user_id = uuid4()
        self.service = OrderLifecycleService()
        self.supply = make_supply(stock=10)
        CartService().add_item(self.user_id, self.supply.id, 3)
        self.order = OrderService().checkout(self.user_id, make_shipping())

    def test_cancel_restores_stock(self):
        self.assertEqual(stock_of(self.supply), 7)

        cancelled = self.service.cancel(self.order.id, user_id=self.user_id)

        self.assertEqual(cancelled.status, OrderStatus.CANCELLED)
        self.assertEqual(stock_of(self.supply), 10)
        self.assertEqual(OrderORM.objects.get(id=self.order.id).status, "cancelled")

    def test_cancel_processing_order(self):
        self.service.start_processing(self.order.id)
        self.service.cancel(self.order.id)
        self.assertEqual(stock_of(self.supply), 10)

    def test_double_cancel_restocks_once(self):
        self.service.cancel(self.order.id)

        with self.assertRaises(InvalidTransitionError) as context:
            self.service.cancel(self.order.id)

        self.assertEqual(context.exception.from_status, "cancelled")
        self.assertEqual(stock_of(self.supply), 10)

    def test_delivered_order_cannot_be_cancelled(self):
        self.service.start_processing(self.order.id)
        self.service.ship(self.order.id, "1Z999AA10123456784")
        self.service.deliver(self.order.id)

        with self.assertRaises(InvalidTransitionError):
            self.service.cancel(self.order.id)

        self.assertEqual(stock_of(self.supply), 7)
        self.assertEqual(OrderORM.objects.get(id=self.order.id).status, "delivered")

    def test_cancel_of_another_users_order(self):
        with self.assertRaises(OrderNotFoundError):
            self.service.cancel(self.order.id, user_id=uuid4())
        self.assertEqual(stock_of(self.supply), 7)

    def test_cancel_unknown_order(self):
        with self.assertRaises(OrderNotFoundError):
            self.service.cancel(uuid4())

    def test_cancel_skips_deleted_supply(self):
        kept = make_supply(name="Corn Seeds", stock=20)
        cart = CartService()
        cart.add_item(self.user_id, self.supply.id, 2)
        cart.add_item(self.user_id, kept.id, 4)
        order = OrderService().checkout(self.user_id, make_shipping())
        self.supply.delete()

        with self.assertLogs("marketplace.services.lifecycle", level="WARNING") as logs:
            self.service.cancel(order.id)

        self.assertEqual(stock_of(kept), 20)
        self.assertIn("restock_skipped_missing_supply", logs.output[0])
        event = OutboxEvent.objects.get(aggregate_id=order.id, event_type="OrderCancelled")
        self.assertEqual(event.event_data["skipped_supply_ids"], [str(self.supply.id)])

    def test_fulfilment_path(self):
        processing = self.service.start_processing(self.order.id)
        self.assertEqual(processing.status, OrderStatus.PROCESSING)

        shipped = self.service.ship(self.order.id, "TRACK-42")
        self.assertEqual(shipped.status, OrderStatus.SHIPPED)

        delivered = self.service.deliver(self.order.id)
        stored = OrderORM.objects.get(id=self.order.id)
        self.assertEqual(delivered.status, OrderStatus.DELIVERED)
        self.assertEqual(stored.status, "delivered")
        self.assertEqual(stored.tracking_number, "TRACK-42")
        self.assertIsNotNone(stored.shipped_at)
        self.assertIsNotNone(stored.delivered_at)

        events = OutboxEvent.objects.filter(
            aggregate_id=self.order.id,
            event_type="OrderStatusChanged",
        ).order_by("created_at")
        self.assertEqual(
            sorted(event.event_data["to_status"] for event in events),
            ["delivered", "processing", "shipped"],
        )

    def test_ship_requires_processing(self):
        with self.assertRaises(InvalidTransitionError):
            self.service.ship(self.order.id, "TRACK-1")
        self.assertEqual(OrderORM.objects.get(id=self.order.id).status, "pending")

    def test_ship_requires_tracking_number(self):
        self.service.start_processing(self.order.id)
        with self.assertRaises(ValidationError):
            self.service.ship(self.order.id, "")

    def test_stale_status_update_rejected(self):
        order = self.service.order_repo.get_by_id(self.order.id)
        OrderORM.objects.filter(id=order.id).update(status="processing")
        previous = order.cancel()

        with self.assertRaises(InvalidTransitionError) as context:
            self.service.order_repo.save_status(order, expected=previous)

        self.assertEqual(context.exception.from_status, "processing")
