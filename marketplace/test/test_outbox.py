"""
Tests for the outbox relay and the management commands.
"""
from io import StringIO
from uuid import uuid4

from django.core.management import call_command
from django.test import TestCase

from marketplace.infra.models import SupplyORM
from marketplace.infra.outbox import OutboxEvent
from marketplace.infra.relay import OutboxRelay
from marketplace.services import CartService, OrderLifecycleService, OrderService
from marketplace.test.helpers import make_shipping, make_supply


class OutboxRelayTest(TestCase):
    """Tests for publishing outbox events."""

    def setUp(self):
        self.user_id = uuid4()
        supply = make_supply(stock=10)
        CartService().add_item(self.user_id, supply.id, 2)
        self.order = OrderService().checkout(self.user_id, make_shipping())
        OrderLifecycleService().cancel(self.order.id)

    def test_publishes_in_creation_order(self):
        published = []
        relay = OutboxRelay(publisher=lambda event: published.append(event.event_type))

        processed = relay.process_outbox_events()

        self.assertEqual(processed, 2)
        self.assertEqual(published, ["OrderPlaced", "OrderCancelled"])
        self.assertFalse(OutboxEvent.objects.filter(processed=False).exists())
        self.assertEqual(relay.process_outbox_events(), 0)

    def test_failed_publish_is_retried_later(self):
        def failing_publisher(event):
            raise ConnectionError("broker unavailable")

        processed = OutboxRelay(publisher=failing_publisher).process_outbox_events()

        self.assertEqual(processed, 0)
        for event in OutboxEvent.objects.all():
            self.assertFalse(event.processed)
            self.assertEqual(event.retry_count, 1)

    def test_limit(self):
        processed = OutboxRelay(publisher=lambda event: None).process_outbox_events(limit=1)

        self.assertEqual(processed, 1)
        self.assertEqual(OutboxEvent.objects.filter(processed=False).count(), 1)

    def test_default_publisher_logs_events(self):
        with self.assertLogs("marketplace.events", level="INFO") as logs:
            OutboxRelay().process_outbox_events()

        self.assertEqual(len(logs.records), 2)
        self.assertEqual(logs.records[0].aggregate_id, str(self.order.id))

    def test_process_outbox_command(self):
        out = StringIO()
        with self.assertLogs("marketplace.events", level="INFO"):
            call_command("process_outbox", "--limit", "10", stdout=out)

        self.assertIn("Processed 2 events", out.getvalue())
        self.assertEqual(OutboxEvent.objects.filter(processed=True).count(), 2)


class SeedSuppliesCommandTest(TestCase):
    """Tests for the catalog seeding command."""

    def test_seed_creates_catalog(self):
        out = StringIO()
        call_command("seed_supplies", stdout=out)

        self.assertEqual(SupplyORM.objects.count(), 6)
        seeds = SupplyORM.objects.get(sku="SEED-TOM-001")
        self.assertEqual(seeds.name, "Organic Tomato Seeds")
        self.assertEqual(str(seeds.price), "5.99")
        self.assertEqual(seeds.stock_quantity, 150)
        self.assertEqual(seeds.unit, "packet")
        self.assertIn("6 new", out.getvalue())

    def test_seed_is_idempotent_and_keeps_stock(self):
        call_command("seed_supplies", stdout=StringIO())
        SupplyORM.objects.filter(sku="EQUIP-HS-001").update(stock_quantity=3)

        call_command("seed_supplies", stdout=StringIO())

        self.assertEqual(SupplyORM.objects.count(), 6)
        self.assertEqual(SupplyORM.objects.get(sku="EQUIP-HS-001").stock_quantity, 3)

    def test_seed_can_reset_stock(self):
        call_command("seed_supplies", stdout=StringIO())
        SupplyORM.objects.filter(sku="EQUIP-HS-001").update(stock_quantity=3)

        call_command("seed_supplies", "--reset-stock", stdout=StringIO())

        self.assertEqual(SupplyORM.objects.get(sku="EQUIP-HS-001").stock_quantity, 35)
