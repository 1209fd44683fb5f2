"""
Management command to seed the supply catalog.
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from marketplace.infra.inventory import InventoryLedger
from marketplace.infra.models import SupplyORM

SUPPLIES = [
    {
        'name': 'Organic Tomato Seeds',
        'description': 'High-quality organic tomato seeds for planting. These seeds produce juicy, '
                       'flavorful tomatoes that are perfect for home gardening.',
        'category': 'Seeds',
        'price': Decimal('5.99'),
        'stock_quantity': 150,
        'unit': 'packet',
        'images': ['tomato-seeds.jpg'],
        'sku': 'SEED-TOM-001',
        'featured': True,
    },
    {
        'name': 'All-Purpose Fertilizer',
        'description': 'Balanced NPK formula suitable for most crops. Enhances plant growth and improves yield.',
        'category': 'Fertilizer',
        'price': Decimal('12.99'),
        'stock_quantity': 75,
        'unit': 'kg',
        'images': ['fertilizer.jpg'],
        'sku': 'FERT-AP-001',
        'featured': True,
    },
    {
        'name': 'Garden Trowel Set',
        'description': 'A set of 3 high-quality stainless steel garden trowels with ergonomic handles.',
        'category': 'Tools',
        'price': Decimal('24.99'),
        'stock_quantity': 40,
        'unit': 'set',
        'images': ['trowel-set.jpg'],
        'sku': 'TOOL-TR-001',
        'featured': False,
    },
    {
        'name': 'Corn Seeds',
        'description': 'Premium corn seeds for planting. These seeds produce sweet, delicious corn '
                       'perfect for summer harvests.',
        'category': 'Seeds',
        'price': Decimal('4.99'),
        'stock_quantity': 120,
        'unit': 'packet',
        'images': ['corn-seeds.jpg'],
        'sku': 'SEED-CRN-001',
        'featured': False,
    },
    {
        'name': 'Organic Compost',
        'description': 'Nutrient-rich organic compost to improve soil health and plant growth.',
        'category': 'Soil & Compost',
        'price': Decimal('8.99'),
        'stock_quantity': 100,
        'unit': 'kg',
        'images': ['compost.jpg'],
        'sku': 'SOIL-COM-001',
        'featured': True,
    },
    {
        'name': 'Garden Hose',
        'description': '50-foot flexible garden hose with adjustable spray nozzle.',
        'category': 'Equipment',
        'price': Decimal('29.99'),
        'stock_quantity': 35,
        'unit': 'item',
        'images': ['garden-hose.jpg'],
        'sku': 'EQUIP-HS-001',
        'featured': False,
    },
]


class Command(BaseCommand):
    help = 'Seed the supply catalog with sample farm goods'

    def add_arguments(self, parser):
        parser.add_argument(
            '--reset-stock',
            action='store_true',
            help='Reset stock of already seeded supplies to the seed values',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        ledger = InventoryLedger()
        created_count = 0
        for data in SUPPLIES:
            defaults = dict(data)
            sku = defaults.pop('sku')
            stock = defaults.pop('stock_quantity')
            supply, created = SupplyORM.objects.update_or_create(
                sku=sku,
                defaults=defaults,
                create_defaults={**defaults, 'stock_quantity': stock},
            )
            if created:
                created_count += 1
            elif options['reset_stock']:
                ledger.set_stock(supply.id, stock)

        self.stdout.write(
            self.style.SUCCESS(f'Seeded {len(SUPPLIES)} supplies ({created_count} new)')
        )
