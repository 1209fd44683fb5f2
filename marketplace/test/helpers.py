"""
Shared fixtures for marketplace tests.
"""
from decimal import Decimal
from uuid import uuid4

from marketplace.domain.order import ShippingInfo
from marketplace.infra.models import SupplyORM


def make_supply(name="Organic Tomato Seeds", price="5.99", stock=100, **kwargs) -> SupplyORM:
    defaults = {
        "description": "",
        "category": "Seeds",
        "unit": "packet",
        "images": [],
        "sku": f"SKU-{uuid4().hex[:12]}",
    }
    defaults.update(kwargs)
    return SupplyORM.objects.create(
        name=name,
        price=Decimal(price),
        stock_quantity=stock,
        **defaults,
    )


def make_shipping(**overrides) -> ShippingInfo:
    data = {
        "address": "12 Orchard Lane",
        "city": "Fresno",
        "state": "CA",
        "zip": "93650",
        "phone": "+1 559 555 0134",
    }
    data.update(overrides)
    return ShippingInfo(**data)


def stock_of(supply: SupplyORM) -> int:
    supply.refresh_from_db(fields=["stock_quantity"])
    return supply.stock_quantity
