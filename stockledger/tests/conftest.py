"""
Pytest fixtures for Stockledger tests.
"""

import itertools
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from stockledger import ledger
from stockledger.adapters import reset_product_catalog
from stockledger.models import Location, Order
from stockledger.protocols import ProductInfo
from stockledger.tests.catalog import InMemoryCatalog


User = get_user_model()

_order_numbers = itertools.count(1)


@pytest.fixture(autouse=True)
def catalog():
    """Known products: 1 and 2 are sellable, 3 is retired."""
    reset_product_catalog()
    InMemoryCatalog.products = {
        1: ProductInfo(1, 'Espresso beans 1kg', Decimal('24.90'), sku='ESP-1KG'),
        2: ProductInfo(2, 'Paper filters', Decimal('3.50'), sku='FLT-100'),
        3: ProductInfo(3, 'Hand grinder', Decimal('99.00'), is_active=False, sku='GRD-01'),
    }
    yield InMemoryCatalog
    reset_product_catalog()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='testuser',
        password='testpass123'
    )


@pytest.fixture
def main(db):
    """Default warehouse."""
    location, _ = Location.objects.get_or_create(
        code='main',
        defaults={'name': 'Main warehouse', 'is_default': True},
    )
    return location


@pytest.fixture
def store(db):
    """Secondary location."""
    location, _ = Location.objects.get_or_create(
        code='store-01',
        defaults={'name': 'Downtown store'},
    )
    return location


@pytest.fixture
def record(main):
    """Product 1 at main: 100 on hand, reorder level 20."""
    return ledger.initialize(
        product_id=1,
        location=main,
        initial_quantity=100,
        reorder_level=20,
        reorder_quantity=200,
        cost_per_unit=Decimal('2.00'),
    )


@pytest.fixture
def make_order(db):
    """Factory for bare orders to reserve against."""
    def _make(**kwargs):
        kwargs.setdefault('order_number', f'TEST-{next(_order_numbers):05d}')
        return Order.objects.create(**kwargs)
    return _make


@pytest.fixture
def order(make_order):
    return make_order()
