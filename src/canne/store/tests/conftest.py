"""Shared pytest fixtures for canne.store tests."""

from decimal import Decimal

import pytest
from django.test import Client


@pytest.fixture
def client():
    """Return a Django test client."""
    return Client()


@pytest.fixture
def print_small(db):
    """A $15 starter print."""
    from canne.store.models import Product

    return Product.objects.create(
        name="Morning Light",
        slug="morning-light",
        price=Decimal("15.00"),
        tier="Starter",
        gift_size="1/8",
        stock=10,
    )


@pytest.fixture
def print_large(db):
    """A $35 deluxe print, exactly at the free delivery threshold."""
    from canne.store.models import Product

    return Product.objects.create(
        name="Harbor at Dusk",
        slug="harbor-at-dusk",
        price=Decimal("35.00"),
        tier="Deluxe",
        gift_size="1/4",
        stock=3,
    )


@pytest.fixture
def retired_print(db):
    """An inactive product that must never show up in listings or carts."""
    from canne.store.models import Product

    return Product.objects.create(
        name="Old Series",
        slug="old-series",
        price=Decimal("20.00"),
        is_active=False,
    )
