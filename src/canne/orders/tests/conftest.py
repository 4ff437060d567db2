"""Shared pytest fixtures for canne.orders tests."""

from decimal import Decimal

import pytest
from django.test import Client


@pytest.fixture
def client():
    """Return a Django test client."""
    return Client()


@pytest.fixture
def product(db):
    """A $15 print."""
    from canne.store.models import Product

    return Product.objects.create(
        name="Morning Light",
        slug="morning-light",
        price=Decimal("15.00"),
        stock=10,
    )


@pytest.fixture
def driver(db):
    """An active driver with some earned balance."""
    from canne.orders.models import Driver

    return Driver.objects.create(
        full_name="Ana Rivera",
        phone="202-555-0101",
        email="ana@example.com",
        balance_cents=2400,
    )


@pytest.fixture
def make_cashapp_order(db):
    """Factory for Cash App orders with fixed short codes."""
    from canne.orders.models import CashAppOrder

    def _make(short_code="ORD-TEST", status=CashAppOrder.Status.AWAITING_PAYMENT, **kwargs):
        kwargs.setdefault("amount_cents", 4500)
        kwargs.setdefault("customer_phone", "202-555-0199")
        return CashAppOrder.objects.create(short_code=short_code, status=status, **kwargs)

    return _make


@pytest.fixture
def cashapp_order(make_cashapp_order):
    """A Cash App order awaiting payment."""
    return make_cashapp_order()


@pytest.fixture
def delivery_details():
    return {
        "name": "Jordan Lee",
        "phone": "202-555-0142",
        "email": "jordan@example.com",
        "address": "1600 Example Ave NW",
        "apartment": "4B",
        "city": "Washington",
        "zip_code": "20001",
        "time_preference": "ASAP",
    }
