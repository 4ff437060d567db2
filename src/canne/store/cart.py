"""Session-backed shopping cart.

The cart is an ordered mapping of product id to quantity stored in the
session under the configured CART_SESSION_KEY. Totals are never stored;
they are recomputed from current product prices on every read.
"""

import logging
import uuid
from decimal import Decimal
from typing import NamedTuple

from canne.core.conf import get_setting

from .models import Product
from .pricing import calculate_delivery, cart_subtotal, line_total

logger = logging.getLogger(__name__)


class CartLine(NamedTuple):
    """One product in the cart, joined against the catalog."""

    product: Product
    quantity: int
    line_total: Decimal

    def as_dict(self) -> dict:
        return {
            "product": self.product.to_dict(),
            "quantity": self.quantity,
            "line_total": float(self.line_total),
        }


class Cart:
    """Shopping cart hydrated once from the request session."""

    def __init__(self, session):
        self.session = session
        self.session_key = get_setting("CART_SESSION_KEY")
        stored = session.get(self.session_key) or {}
        self._items = {}
        for product_id, quantity in stored.items():
            try:
                product_id = uuid.UUID(str(product_id))
                quantity = int(quantity)
            except (TypeError, ValueError):
                logger.warning("Dropping malformed cart entry %s=%r", product_id, quantity)
                continue
            if quantity > 0:
                self._items[str(product_id)] = quantity

    def __len__(self):
        return sum(self._items.values())

    def __contains__(self, product_id):
        return str(product_id) in self._items

    def quantity_of(self, product_id) -> int:
        return self._items.get(str(product_id), 0)

    def add(self, product: Product, quantity: int = 1) -> int:
        """Add ``quantity`` of a product and return the new line quantity."""
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        key = str(product.pk)
        self._items[key] = self._items.get(key, 0) + quantity
        self._save()
        return self._items[key]

    def set_quantity(self, product_id, quantity: int) -> int:
        """Set a line quantity; zero or less removes the line."""
        key = str(product_id)
        if quantity <= 0:
            self._items.pop(key, None)
        else:
            self._items[key] = quantity
        self._save()
        return max(quantity, 0)

    def remove(self, product_id) -> bool:
        removed = self._items.pop(str(product_id), None) is not None
        if removed:
            self._save()
        return removed

    def clear(self):
        self._items = {}
        self._save()

    def lines(self) -> list[CartLine]:
        """Cart lines in insertion order; unknown or inactive products are dropped."""
        if not self._items:
            return []

        products = {
            str(p.pk): p
            for p in Product.objects.filter(pk__in=list(self._items), is_active=True)
        }

        lines = []
        for product_id, quantity in self._items.items():
            product = products.get(product_id)
            if product is None:
                continue
            lines.append(CartLine(product, quantity, line_total(product.price, quantity)))
        return lines

    def summary(self) -> dict:
        """Items plus derived totals and delivery eligibility."""
        lines = self.lines()
        subtotal = cart_subtotal((line.product.price, line.quantity) for line in lines)
        pricing = calculate_delivery(subtotal)
        return {
            "items": [line.as_dict() for line in lines],
            "item_count": sum(line.quantity for line in lines),
            **pricing.as_dict(),
        }

    def _save(self):
        self.session[self.session_key] = dict(self._items)
        self.session.modified = True
