"""Delivery pricing for the storefront.

A single source for the delivery rule: the fee is waived when the
subtotal reaches the free-delivery threshold, otherwise a flat fee is
added. Thresholds come from the STOREFRONT settings.
"""

from decimal import Decimal, ROUND_HALF_EVEN
from typing import Iterable, NamedTuple

from canne.core.conf import get_decimal_setting


class PricingResult(NamedTuple):
    """Result of delivery pricing."""

    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    free_delivery: bool
    amount_to_free_delivery: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "delivery_fee": float(self.delivery_fee),
            "total": float(self.total),
            "free_delivery": self.free_delivery,
            "amount_to_free_delivery": float(self.amount_to_free_delivery),
        }


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round to specified decimal places using banker's rounding."""
    quantize_str = "0." + "0" * places
    return amount.quantize(Decimal(quantize_str), rounding=ROUND_HALF_EVEN)


def to_decimal(value) -> Decimal:
    """Coerce a price coming from JSON or the database to Decimal."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def line_total(unit_price, quantity: int) -> Decimal:
    """Price of one cart line."""
    return round_money(to_decimal(unit_price) * quantity)


def cart_subtotal(lines: Iterable[tuple]) -> Decimal:
    """Sum ``(unit_price, quantity)`` pairs."""
    subtotal = Decimal("0")
    for unit_price, quantity in lines:
        subtotal += to_decimal(unit_price) * quantity
    return round_money(subtotal)


def calculate_delivery(subtotal) -> PricingResult:
    """Apply the delivery rule to a subtotal.

    Args:
        subtotal: Cart subtotal (Decimal, int, float or numeric string)

    Returns:
        PricingResult with fee, total and free-delivery flag

    Raises:
        ValueError: Subtotal is negative
    """
    subtotal = to_decimal(subtotal)
    if subtotal < 0:
        raise ValueError(f"Subtotal cannot be negative: {subtotal}")

    threshold = get_decimal_setting("DELIVERY_FREE_THRESHOLD")
    flat_fee = get_decimal_setting("DELIVERY_FLAT_FEE")

    # Compare before rounding; only the reported amounts are rounded.
    free_delivery = subtotal >= threshold
    delivery_fee = Decimal("0.00") if free_delivery else round_money(flat_fee)
    remaining = Decimal("0.00") if free_delivery else round_money(threshold - subtotal)

    return PricingResult(
        subtotal=round_money(subtotal),
        delivery_fee=delivery_fee,
        total=round_money(subtotal + delivery_fee),
        free_delivery=free_delivery,
        amount_to_free_delivery=remaining,
    )
