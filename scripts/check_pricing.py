#!/usr/bin/env python3
"""Print the delivery pricing breakdown for one or more subtotals.

Runs the same pricing function the cart and checkout use, so the output
is what a customer would be charged.

Usage:
    # Default cases around the free delivery threshold
    python scripts/check_pricing.py

    # Specific subtotals
    python scripts/check_pricing.py 25 34.99 35 80.50

Requirements:
    - Django settings configured (DJANGO_SETTINGS_MODULE, default canne.settings.dev)
"""

import argparse
import os
import sys
from decimal import Decimal, InvalidOperation

# Add src to path for Django imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

# Setup Django
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "canne.settings.dev")

import django
django.setup()

from canne.core.conf import get_setting
from canne.store.pricing import calculate_delivery


DEFAULT_SUBTOTALS = ["0", "25", "34.99", "35", "35.01", "80"]


def parse_subtotal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value}")


def main():
    parser = argparse.ArgumentParser(description="Show delivery pricing for cart subtotals")
    parser.add_argument(
        "subtotals",
        nargs="*",
        type=parse_subtotal,
        help="Subtotals to price (default: cases around the threshold)",
    )
    args = parser.parse_args()

    subtotals = args.subtotals or [Decimal(s) for s in DEFAULT_SUBTOTALS]

    print("Pricing Configuration:")
    print(f"  Free delivery at: ${get_setting('DELIVERY_FREE_THRESHOLD')}")
    print(f"  Flat fee:         ${get_setting('DELIVERY_FLAT_FEE')}")

    print("\n" + "=" * 60)
    print(f"{'Subtotal':>10} {'Fee':>8} {'Total':>10}  Free delivery")
    print("=" * 60)

    for subtotal in subtotals:
        try:
            result = calculate_delivery(subtotal)
        except ValueError as e:
            print(f"{subtotal:>10}  error: {e}")
            continue
        print(
            f"{result.subtotal:>10} {result.delivery_fee:>8} {result.total:>10}  "
            f"{'yes' if result.free_delivery else f'no (${result.amount_to_free_delivery} to go)'}"
        )


if __name__ == "__main__":
    main()
