"""Store module for the product catalog and shopping cart.

Delivery pricing lives in ``canne.store.pricing`` and is shared by the
cart summary, order placement and the pricing debug script.
"""
