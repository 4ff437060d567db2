"""Storefront configuration."""

from decimal import Decimal

from django.conf import settings


def get_config():
    """Get storefront configuration from settings."""
    defaults = {
        "SITE_NAME": "Cannè",

        # Credential tiers (opaque secrets)
        "PUBLIC_KEY": "",
        "SERVICE_ROLE_KEY": "",

        # Delivery pricing
        "DELIVERY_FREE_THRESHOLD": "35.00",
        "DELIVERY_FLAT_FEE": "10.00",

        # Order short codes
        "SHORT_CODE_PREFIX": "ORD-",
        "SHORT_CODE_LENGTH": 4,
        "SHORT_CODE_MAX_ATTEMPTS": 8,

        # Time windows
        "ASAP_WINDOW_MINUTES": 15,
        "PAYMENT_WINDOW_MINUTES": 15,

        # Cart
        "CART_SESSION_KEY": "canne-cart",

        # Delivery zone (Washington DC, 20000-20199)
        "DELIVERY_ZIP_PATTERN": r"^20(0\d\d|1\d\d)$",

        # Drivers
        "DRIVER_BASE_PAYOUT_CENTS": 800,

        # Notifications
        "DISCORD_WEBHOOK_URL": "",
        "NOTIFICATION_TIMEOUT": 5.0,
    }

    user_config = getattr(settings, "STOREFRONT", {})
    return {**defaults, **user_config}


def get_setting(name, default=None):
    """Get a specific storefront setting."""
    config = get_config()
    return config.get(name, default)


def get_decimal_setting(name):
    """Get a money setting as a Decimal."""
    return Decimal(str(get_setting(name)))


def get_credential(tier):
    """Get the key configured for a credential tier ("public" or "service")."""
    config = get_config()
    if tier == "service":
        return config.get("SERVICE_ROLE_KEY", "")
    return config.get("PUBLIC_KEY", "")
