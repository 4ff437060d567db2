"""Test settings."""

from .base import *  # noqa: F401,F403

SECRET_KEY = "test-secret-key-not-for-production"
DEBUG = True

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STOREFRONT = {
    "PUBLIC_KEY": "test-public-key",
    "SERVICE_ROLE_KEY": "test-service-role-key",
    "DISCORD_WEBHOOK_URL": "",
}

# Let pytest's caplog see application logs
LOGGING["loggers"]["canne"]["propagate"] = True  # noqa: F405
