"""Core app configuration."""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """Configuration for the core application."""

    name = "canne.core"
    verbose_name = "Cannè Core"
    default_auto_field = "django.db.models.BigAutoField"
