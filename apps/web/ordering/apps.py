"""Django app configuration for the ordering module."""

from django.apps import AppConfig


class OrderingConfig(AppConfig):
    """Ordering app configuration."""

    name = "apps.web.ordering"
    verbose_name = "Ordering"
