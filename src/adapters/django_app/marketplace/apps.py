"""Django app configuration of the marketplace adapters."""

from django.apps import AppConfig


class MarketplaceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "src.adapters.django_app.marketplace"
    label = "marketplace"
    verbose_name = "AutoLease marketplace"
