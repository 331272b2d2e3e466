"""
Custody Store - App Configuration
=================================
Persistent custody tables: products, history, pending transfers,
roles, and view grants.
"""

from django.apps import AppConfig


class CoreCustodyStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.custody_store"
    label = "core_custody_store"
    verbose_name = "Custody Store"
