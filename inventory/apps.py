from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """
    Configuration for the Inventory application.

    This app manages the product catalogue including:
    - Products with a per-record version counter
    - Version-checked updates with a role-aware write guard
    - Bulk CSV import with content-hash idempotency
    - Dashboard stock statistics
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'inventory'
    verbose_name = 'Inventory Management'

    def ready(self):
        """
        Import signal handlers when the app is ready.

        Signals handle:
        - Logging product creation and deletion
        - Low stock alerts
        """
        import inventory.signals  # noqa: F401
