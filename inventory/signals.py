from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from .models import Product
import logging

logger = logging.getLogger(__name__)


# ============================================
# PRODUCT SIGNALS
# ============================================
# Version-checked updates use queryset.update() and are logged by the
# concurrency service; these handlers only see create/save/delete.

@receiver(post_save, sender=Product)
def product_post_save(sender, instance, created, **kwargs):
    """Log product creation and direct saves."""
    if created:
        logger.info(
            f"Product created: {instance.sku} - {instance.name} "
            f"(Category: {instance.category or 'none'}, Quantity: {instance.quantity})"
        )
    else:
        logger.debug(
            f"Product saved: {instance.sku} - {instance.name} "
            f"(Version: {instance.version}, Quantity: {instance.quantity})"
        )


# ============================================
# LOW STOCK ALERTS
# ============================================

@receiver(post_save, sender=Product)
def check_low_stock_alert(sender, instance, **kwargs):
    if instance.quantity == 0:
        logger.warning(f"OUT OF STOCK: {instance.name} ({instance.sku}) is out of stock")
    elif instance.is_low_stock():
        logger.warning(
            f"LOW STOCK ALERT: {instance.name} ({instance.sku}) "
            f"has only {instance.quantity} units remaining"
        )


# ============================================
# AUDIT TRAIL
# ============================================

@receiver(post_delete, sender=Product)
def log_product_deletion(sender, instance, **kwargs):
    logger.warning(
        f"[AUDIT] Product DELETED: "
        f"ID: {instance.id} | SKU: {instance.sku} | "
        f"Name: {instance.name} | Last version: {instance.version}"
    )
