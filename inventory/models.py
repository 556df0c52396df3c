from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Product(models.Model):
    """
    A stocked product.

    ``version`` is the only concurrency token: it starts at 1 and every
    accepted write raises it by exactly one. Writes go through
    ``inventory.services.concurrency`` so the compare-and-increment happens
    in a single conditional UPDATE.
    """

    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=64, unique=True)
    category = models.CharField(max_length=100, blank=True, default='')
    quantity = models.PositiveIntegerField(default=0)
    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    version = models.PositiveIntegerField(default=1, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # fields a client may send on create/update
    EDITABLE_FIELDS = ['name', 'sku', 'category', 'quantity', 'unit_price']

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.sku}) v{self.version}"

    @property
    def stock_value(self):
        return (self.unit_price or Decimal('0.00')) * (self.quantity or 0)

    def is_low_stock(self):
        threshold = settings.INVENTORY_CONFIG.get('LOW_STOCK_THRESHOLD', 5)
        return 0 < self.quantity <= threshold


class ImportLog(models.Model):
    """One processed CSV upload, keyed by content hash so re-uploads are no-ops."""

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    filename = models.CharField(max_length=255)
    file_hash = models.CharField(max_length=64, unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    total_rows = models.PositiveIntegerField(default=0)
    created_rows = models.PositiveIntegerField(default=0)
    updated_rows = models.PositiveIntegerField(default=0)
    failed_rows = models.PositiveIntegerField(default=0)
    results = models.JSONField(default=list, blank=True)
    imported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='product_imports',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.filename} [{self.status}]"

    @property
    def summary(self):
        return {
            'total_rows': self.total_rows,
            'created': self.created_rows,
            'updated': self.updated_rows,
            'errors': self.failed_rows,
        }
