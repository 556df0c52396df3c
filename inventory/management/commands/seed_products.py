from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from inventory.models import Product

SAMPLE_PRODUCTS = [
    ('Coca Cola 500ml', 'COKE-500', 'Beverages', 50, Decimal('2.50')),
    ('White Bread', 'BREAD-WHITE', 'Bakery', 25, Decimal('1.75')),
    ('Milk 1L', 'MILK-1L', 'Dairy', 30, Decimal('3.25')),
    ('Bananas (per kg)', 'BANANA-KG', 'Fruits', 15, Decimal('2.99')),
]


class Command(BaseCommand):
    help = 'Inserts the sample product catalogue (existing SKUs are left alone)'

    def handle(self, *args, **kwargs):
        created_count = 0

        with transaction.atomic():
            for name, sku, category, quantity, unit_price in SAMPLE_PRODUCTS:
                product, created = Product.objects.get_or_create(
                    sku=sku,
                    defaults={
                        'name': name,
                        'category': category,
                        'quantity': quantity,
                        'unit_price': unit_price,
                    },
                )
                if created:
                    self.stdout.write(self.style.SUCCESS(f'✓ Created product: {sku}'))
                    created_count += 1
                else:
                    self.stdout.write(f'- Product already exists: {sku} (v{product.version})')

        self.stdout.write(self.style.SUCCESS(f'\nTotal products in database: {Product.objects.count()}'))
        self.stdout.write(self.style.SUCCESS(f'Created {created_count} new products'))
