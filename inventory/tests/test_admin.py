from decimal import Decimal

from django.contrib.admin.sites import AdminSite
from django.test import TestCase

from inventory.admin import ProductAdmin, export_to_csv
from inventory.models import Product
from inventory.services.csv_import import import_products

from .helpers import create_product


class ProductAdminTests(TestCase):

    def setUp(self):
        self.model_admin = ProductAdmin(Product, AdminSite())

    def test_admin_save_moves_version(self):
        product = create_product()
        product.name = 'Edited in admin'

        self.model_admin.save_model(request=None, obj=product, form=None, change=True)

        self.assertEqual(product.version, 2)
        self.assertEqual(Product.objects.get(pk=product.pk).name, 'Edited in admin')

    def test_export_can_be_imported_again(self):
        create_product(sku='MILK-1L', name='Milk 1L', quantity=30, unit_price=Decimal('3.25'))
        create_product(sku='BREAD-WHITE', name='White Bread', category='Bakery', quantity=0)

        response = export_to_csv(self.model_admin, None, Product.objects.all())

        lines = response.content.decode().splitlines()
        self.assertEqual(lines[0], 'name,sku,category,quantity,unit_price')
        self.assertEqual(lines[1], 'White Bread,BREAD-WHITE,Bakery,0,9.99')

        log, _ = import_products(response.content, 'products.csv')
        self.assertEqual(log.summary, {'total_rows': 2, 'created': 0, 'updated': 2, 'errors': 0})
