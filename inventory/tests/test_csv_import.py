from decimal import Decimal
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DataError
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from inventory.errors import ValidationFailedError
from inventory.models import ImportLog, Product
from inventory.services import csv_import
from inventory.services.csv_import import check_upload, import_products, validate_row

from .helpers import ActorsMixin, create_product

HEADER = 'name,sku,category,quantity,unit_price\n'


def csv_bytes(*rows):
    return (HEADER + ''.join(f'{row}\n' for row in rows)).encode('utf-8')


class ImportProductsTests(TestCase):

    def test_creates_new_and_updates_existing_products(self):
        existing = create_product(sku='MILK-1L', name='Milk', quantity=3, unit_price=Decimal('3.25'))

        log, already_processed = import_products(
            csv_bytes('Milk 1L,MILK-1L,Dairy,30,3.50', 'White Bread,BREAD-WHITE,Bakery,25,1.75'),
            'stock.csv',
        )

        self.assertFalse(already_processed)
        self.assertEqual(log.status, 'completed')
        self.assertEqual(log.summary, {'total_rows': 2, 'created': 1, 'updated': 1, 'errors': 0})

        existing.refresh_from_db()
        self.assertEqual(existing.quantity, 30)
        self.assertEqual(existing.unit_price, Decimal('3.50'))
        self.assertEqual(existing.version, 2)
        self.assertEqual(Product.objects.get(sku='BREAD-WHITE').version, 1)

    def test_import_makes_older_client_versions_stale(self):
        product = create_product(sku='COKE-500')
        import_products(csv_bytes('Coke,COKE-500,Beverages,1,2.00'), 'a.csv')

        product.refresh_from_db()
        self.assertEqual(product.version, 2)

    def test_same_file_is_only_processed_once(self):
        content = csv_bytes('Tea,TEA-1,Drinks,5,1.10')

        first, _ = import_products(content, 'tea.csv')
        second, already_processed = import_products(content, 'tea-again.csv')

        self.assertTrue(already_processed)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(ImportLog.objects.count(), 1)
        self.assertEqual(Product.objects.get(sku='TEA-1').version, 1)

    def test_invalid_rows_are_reported_and_skipped(self):
        log, _ = import_products(
            csv_bytes(',NO-NAME,Misc,1,1.00', 'Good,GOOD-1,Misc,2,abc', 'Fine,FINE-1,Misc,3,0.50'),
            'mixed.csv',
        )

        self.assertEqual(log.created_rows, 1)
        self.assertEqual(log.failed_rows, 2)
        errors = [result for result in log.results if result['status'] == 'error']
        self.assertEqual([result['row'] for result in errors], [2, 3])
        self.assertIn('name: Name is required', errors[0]['message'])
        self.assertIn('unit_price', errors[1]['message'])
        self.assertEqual(errors[1]['row_data']['sku'], 'GOOD-1')

    def test_missing_columns_rejects_file(self):
        with self.assertRaises(ValidationFailedError) as ctx:
            import_products(b'name,sku\nTea,TEA-1\n', 'short.csv')
        self.assertEqual(
            ctx.exception.details['missing_columns'],
            ['category', 'quantity', 'unit_price'],
        )

    def test_header_only_file_is_rejected(self):
        with self.assertRaises(ValidationFailedError) as ctx:
            import_products(HEADER.encode(), 'empty.csv')
        self.assertEqual(ctx.exception.details['min_rows'], 2)

    def test_byte_order_mark_is_ignored(self):
        log, _ = import_products(b'\xef\xbb\xbf' + csv_bytes('Tea,TEA-1,Drinks,5,1.10'), 'bom.csv')
        self.assertEqual(log.created_rows, 1)

    def test_database_error_fails_only_that_row(self):
        apply_row = csv_import._apply_row

        def flaky(row, row_number):
            if row['sku'] == 'BAD-1':
                raise DataError('value too long for type character varying(255)')
            return apply_row(row, row_number)

        with mock.patch('inventory.services.csv_import._apply_row', side_effect=flaky):
            log, _ = import_products(
                csv_bytes('Bad,BAD-1,Misc,1,1.00', 'Fine,FINE-1,Misc,3,0.50'), 'flaky.csv',
            )

        log.refresh_from_db()
        self.assertEqual(log.status, 'completed')
        self.assertEqual(log.summary, {'total_rows': 2, 'created': 1, 'updated': 0, 'errors': 1})
        self.assertIn('value too long', log.results[0]['message'])
        self.assertFalse(Product.objects.filter(sku='BAD-1').exists())


class UploadChecksTests(TestCase):

    def test_non_csv_extension_is_rejected(self):
        with self.assertRaises(ValidationFailedError) as ctx:
            check_upload('stock.xlsx', 10)
        self.assertEqual(ctx.exception.details['allowed_types'], ['.csv'])

    @override_settings(INVENTORY_CONFIG={'MAX_IMPORT_BYTES': 1024 * 1024})
    def test_oversized_file_is_rejected(self):
        with self.assertRaises(ValidationFailedError) as ctx:
            check_upload('stock.csv', 2 * 1024 * 1024)
        self.assertEqual(ctx.exception.details['max_size'], '1MB')

    def test_validate_row_accepts_good_row(self):
        row = {'name': 'Tea', 'sku': 'TEA-1', 'category': '', 'quantity': '4', 'unit_price': '1.10'}
        self.assertEqual(validate_row(row), [])

    def test_validate_row_rejects_negative_quantity(self):
        row = {'name': 'Tea', 'sku': 'TEA-1', 'category': '', 'quantity': '-4', 'unit_price': '1.10'}
        self.assertEqual(validate_row(row), ['quantity: Quantity must be non-negative'])

    def test_validate_row_rejects_overlong_name_and_category(self):
        row = {'name': 'N' * 256, 'sku': 'TEA-1', 'category': 'C' * 101, 'quantity': '4', 'unit_price': '1.10'}
        self.assertEqual(validate_row(row), [
            'name: Name must be 255 characters or less',
            'category: Category must be 100 characters or less',
        ])

    def test_validate_row_accepts_names_at_the_limit(self):
        row = {'name': 'N' * 255, 'sku': 'TEA-1', 'category': 'C' * 100, 'quantity': '4', 'unit_price': '1.10'}
        self.assertEqual(validate_row(row), [])


class ImportEndpointTests(ActorsMixin, APITestCase):

    def setUp(self):
        super().setUp()
        self.url = reverse('product-import')

    def upload(self, content, name='stock.csv'):
        return self.client.post(
            self.url,
            {'file': SimpleUploadedFile(name, content, content_type='text/csv')},
            format='multipart',
        )

    def test_owner_import_returns_summary(self):
        self.as_owner()
        response = self.upload(csv_bytes('Tea,TEA-1,Drinks,5,1.10'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['message'], 'CSV import completed')
        self.assertEqual(response.data['summary']['created'], 1)

    def test_repeat_upload_reports_already_processed(self):
        self.as_owner()
        content = csv_bytes('Tea,TEA-1,Drinks,5,1.10')
        self.upload(content)
        response = self.upload(content)

        self.assertEqual(response.data['message'], 'File already processed')

    def test_staff_cannot_import(self):
        self.as_staff()
        response = self.upload(csv_bytes('Tea,TEA-1,Drinks,5,1.10'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_missing_file_is_validation_error(self):
        self.as_owner()
        response = self.client.post(self.url, {}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error']['details']['field'], 'file')
