from unittest import mock

from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from inventory.errors import ConflictError, FieldPermissionError, NotFoundError

from .helpers import ActorsMixin, create_product


class ErrorEnvelopeTests(ActorsMixin, APITestCase):

    def setUp(self):
        super().setUp()
        self.product = create_product()
        self.list_url = reverse('product-list')
        self.detail_url = reverse('product-detail', kwargs={'pk': self.product.pk})

    def assertEnvelope(self, response, status_code, code):
        self.assertEqual(response.status_code, status_code)
        body = response.json()
        self.assertEqual(set(body), {'error'})
        self.assertEqual(set(body['error']), {'code', 'message', 'details'})
        self.assertEqual(body['error']['code'], code)
        return body['error']

    def test_missing_token_is_unauthorized(self):
        response = self.client.get(self.list_url)
        error = self.assertEnvelope(response, status.HTTP_401_UNAUTHORIZED, 'UNAUTHORIZED')
        self.assertEqual(error['details'], {})

    def test_unknown_token_is_unauthorized(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-token')
        response = self.client.get(self.list_url)
        error = self.assertEnvelope(response, status.HTTP_401_UNAUTHORIZED, 'UNAUTHORIZED')
        self.assertEqual(error['message'], 'Invalid token')

    def test_inactive_user_is_unauthorized(self):
        self.staff.is_active = False
        self.staff.save()
        self.as_staff()

        response = self.client.get(self.list_url)

        error = self.assertEnvelope(response, status.HTTP_401_UNAUTHORIZED, 'UNAUTHORIZED')
        self.assertEqual(error['message'], 'User inactive or deleted')

    def test_staff_cannot_create_products(self):
        self.as_staff()
        response = self.client.post(self.list_url, {'name': 'Tea', 'sku': 'TEA-1'}, format='json')
        error = self.assertEnvelope(response, status.HTTP_403_FORBIDDEN, 'PERMISSION_DENIED')
        self.assertEqual(error['details'], {'resource': 'product'})

    def test_staff_cannot_delete_products(self):
        self.as_staff()
        response = self.client.delete(self.detail_url)
        self.assertEnvelope(response, status.HTTP_403_FORBIDDEN, 'PERMISSION_DENIED')

    def test_duplicate_sku_on_create_is_validation_error(self):
        self.as_owner()
        response = self.client.post(self.list_url, {'name': 'Again', 'sku': 'COKE-500'}, format='json')
        error = self.assertEnvelope(response, status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR')
        self.assertIn('sku', error['details']['fields'])

    def test_create_missing_name_lists_required_fields(self):
        self.as_owner()
        response = self.client.post(self.list_url, {'sku': 'TEA-1'}, format='json')
        error = self.assertEnvelope(response, status.HTTP_400_BAD_REQUEST, 'VALIDATION_ERROR')
        self.assertEqual(error['details']['resource'], 'product')
        self.assertEqual(error['details']['required_fields'], ['name', 'sku'])

    def test_unknown_product_read_is_not_found(self):
        self.as_staff()
        response = self.client.get(reverse('product-detail', kwargs={'pk': 4242}))
        error = self.assertEnvelope(response, status.HTTP_404_NOT_FOUND, 'NOT_FOUND')
        self.assertEqual(error['details'], {'resource': 'product', 'id': '4242'})

    def test_unexpected_failure_is_opaque(self):
        self.as_owner()
        with mock.patch(
            'inventory.views.update_product',
            side_effect=RuntimeError('database password is hunter2'),
        ):
            with self.assertLogs('inventory.errors', level='ERROR'):
                response = self.client.patch(self.detail_url, {'version': 1, 'name': 'X'}, format='json')

        error = self.assertEnvelope(response, status.HTTP_500_INTERNAL_SERVER_ERROR, 'INTERNAL_ERROR')
        self.assertEqual(error['message'], 'An unexpected error occurred')
        self.assertEqual(error['details'], {})
        self.assertNotIn('hunter2', response.content.decode())


class ErrorTypeTests(SimpleTestCase):

    def test_field_permission_code_uses_label(self):
        error = FieldPermissionError('product', 42, 'unit_price', 'PRICE')
        self.assertEqual(error.code, 'PERMISSION_EDIT_PRICE')
        self.assertEqual(error.status_code, 403)
        self.assertEqual(error.as_envelope()['error']['details'], {
            'resource': 'product', 'id': '42', 'field': 'unit_price',
        })

    def test_conflict_details(self):
        error = ConflictError('product', 7, 1, 3)
        self.assertEqual(error.status_code, 409)
        self.assertEqual(error.details['expected_version'], 1)
        self.assertEqual(error.details['actual_version'], 3)

    def test_not_found_details(self):
        error = NotFoundError('product', 7)
        self.assertEqual(error.details, {'resource': 'product', 'id': '7'})
