from decimal import Decimal

from django.contrib.auth.models import User
from django.core.cache import cache
from rest_framework.authtoken.models import Token

from inventory.models import Product
from users.models import Profile


def create_actor(username, role=Profile.STAFF, password='testpass123'):
    """User with the given role plus an API token."""
    user = User.objects.create_user(username=username, password=password)
    profile = user.profile
    profile.role = role
    profile.save()
    token = Token.objects.create(user=user)
    return user, token


def create_product(**overrides):
    data = {
        'name': 'Coca Cola 500ml',
        'sku': 'COKE-500',
        'category': 'Beverages',
        'quantity': 50,
        'unit_price': Decimal('9.99'),
    }
    data.update(overrides)
    return Product.objects.create(**data)


class ActorsMixin:
    """Owner and staff actors with bearer-token helpers for APITestCase."""

    def setUp(self):
        super().setUp()
        cache.clear()
        self.owner, self.owner_token = create_actor('owner', Profile.OWNER)
        self.staff, self.staff_token = create_actor('staff', Profile.STAFF)

    def authenticate(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.key}')

    def as_owner(self):
        self.authenticate(self.owner_token)

    def as_staff(self):
        self.authenticate(self.staff_token)
