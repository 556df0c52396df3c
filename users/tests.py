from io import StringIO

from django.contrib.auth.models import User
from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from inventory.errors import UnauthorizedError
from users.identity import resolve, role_for_user
from users.models import Profile, identity_cache_key


class ProfileTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_new_users_get_a_staff_profile(self):
        user = User.objects.create_user(username='cashier', password='testpass123')
        self.assertEqual(user.profile.role, Profile.STAFF)
        self.assertFalse(user.profile.is_owner)

    def test_role_is_cached_until_profile_changes(self):
        user = User.objects.create_user(username='cashier', password='testpass123')
        self.assertEqual(role_for_user(user), Profile.STAFF)
        self.assertEqual(cache.get(identity_cache_key(user.pk)), Profile.STAFF)

        # bypasses the post_save hook, so the cached value wins
        Profile.objects.filter(user=user).update(role=Profile.OWNER)
        self.assertEqual(role_for_user(user), Profile.STAFF)

        profile = Profile.objects.get(user=user)
        profile.save()
        self.assertIsNone(cache.get(identity_cache_key(user.pk)))
        self.assertEqual(role_for_user(user), Profile.OWNER)


class ResolveTokenTests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(username='cashier', password='testpass123')
        self.token = Token.objects.create(user=self.user)

    def test_valid_token_resolves_to_actor(self):
        actor = resolve(self.token.key)
        self.assertEqual(actor.actor_id, self.user.pk)
        self.assertEqual(actor.role, Profile.STAFF)

    def test_missing_token_is_rejected(self):
        with self.assertRaises(UnauthorizedError):
            resolve('')

    def test_unknown_token_is_rejected(self):
        with self.assertRaises(UnauthorizedError):
            resolve('0' * 40)


class SetRoleCommandTests(TestCase):

    def test_promotes_user_to_owner(self):
        user = User.objects.create_user(username='manager', password='testpass123')
        out = StringIO()

        call_command('set_role', 'manager', 'owner', stdout=out)

        user.profile.refresh_from_db()
        self.assertEqual(user.profile.role, Profile.OWNER)
        self.assertIn('staff → owner', out.getvalue())

    def test_unknown_user_fails(self):
        with self.assertRaises(CommandError):
            call_command('set_role', 'ghost', 'owner', stdout=StringIO())


class AuthApiTests(APITestCase):

    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(username='cashier', password='testpass123', email='c@example.com')

    def test_login_returns_token_and_role(self):
        response = self.client.post(
            reverse('login'), {'username': 'cashier', 'password': 'testpass123'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], Profile.STAFF)
        self.assertEqual(response.data['token'], Token.objects.get(user=self.user).key)

    def test_bad_credentials_are_unauthorized(self):
        response = self.client.post(
            reverse('login'), {'username': 'cashier', 'password': 'wrong'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()['error']['code'], 'UNAUTHORIZED')

    def test_current_user_and_logout(self):
        token = Token.objects.create(user=self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token.key}')

        response = self.client.get(reverse('current-user'))
        self.assertEqual(response.data['username'], 'cashier')
        self.assertEqual(response.data['email'], 'c@example.com')

        response = self.client.post(reverse('logout'))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Token.objects.filter(user=self.user).exists())
