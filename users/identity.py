"""
Identity resolution for API requests.

A bearer token is turned into an ``Actor`` (user id + role) once per
request. The role lookup is cached briefly; saving a Profile drops the
cached entry.
"""

import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.cache import cache
from rest_framework.authtoken.models import Token

from inventory.errors import UnauthorizedError
from .models import Profile, identity_cache_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    actor_id: int
    role: str
    user: object = None

    @property
    def is_owner(self):
        return self.role == Profile.OWNER


def _cache_seconds():
    return settings.INVENTORY_CONFIG.get('IDENTITY_CACHE_SECONDS', 15)


def role_for_user(user):
    """Return the role of ``user``, consulting the short-lived cache first."""
    key = identity_cache_key(user.pk)
    role = cache.get(key)
    if role is None:
        profile, _ = Profile.objects.get_or_create(user=user)
        role = profile.role
        cache.set(key, role, _cache_seconds())
    return role


def actor_for_user(user):
    return Actor(actor_id=user.pk, role=role_for_user(user), user=user)


def resolve(token):
    """
    Resolve a raw token string to an Actor.

    Raises UnauthorizedError when the token is absent, unknown, or belongs
    to an inactive user.
    """
    if not token:
        raise UnauthorizedError("Access token required")

    try:
        record = Token.objects.select_related('user').get(key=token)
    except Token.DoesNotExist:
        logger.info("Rejected unknown access token")
        raise UnauthorizedError("Invalid token")

    if not record.user.is_active:
        raise UnauthorizedError("User inactive or deleted")

    return actor_for_user(record.user)


def actor_for_request(request):
    """The Actor for an authenticated DRF request (token or session)."""
    if isinstance(request.auth, Actor):
        return request.auth
    return actor_for_user(request.user)
