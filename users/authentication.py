from rest_framework.authentication import TokenAuthentication
from rest_framework.exceptions import AuthenticationFailed

from inventory.errors import UnauthorizedError
from .identity import resolve


class BearerTokenAuthentication(TokenAuthentication):
    """
    ``Authorization: Bearer <token>``.

    ``request.auth`` is set to the resolved Actor so views read the role
    without another lookup.
    """
    keyword = 'Bearer'

    def authenticate_credentials(self, key):
        try:
            actor = resolve(key)
        except UnauthorizedError as exc:
            raise AuthenticationFailed(exc.detail)
        return (actor.user, actor)
