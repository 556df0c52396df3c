import logging

from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.authtoken.views import ObtainAuthToken
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from inventory.errors import UnauthorizedError
from .identity import actor_for_request, actor_for_user

logger = logging.getLogger(__name__)


class LoginView(ObtainAuthToken):
    """Exchange username/password for a bearer token plus the caller's role."""
    permission_classes = [AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'login'
    resource_name = 'session'

    def post(self, request, *args, **kwargs):
        serializer = self.serializer_class(data=request.data, context={'request': request})
        if not serializer.is_valid():
            if 'non_field_errors' in serializer.errors:
                raise UnauthorizedError("Unable to log in with provided credentials")
            raise ValidationError(serializer.errors)
        user = serializer.validated_data['user']
        token, _ = Token.objects.get_or_create(user=user)
        actor = actor_for_user(user)

        logger.info(f"Login: {user.username} ({actor.role})")
        return Response({
            'token': token.key,
            'user_id': user.pk,
            'username': user.username,
            'role': actor.role,
        })


class LogoutView(APIView):
    """Revoke the caller's token."""
    permission_classes = [IsAuthenticated]
    resource_name = 'session'

    def post(self, request):
        Token.objects.filter(user=request.user).delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class CurrentUserView(APIView):
    permission_classes = [IsAuthenticated]
    resource_name = 'user'

    def get(self, request):
        actor = actor_for_request(request)
        return Response({
            'user_id': request.user.pk,
            'username': request.user.username,
            'email': request.user.email,
            'role': actor.role,
        })
