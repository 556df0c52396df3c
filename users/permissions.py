from rest_framework.permissions import BasePermission

from .identity import actor_for_request


class IsOwner(BasePermission):
    """Only owners may create, delete, or bulk-import records."""
    message = 'Only owners can perform this action'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return actor_for_request(request).is_owner
