"""
API error taxonomy and the REST framework exception handler.

Every error leaves the API in one envelope:

    {"error": {"code": ..., "message": ..., "details": {...}}}

INTERNAL_ERROR is the only kind whose details never reach the client; it
is logged with the full traceback instead.
"""

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import IntegrityError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class ApiError(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = 'INTERNAL_ERROR'
    default_detail = 'An unexpected error occurred'

    def __init__(self, message=None, details=None, code=None, status_code=None):
        self.message = str(message or self.default_detail)
        self.details = details or {}
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(detail=self.message)

    def as_envelope(self):
        return {
            'error': {
                'code': self.code,
                'message': self.message,
                'details': self.details,
            }
        }


class ValidationFailedError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'VALIDATION_ERROR'
    default_detail = 'Invalid request payload'


class UnauthorizedError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = 'UNAUTHORIZED'
    default_detail = 'Authentication required'


class RolePermissionError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'PERMISSION_DENIED'
    default_detail = 'Insufficient permissions'


class FieldPermissionError(ApiError):
    """A restricted actor tried to change a protected field."""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, resource, record_id, field, label=None):
        label = (label or field).upper()
        super().__init__(
            message=f"Your role cannot modify {field.replace('_', ' ')}",
            details={'resource': resource, 'id': str(record_id), 'field': field},
            code=f'PERMISSION_EDIT_{label}',
        )


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'NOT_FOUND'

    def __init__(self, resource, record_id):
        super().__init__(
            message=f"{resource.capitalize()} not found",
            details={'resource': resource, 'id': str(record_id)},
        )


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = 'CONFLICT'

    def __init__(self, resource, record_id, expected_version, actual_version):
        super().__init__(
            message=f"Stale update: {resource} has changed",
            details={
                'resource': resource,
                'id': str(record_id),
                'expected_version': expected_version,
                'actual_version': actual_version,
            },
        )


class InternalError(ApiError):
    pass


def _resource_name(context):
    view = context.get('view')
    return getattr(view, 'resource_name', 'resource')


def _to_api_error(exc, context):
    if isinstance(exc, ApiError):
        return exc

    resource = _resource_name(context)

    if isinstance(exc, (Http404, exceptions.NotFound)):
        record_id = (context.get('kwargs') or {}).get('pk', 'unknown')
        return NotFoundError(resource, record_id)

    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        return UnauthorizedError(exc.detail)

    if isinstance(exc, (exceptions.PermissionDenied, DjangoPermissionDenied)):
        message = getattr(exc, 'detail', None) or RolePermissionError.default_detail
        return RolePermissionError(message, details={'resource': resource})

    if isinstance(exc, exceptions.ValidationError):
        return ValidationFailedError(details={'resource': resource, 'fields': exc.detail})

    if isinstance(exc, exceptions.ParseError):
        return ValidationFailedError(exc.detail, details={'resource': resource})

    if isinstance(exc, IntegrityError):
        constraint = 'unique' if 'unique' in str(exc).lower() else 'integrity'
        message = 'Duplicate entry detected' if constraint == 'unique' else 'Database constraint violated'
        return ValidationFailedError(message, details={'resource': resource, 'constraint': constraint})

    if isinstance(exc, exceptions.APIException):
        return ApiError(
            exc.detail,
            code=str(exc.default_code).upper(),
            status_code=exc.status_code,
        )

    return InternalError()


def api_exception_handler(exc, context):
    """REST framework EXCEPTION_HANDLER producing the error envelope."""
    # rest_framework.views pulls in the authentication classes, which import this module
    from rest_framework.views import set_rollback

    error = _to_api_error(exc, context)

    if error.status_code >= 500:
        view = context.get('view')
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=exc,
        )
    else:
        logger.info(f"{error.code} ({error.status_code}): {error.message}")

    set_rollback()
    response = Response(error.as_envelope(), status=error.status_code)

    auth_header = getattr(exc, 'auth_header', None)
    if auth_header:
        response['WWW-Authenticate'] = auth_header
    wait = getattr(exc, 'wait', None)
    if wait:
        response['Retry-After'] = '%d' % wait

    return response
