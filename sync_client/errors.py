"""
Client-side view of the API error envelope.

``{"error": {"code", "message", "details"}}`` responses become exceptions.
CONFLICT and PERMISSION_EDIT_<FIELD> carry a ConflictDescriptor so the
caller can drive the resolution flow; everything else is an
ApiRequestError shown as a plain message.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ConflictDescriptor:
    """Why a write was rejected. Transient: built from a response, never stored."""

    resource: str
    record_id: str
    expected_version: Optional[int] = None
    actual_version: Optional[int] = None
    field: Optional[str] = None

    @property
    def is_permission(self):
        return self.field is not None

    @classmethod
    def from_details(cls, details):
        details = details or {}
        return cls(
            resource=details.get('resource', 'resource'),
            record_id=str(details.get('id', '')),
            expected_version=details.get('expected_version'),
            actual_version=details.get('actual_version'),
            field=details.get('field'),
        )

    def summary(self):
        if self.is_permission:
            return f"Permission denied: your role cannot modify {self.field}"
        return (
            f"Stale update: {self.resource} has changed "
            f"(expected version {self.expected_version}, actual version {self.actual_version})"
        )


class ClientError(Exception):
    """Base class for everything the client raises."""


class NetworkUnavailable(ClientError):
    """The request never reached the server."""


class RequestTimedOut(NetworkUnavailable):
    """The server did not answer within the configured timeout."""


class ApiRequestError(ClientError):
    def __init__(self, status_code, code, message, details=None):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"{code} ({status_code}): {message}")


class ConflictDetected(ApiRequestError):
    """409 CONFLICT: the record moved on since the client read it."""

    def __init__(self, status_code, code, message, details=None):
        super().__init__(status_code, code, message, details)
        self.descriptor = ConflictDescriptor.from_details(self.details)


class PermissionEditDenied(ApiRequestError):
    """403 PERMISSION_EDIT_<FIELD>: the caller's role may not change a field."""

    def __init__(self, status_code, code, message, details=None):
        super().__init__(status_code, code, message, details)
        self.descriptor = ConflictDescriptor.from_details(self.details)


def error_from_response(status_code, payload):
    """Turn an error response body into the matching exception."""
    error = (payload or {}).get('error') if isinstance(payload, dict) else None
    if not isinstance(error, dict):
        return ApiRequestError(status_code, 'HTTP_ERROR', f"HTTP {status_code}")

    code = error.get('code') or 'HTTP_ERROR'
    message = error.get('message') or f"HTTP {status_code}"
    details = error.get('details') or {}

    if code == 'CONFLICT':
        return ConflictDetected(status_code, code, message, details)
    if code.startswith('PERMISSION_EDIT_'):
        return PermissionEditDenied(status_code, code, message, details)
    return ApiRequestError(status_code, code, message, details)


class ResolutionNotOffered(ClientError):
    """The chosen resolution is not available for this kind of conflict."""


class NoPendingConflict(ClientError):
    """A resolution was requested but nothing is waiting to be resolved."""
