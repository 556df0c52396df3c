from decimal import Decimal, InvalidOperation

from django.conf import settings


def _normalize(value):
    """Compare numbers by value so 9.99 and Decimal('9.990') are equal."""
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return value
    return value


class FieldWritePolicy:
    """
    Maps (role, field) -> allowed.

    Fields not listed in ``restrictions`` are writable by every role. A
    listed field is writable only by the roles named for it.
    """

    def __init__(self, restrictions=None, labels=None):
        self.restrictions = {field: frozenset(roles) for field, roles in (restrictions or {}).items()}
        self.labels = dict(labels or {})

    @classmethod
    def from_settings(cls):
        config = settings.INVENTORY_CONFIG.get('PROTECTED_FIELDS', {})
        return cls(
            restrictions={field: spec['roles'] for field, spec in config.items()},
            labels={field: spec.get('code', field.upper()) for field, spec in config.items()},
        )

    @property
    def protected_fields(self):
        return sorted(self.restrictions)

    def can_write(self, role, field):
        allowed = self.restrictions.get(field)
        return allowed is None or role in allowed

    def error_label(self, field):
        return self.labels.get(field, field.upper())

    def violated_field(self, role, current, changes):
        """
        First protected field that ``role`` may not write and whose submitted
        value differs from the stored one, or None.

        ``current`` is the stored record, ``changes`` the submitted payload.
        Omitted fields and unchanged values are not violations.
        """
        for field in self.protected_fields:
            if field not in changes or self.can_write(role, field):
                continue
            if _normalize(changes[field]) != _normalize(getattr(current, field)):
                return field
        return None
