"""
Version-checked writes for products.

``update_product`` returns one of four outcomes instead of raising, in a
fixed precedence order:

1. RecordNotFound       - no row with that id
2. PermissionViolation  - a restricted role changed a protected field
3. VersionConflict      - the submitted version is not the stored one
4. UpdateApplied        - row written, version raised by exactly one

The write itself is a single ``UPDATE ... WHERE id = %s AND version = %s``
that also sets ``version = version + 1``, so two writers holding the same
version can never both succeed. A zero-row update is re-read and reported
as a conflict carrying the winner's version.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from inventory.errors import ConflictError, FieldPermissionError, NotFoundError
from inventory.models import Product
from inventory.policies import FieldWritePolicy

logger = logging.getLogger(__name__)

RESOURCE = 'product'


@dataclass(frozen=True)
class UpdateApplied:
    product: Product
    ok = True

    def as_error(self):
        return None


@dataclass(frozen=True)
class RecordNotFound:
    record_id: Any
    resource: str = RESOURCE
    ok = False

    def as_error(self):
        return NotFoundError(self.resource, self.record_id)


@dataclass(frozen=True)
class PermissionViolation:
    record_id: Any
    field: str
    label: Optional[str] = None
    resource: str = RESOURCE
    ok = False

    def as_error(self):
        return FieldPermissionError(self.resource, self.record_id, self.field, self.label)


@dataclass(frozen=True)
class VersionConflict:
    record_id: Any
    expected_version: int
    actual_version: int
    resource: str = RESOURCE
    ok = False

    def as_error(self):
        return ConflictError(self.resource, self.record_id, self.expected_version, self.actual_version)


def conditional_write(product_id, expected_version, changes):
    """
    Apply ``changes`` only if the stored version still equals
    ``expected_version``. Returns the number of rows written (0 or 1).
    """
    return Product.objects.filter(pk=product_id, version=expected_version).update(
        version=F('version') + 1,
        updated_at=timezone.now(),
        **changes,
    )


def update_product(product_id, changes, expected_version, actor, policy=None):
    """
    Run the version-checked write path for one product.

    Keys of ``changes`` outside Product.EDITABLE_FIELDS are ignored;
    ``actor`` supplies the role the write guard checks against.
    """
    policy = policy or FieldWritePolicy.from_settings()
    changes = {field: value for field, value in changes.items() if field in Product.EDITABLE_FIELDS}

    with transaction.atomic():
        current = Product.objects.filter(pk=product_id).first()
        if current is None:
            return RecordNotFound(product_id)

        field = policy.violated_field(actor.role, current, changes)
        if field:
            logger.warning(
                f"Blocked {actor.role} #{actor.actor_id} from changing {field} "
                f"on product {product_id}"
            )
            return PermissionViolation(product_id, field, policy.error_label(field))

        if current.version != expected_version:
            logger.info(
                f"Version conflict on product {product_id}: "
                f"client v{expected_version}, stored v{current.version}"
            )
            return VersionConflict(product_id, expected_version, current.version)

        written = conditional_write(product_id, expected_version, changes)
        if not written:
            # lost the race between the read above and the UPDATE
            actual = Product.objects.filter(pk=product_id).values_list('version', flat=True).first()
            if actual is None:
                return RecordNotFound(product_id)
            logger.info(
                f"Concurrent write won on product {product_id}: "
                f"client v{expected_version}, stored v{actual}"
            )
            return VersionConflict(product_id, expected_version, actual)

        product = Product.objects.get(pk=product_id)

    logger.info(
        f"Product {product.sku} updated by {actor.role} #{actor.actor_id}: "
        f"v{expected_version} -> v{product.version} fields={sorted(changes)}"
    )
    return UpdateApplied(product)


def bump_version(product_id, changes):
    """
    Unconditional write used by the last-write-wins CSV import.
    Still raises the version by exactly one so stale clients conflict.
    """
    return Product.objects.filter(pk=product_id).update(
        version=F('version') + 1,
        updated_at=timezone.now(),
        **changes,
    )
