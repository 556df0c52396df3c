"""
Edit flow for a single product, with conflict resolution.

A save either lands, is queued for later (offline or network failure), or
comes back as a conflict. A conflict offers three resolutions:

- keep_mine: resubmit the local edit against the server's current version.
  For a permission conflict the protected field is reverted instead and
  the original version is kept.
- accept_remote: drop the local edit and reload the server's record. For a
  permission conflict the non-protected edits are re-applied to the
  reloaded record as an unsaved draft.
- merge_manual: resubmit caller-merged values against the server's current
  version. Not offered for permission conflicts.

Each resolution performs exactly one network operation and clears the
conflict once that operation is answered or queued. If it raises, the
conflict stays pending. A further conflict on the resubmission starts over.
"""

import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .connectivity import Connectivity
from .errors import (
    ConflictDescriptor,
    ConflictDetected,
    NetworkUnavailable,
    NoPendingConflict,
    PermissionEditDenied,
    ResolutionNotOffered,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('name', 'sku', 'category', 'quantity', 'unit_price')


class SaveStatus(str, enum.Enum):
    SAVED = 'saved'
    CONFLICT = 'conflict'
    QUEUED = 'queued'


@dataclass
class SaveResult:
    status: SaveStatus
    record: Optional[dict] = None
    conflict: Optional['PendingConflict'] = None
    queued_id: Optional[str] = None

    @property
    def ok(self):
        return self.status != SaveStatus.CONFLICT


@dataclass
class PendingConflict:
    descriptor: ConflictDescriptor
    local: dict
    baseline: dict
    submitted_version: Any = None
    message: str = ''

    @property
    def is_permission(self):
        return self.descriptor.is_permission

    @property
    def choices(self):
        if self.is_permission:
            return ('keep_mine', 'accept_remote')
        return ('keep_mine', 'accept_remote', 'merge_manual')


@dataclass
class Draft:
    """Record values the user has not saved yet."""
    values: dict = field(default_factory=dict)
    version: Any = None


def _same(a, b):
    try:
        return Decimal(str(a)) == Decimal(str(b))
    except (InvalidOperation, ValueError):
        return a == b


class ProductEditor:
    def __init__(self, client, queue=None, connectivity=None):
        self.client = client
        self.queue = queue
        self.connectivity = connectivity or (queue.connectivity if queue else Connectivity())
        self.baseline = None
        self.draft = None
        self.pending_conflict = None

    # -- loading ------------------------------------------------------------

    def load(self, product_id):
        record = self.client.get_product(product_id)
        self._adopt(record)
        return record

    def _adopt(self, record):
        self.baseline = dict(record)
        self.draft = Draft(values={f: record.get(f) for f in EDITABLE_FIELDS}, version=record.get('version'))

    # -- saving -------------------------------------------------------------

    def save(self, changes=None):
        """
        Submit the draft (plus ``changes``) as a full update carrying the
        version it was loaded at.
        """
        if self.baseline is None:
            raise ValueError("load() a product before saving")
        if self.pending_conflict is not None:
            raise ValueError("Resolve the pending conflict before saving again")

        values = dict(self.draft.values)
        values.update(changes or {})
        payload = dict(values, version=self.draft.version)
        return self._submit(payload)

    def _submit(self, payload):
        product_id = self.baseline['id']

        if self.connectivity.is_offline():
            return self._enqueue('PUT', product_id, payload)

        try:
            record = self.client.update_product(product_id, payload)
        except (ConflictDetected, PermissionEditDenied) as e:
            self.pending_conflict = PendingConflict(
                descriptor=e.descriptor,
                local={f: payload.get(f) for f in EDITABLE_FIELDS},
                baseline=dict(self.baseline),
                submitted_version=payload.get('version'),
                message=e.descriptor.summary(),
            )
            self.draft = Draft(values=dict(self.pending_conflict.local), version=payload.get('version'))
            logger.info(f"Save of product {product_id} conflicted: {e.code}")
            return SaveResult(SaveStatus.CONFLICT, conflict=self.pending_conflict)
        except NetworkUnavailable:
            return self._enqueue('PUT', product_id, payload)

        self._adopt(record)
        return SaveResult(SaveStatus.SAVED, record=record)

    def _enqueue(self, method, product_id, payload):
        if self.queue is None:
            raise NetworkUnavailable("offline and no queue configured")
        url = self.client.url(self.client.product_path(product_id))
        entry_id = self.queue.enqueue(url, method, payload)
        if payload is not None:
            self.draft = Draft(values={f: payload.get(f) for f in EDITABLE_FIELDS}, version=payload.get('version'))
        return SaveResult(SaveStatus.QUEUED, queued_id=entry_id)

    def delete(self, product_id=None):
        product_id = product_id if product_id is not None else self.baseline['id']
        if self.connectivity.is_offline():
            return self._queue_delete(product_id)
        try:
            self.client.delete_product(product_id)
        except NetworkUnavailable:
            return self._queue_delete(product_id)
        return SaveResult(SaveStatus.SAVED)

    def _queue_delete(self, product_id):
        if self.queue is None:
            raise NetworkUnavailable("offline and no queue configured")
        url = self.client.url(self.client.product_path(product_id))
        return SaveResult(SaveStatus.QUEUED, queued_id=self.queue.enqueue(url, 'DELETE'))

    # -- resolution ---------------------------------------------------------

    def _require_conflict(self):
        conflict = self.pending_conflict
        if conflict is None:
            raise NoPendingConflict("There is no conflict to resolve")
        return conflict

    def _resubmit(self, conflict, payload):
        # the conflict stays pending if the resubmission never got an answer
        self.pending_conflict = None
        try:
            return self._submit(payload)
        except Exception:
            self.pending_conflict = conflict
            raise

    def keep_mine(self):
        conflict = self._require_conflict()
        payload = dict(conflict.local)
        descriptor = conflict.descriptor

        if conflict.is_permission:
            payload[descriptor.field] = conflict.baseline.get(descriptor.field)
            payload['version'] = conflict.submitted_version
        else:
            payload['version'] = descriptor.actual_version

        logger.info(f"Keeping local changes for product {descriptor.record_id}")
        return self._resubmit(conflict, payload)

    def accept_remote(self):
        conflict = self._require_conflict()
        record = self.client.get_product(conflict.baseline['id'])
        self.pending_conflict = None
        self._adopt(record)

        if conflict.is_permission:
            blocked = conflict.descriptor.field
            for name, value in conflict.local.items():
                if name == blocked:
                    continue
                if not _same(value, conflict.baseline.get(name)):
                    self.draft.values[name] = value
        return self.draft

    def merge_form_defaults(self):
        """Local values to pre-fill a manual merge form with."""
        conflict = self._require_conflict()
        if conflict.is_permission:
            raise ResolutionNotOffered("Manual merge is not offered for permission conflicts")
        return dict(conflict.local)

    def merge_manual(self, edits):
        conflict = self._require_conflict()
        if conflict.is_permission:
            raise ResolutionNotOffered("Manual merge is not offered for permission conflicts")

        payload = dict(conflict.local)
        payload.update({k: v for k, v in edits.items() if k in EDITABLE_FIELDS})
        payload['version'] = conflict.descriptor.actual_version
        return self._resubmit(conflict, payload)
