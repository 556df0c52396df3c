"""
Offline edit queue.

Writes that cannot be sent right away are buffered here and replayed in
enqueue order once the network is back. A pass is single-flight; it is
triggered by ``enqueue`` and by a periodic background tick.
"""

import enum
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from .config import ClientConfig
from .connectivity import Connectivity
from .storage import MemoryQueueStorage

logger = logging.getLogger(__name__)


class EditStatus(str, enum.Enum):
    QUEUED = 'queued'
    SYNCING = 'syncing'
    SYNCED = 'synced'
    ERROR = 'error'


@dataclass
class QueuedEdit:
    url: str
    method: str
    body: Any = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: EditStatus = EditStatus.QUEUED
    attempts: int = 0
    last_error: Optional[str] = None
    created_at: float = 0.0
    updated_at: float = 0.0

    @property
    def is_pending(self):
        return self.status != EditStatus.SYNCED


def backoff_delay(attempts, base, maximum):
    """Delay after the ``attempts``-th consecutive failure of one entry."""
    if attempts < 1:
        return 0.0
    return min(maximum, base * 2 ** (attempts - 1))


def _spawn(target):
    thread = threading.Thread(target=target, name='offline-queue-pass', daemon=True)
    thread.start()
    return thread


class OfflineEditQueue:
    """
    Owns the queued edits and the background tick.

    ``transport`` needs a ``send(method, url, body)`` method
    (InventoryApiClient provides one). Any exception it raises counts as a
    failed delivery, including CONFLICT responses from replaying a stale
    version.
    """

    def __init__(self, transport, storage=None, connectivity=None, config=None,
                 sleep=None, clock=time.time, dispatch=_spawn):
        self.transport = transport
        self.storage = storage or MemoryQueueStorage()
        self.connectivity = connectivity or Connectivity()
        self.config = config or ClientConfig()
        self._clock = clock
        self._dispatch = dispatch
        self._wake = threading.Event()
        self._sleep = sleep or self._wake.wait
        self._tick_stop = None
        self._entries_lock = threading.RLock()
        self._processing = threading.Lock()
        self._tick_thread = None
        self._entries = list(self.storage.load())

    # -- lifecycle ----------------------------------------------------------

    def start(self):
        if self._tick_thread and self._tick_thread.is_alive():
            return
        self._tick_stop = threading.Event()
        self._tick_thread = threading.Thread(
            target=self._tick_loop, args=(self._tick_stop,), name='offline-queue-tick', daemon=True,
        )
        self._tick_thread.start()
        logger.info("Offline queue started")

    def stop(self, timeout=None):
        """
        Stop the background tick. Backoff waits of the pass in progress are
        cut short; enqueue and process_queue keep working afterwards.
        """
        if self._tick_stop:
            self._tick_stop.set()
        self._wake.set()
        if self._tick_thread:
            self._tick_thread.join(timeout)
            self._tick_thread = None
        self._tick_stop = None
        logger.info("Offline queue stopped")

    def _tick_loop(self, stop_event):
        while not stop_event.wait(self.config.tick_interval):
            if self.is_processing or self.connectivity.is_offline():
                continue
            try:
                self.process_queue()
            except Exception:
                logger.exception("Offline queue tick failed")

    # -- public api ---------------------------------------------------------

    @property
    def is_processing(self):
        return self._processing.locked()

    def enqueue(self, url, method, body=None):
        """Buffer a write and kick off a pass without waiting for it."""
        now = self._clock()
        entry = QueuedEdit(url=url, method=method.upper(), body=body, created_at=now, updated_at=now)
        with self._entries_lock:
            self._entries.append(entry)
            self._persist()
        logger.info(f"Queued {entry.method} {entry.url} ({entry.id})")
        self._dispatch(self.process_queue)
        return entry.id

    def entries(self):
        with self._entries_lock:
            return list(self._entries)

    def get(self, entry_id):
        with self._entries_lock:
            for entry in self._entries:
                if entry.id == entry_id:
                    return entry
        return None

    def pending_count(self):
        with self._entries_lock:
            return sum(1 for entry in self._entries if entry.is_pending)

    def process_queue(self):
        """
        Run one delivery pass. Returns False if another pass was already
        running, True otherwise.

        Entries are attempted in enqueue order, including ones appended
        while the pass runs. A failed entry does not stop later entries;
        the pass only stops early when the client is offline.
        """
        if not self._processing.acquire(blocking=False):
            return False
        try:
            self._wake.clear()
            self._compact()
            index = 0
            while True:
                with self._entries_lock:
                    if index >= len(self._entries):
                        break
                    entry = self._entries[index]
                index += 1

                if not entry.is_pending:
                    continue
                if self.connectivity.is_offline():
                    logger.info("Offline, leaving remaining entries for the next pass")
                    break
                self._deliver(entry)
            return True
        finally:
            self._processing.release()

    # -- internals ----------------------------------------------------------

    def _deliver(self, entry):
        self._mark(entry, EditStatus.SYNCING)
        try:
            self.transport.send(entry.method, entry.url, entry.body)
        except Exception as e:
            with self._entries_lock:
                entry.attempts += 1
                entry.last_error = str(e)
            self._mark(entry, EditStatus.ERROR)
            delay = backoff_delay(entry.attempts, self.config.backoff_base, self.config.backoff_max)
            logger.warning(
                f"Delivery of {entry.method} {entry.url} failed "
                f"(attempt {entry.attempts}): {e}; waiting {delay:.2f}s"
            )
            self._sleep(delay)
            return

        with self._entries_lock:
            entry.last_error = None
        self._mark(entry, EditStatus.SYNCED)
        logger.info(f"Synced {entry.method} {entry.url} ({entry.id})")

    def _mark(self, entry, status):
        with self._entries_lock:
            entry.status = status
            entry.updated_at = self._clock()
            self._persist()

    def _compact(self):
        """Drop synced entries that have outlived the retention window."""
        retention = self.config.synced_retention
        if retention is None:
            return
        cutoff = self._clock() - retention
        with self._entries_lock:
            kept = [
                entry for entry in self._entries
                if entry.is_pending or entry.updated_at > cutoff
            ]
            dropped = len(self._entries) - len(kept)
            if dropped:
                self._entries = kept
                self._persist()
                logger.debug(f"Compacted {dropped} synced entries")

    def _persist(self):
        self.storage.save(self._entries)
