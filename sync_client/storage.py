import threading


class QueueStorage:
    """Where the offline queue keeps its entries between passes."""

    def load(self):
        raise NotImplementedError

    def save(self, entries):
        raise NotImplementedError


class MemoryQueueStorage(QueueStorage):
    """Process-local storage; entries are lost when the process exits."""

    def __init__(self, entries=None):
        self._entries = list(entries or [])
        self._lock = threading.Lock()

    def load(self):
        with self._lock:
            return list(self._entries)

    def save(self, entries):
        with self._lock:
            self._entries = list(entries)
