import logging
import threading
import time

logger = logging.getLogger(__name__)


class Connectivity:
    """
    Tracks whether the client should treat the network as down.

    Real outages are detected by the transport raising NetworkUnavailable;
    ``simulate_offline`` forces an outage window for demos and tests.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._offline_until = None
        self._forced = False
        self._lock = threading.Lock()

    def simulate_offline(self, seconds):
        with self._lock:
            self._offline_until = self._clock() + seconds
        logger.info(f"Simulating offline for {seconds}s")

    def go_offline(self):
        with self._lock:
            self._forced = True

    def restore(self):
        with self._lock:
            self._forced = False
            self._offline_until = None

    def is_offline(self):
        with self._lock:
            if self._forced:
                return True
            if self._offline_until is None:
                return False
            if self._clock() >= self._offline_until:
                self._offline_until = None
                return False
            return True
