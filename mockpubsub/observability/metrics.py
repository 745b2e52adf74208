"""Metrics for observability (published, delivered, acked and nacked message counts)."""

import threading
from typing import Dict

MESSAGES_PUBLISHED = "messages_published"
MESSAGES_DELIVERED = "messages_delivered"
MESSAGES_ACKED = "messages_acked"
MESSAGES_NACKED = "messages_nacked"
LISTENER_ERRORS = "listener_errors"


class Metrics:
    """In-memory metrics collector for pub-sub events. Thread-safe."""

    def __init__(self) -> None:
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a counter."""
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def snapshot(self) -> Dict[str, int]:
        """Return a copy of all counters."""
        with self._lock:
            return dict(self._counters)
