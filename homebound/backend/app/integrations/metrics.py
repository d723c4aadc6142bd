from __future__ import annotations

import threading
from dataclasses import dataclass

from .base import MetricsSnapshot


@dataclass
class _Counters:
    requests: int = 0
    successes: int = 0
    failures: int = 0
    total_response_time_ms: int = 0


class DeliveryMetricsRegistry:
    """
    Cumulative per-destination delivery counters for the process lifetime.
    Counters only ever grow; each update is applied under that destination's
    lock so a reader never sees a half-recorded delivery.
    """

    def __init__(self) -> None:
        self._counters: dict[str, _Counters] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _entry(self, identifier: str) -> tuple[threading.Lock, _Counters]:
        with self._registry_lock:
            if identifier not in self._counters:
                self._counters[identifier] = _Counters()
                self._locks[identifier] = threading.Lock()
            return self._locks[identifier], self._counters[identifier]

    def record_success(self, identifier: str, elapsed_ms: int) -> None:
        lock, c = self._entry(identifier)
        with lock:
            c.requests += 1
            c.successes += 1
            c.total_response_time_ms += max(0, int(elapsed_ms))

    def record_failure(self, identifier: str) -> None:
        lock, c = self._entry(identifier)
        with lock:
            c.requests += 1
            c.failures += 1

    def snapshot(self, identifier: str) -> MetricsSnapshot:
        lock, c = self._entry(identifier)
        with lock:
            return MetricsSnapshot(
                requests=c.requests,
                successes=c.successes,
                failures=c.failures,
                total_response_time_ms=c.total_response_time_ms,
            )

    def identifiers(self) -> list[str]:
        with self._registry_lock:
            return sorted(self._counters)
