from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable


class SlidingWindowRateLimiter:
    """
    Per-identifier sliding window admission control.

    Each identifier keeps the timestamps of recently admitted requests. A
    request is admitted while fewer than ``max_requests`` timestamps fall in
    the trailing ``window_s``. Rejected requests leave no trace.

    Check-and-append runs under a per-identifier lock so concurrent broadcasts
    touching the same destination cannot both squeeze past the limit. Distinct
    identifiers never share a lock.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_s <= 0:
            raise ValueError("window_s must be > 0")
        self.max_requests = max_requests
        self.window_s = window_s
        self._clock = clock
        self._windows: dict[str, deque[float]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, identifier: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(identifier)
            if lock is None:
                lock = self._locks[identifier] = threading.Lock()
                self._windows[identifier] = deque()
            return lock

    def _prune(self, window: deque[float], now: float) -> None:
        window_start = now - self.window_s
        while window and window[0] <= window_start:
            window.popleft()

    def is_allowed(self, identifier: str = "default") -> bool:
        with self._lock_for(identifier):
            now = self._clock()
            window = self._windows[identifier]
            self._prune(window, now)
            if len(window) >= self.max_requests:
                return False
            window.append(now)
            return True

    def remaining(self, identifier: str = "default") -> int:
        with self._registry_lock:
            lock = self._locks.get(identifier)
        if lock is None:
            return self.max_requests
        with lock:
            window = self._windows[identifier]
            window_start = self._clock() - self.window_s
            # count without mutating
            live = sum(1 for ts in window if ts > window_start)
            return max(0, self.max_requests - live)
