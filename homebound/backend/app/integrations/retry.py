from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Mapping

from .base import (
    AttemptStatus,
    DeliveryAttempt,
    DeliveryTransport,
    Destination,
    FatalDeliveryError,
    TransientDeliveryError,
)

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay_s(attempt: int, base_s: float = 1.0) -> float:
    """
    Delay after a failed ``attempt`` (1-based) before the next one:
    2s, 4s, 8s, ... with the default base.
    """
    return (2 ** attempt) * base_s


class RetryingSender:
    def __init__(
        self,
        transport: DeliveryTransport,
        retries: int = 3,
        timeout_s: float = 30.0,
        backoff_base_s: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be >= 1")
        self.transport = transport
        self.retries = retries
        self.timeout_s = timeout_s
        self.backoff_base_s = backoff_base_s
        self._sleep = sleep

    async def _attempt(self, n: int, destination: Destination, body: Mapping[str, Any]) -> DeliveryAttempt:
        started = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            criterion = await asyncio.wait_for(self.transport.send(destination, body), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            return DeliveryAttempt(n, AttemptStatus.transient_failure, elapsed(), reason="timeout")
        except TransientDeliveryError as e:
            return DeliveryAttempt(n, AttemptStatus.transient_failure, elapsed(), reason=e.reason)
        except FatalDeliveryError as e:
            return DeliveryAttempt(n, AttemptStatus.fatal_failure, elapsed(), reason=e.reason)
        return DeliveryAttempt(n, AttemptStatus.success, elapsed(), criterion=criterion)

    async def send(self, destination: Destination, body: Mapping[str, Any]) -> list[DeliveryAttempt]:
        """
        Runs up to ``retries`` attempts. Returns the attempt log; the last
        entry decides the outcome. Fatal failures stop immediately.
        """
        attempts: list[DeliveryAttempt] = []
        for n in range(1, self.retries + 1):
            attempt = await self._attempt(n, destination, body)
            attempts.append(attempt)

            if attempt.ok or attempt.fatal:
                return attempts
            if n == self.retries:
                log.warning(
                    "delivery to %s failed after %d attempts: %s",
                    destination.identifier, n, attempt.reason,
                )
                return attempts

            delay = backoff_delay_s(n, self.backoff_base_s)
            log.info(
                "attempt %d/%d to %s failed (%s), retrying in %.1fs",
                n, self.retries, destination.identifier, attempt.reason, delay,
            )
            await self._sleep(delay)

        return attempts
