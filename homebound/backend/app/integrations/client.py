from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from .base import AttemptStatus, DeliveryAttempt, DeliveryOutcome, Destination, Payload, PayloadKind
from .metrics import DeliveryMetricsRegistry
from .rate_limit import SlidingWindowRateLimiter
from .retry import RetryingSender
from .sanitize import DEFAULT_LEAD_SCHEMA, LeadSchema, PayloadValidationError, sanitize_payload, validate_payload

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DestinationClient:
    """
    Delivers one payload to one destination:
    rate limit -> sanitize/validate -> metadata -> send with retry -> metrics.

    Only this destination's rate window and counters are touched.
    """

    def __init__(
        self,
        destination: Destination,
        limiter: SlidingWindowRateLimiter,
        metrics: DeliveryMetricsRegistry,
        sender: RetryingSender,
        schema: LeadSchema = DEFAULT_LEAD_SCHEMA,
        origin: str = "server",
        sanitize: bool = True,
        validate: bool = True,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.destination = destination
        self.limiter = limiter
        self.metrics = metrics
        self.sender = sender
        self.schema = schema
        self.origin = origin
        self.sanitize = sanitize
        self.validate = validate
        self._now = now

    def _fail(self, error: str, attempts: tuple[DeliveryAttempt, ...] = ()) -> DeliveryOutcome:
        self.metrics.record_failure(self.destination.identifier)
        log.warning("delivery to %s failed: %s", self.destination.display_name, error)
        return DeliveryOutcome(self.destination, succeeded=False, attempts=attempts, error=error)

    async def deliver(self, payload: Payload) -> DeliveryOutcome:
        ident = self.destination.identifier
        started = time.monotonic()

        # not retried within this call; the next broadcast gets a fresh check
        if not self.limiter.is_allowed(ident):
            return self._fail("rate limited")

        body = sanitize_payload(payload.data) if self.sanitize else dict(payload.data)

        if self.validate and payload.kind == PayloadKind.lead_qualification:
            try:
                validate_payload(body, self.schema)
            except PayloadValidationError as e:
                attempt = DeliveryAttempt(1, AttemptStatus.fatal_failure, 0, reason=str(e))
                return self._fail(str(e), (attempt,))

        body["timestamp"] = self._now().isoformat()
        body["origin"] = self.origin

        attempts = tuple(await self.sender.send(self.destination, body))
        last = attempts[-1]
        if not last.ok:
            return self._fail(last.reason or "delivery failed", attempts)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self.metrics.record_success(ident, elapsed_ms)
        log.info(
            "delivered to %s in %d attempt(s), %dms (%s)",
            self.destination.display_name, len(attempts), elapsed_ms, last.criterion.value,
        )
        return DeliveryOutcome(self.destination, succeeded=True, attempts=attempts)
