from __future__ import annotations

import asyncio
import logging

from ...config import Settings, settings as default_settings
from ...db import AsyncSessionLocal
from ..base import (
    DeliveryOutcome,
    DeliveryTransport,
    Destination,
    DestinationDirectory,
    FanoutSummary,
    MetricsSnapshot,
    Payload,
)
from ..client import DestinationClient
from ..metrics import DeliveryMetricsRegistry
from ..rate_limit import SlidingWindowRateLimiter
from ..retry import RetryingSender, Sleep
from ..sanitize import DEFAULT_LEAD_SCHEMA, LeadSchema
from ..webhook import TransportMode, WebhookTransport
from .directory import SqlAlchemyDestinationDirectory, TableApiDestinationDirectory

log = logging.getLogger(__name__)

NO_DESTINATIONS_NOTE = "no active destinations configured"


class FanoutService:
    """
    Long-lived owner of the per-destination rate windows and delivery
    metrics. Create one per process (the API keeps it on app.state) and
    route every broadcast through it.

    Destinations are looked up fresh on every broadcast; activation can change
    between calls.
    """

    def __init__(
        self,
        directory: DestinationDirectory,
        transport: DeliveryTransport,
        *,
        limiter: SlidingWindowRateLimiter | None = None,
        metrics: DeliveryMetricsRegistry | None = None,
        retries: int = 3,
        timeout_s: float = 30.0,
        backoff_base_s: float = 1.0,
        schema: LeadSchema = DEFAULT_LEAD_SCHEMA,
        origin: str = "server",
        sanitize: bool = True,
        validate: bool = True,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.directory = directory
        self.limiter = limiter or SlidingWindowRateLimiter()
        self.metrics = metrics or DeliveryMetricsRegistry()
        self.sender = RetryingSender(
            transport,
            retries=retries,
            timeout_s=timeout_s,
            backoff_base_s=backoff_base_s,
            sleep=sleep,
        )
        self.schema = schema
        self.origin = origin
        self.sanitize = sanitize
        self.validate = validate

    def client_for(self, destination: Destination) -> DestinationClient:
        return DestinationClient(
            destination,
            limiter=self.limiter,
            metrics=self.metrics,
            sender=self.sender,
            schema=self.schema,
            origin=self.origin,
            sanitize=self.sanitize,
            validate=self.validate,
        )

    async def deliver_to_one(self, destination: Destination, payload: Payload) -> DeliveryOutcome:
        return await self.client_for(destination).deliver(payload)

    async def _settle(self, destination: Destination, payload: Payload) -> DeliveryOutcome:
        try:
            return await self.deliver_to_one(destination, payload)
        except Exception as e:  # settle, never fail fast
            log.exception("unexpected error delivering to %s", destination.identifier)
            self.metrics.record_failure(destination.identifier)
            return DeliveryOutcome(destination, succeeded=False, error=f"{type(e).__name__}: {e}")

    async def broadcast(self, payload: Payload) -> FanoutSummary:
        """
        Delivers ``payload`` to every active destination concurrently and
        waits for all of them. Raises DestinationDirectoryError only when the
        destination list cannot be loaded; per-destination failures are
        reported in the summary.
        """
        destinations = [d for d in await self.directory.list_active_destinations() if d.is_active]
        if not destinations:
            log.warning(NO_DESTINATIONS_NOTE)
            return FanoutSummary(total=0, successful=0, failed=0, note=NO_DESTINATIONS_NOTE)

        outcomes = await asyncio.gather(*(self._settle(d, payload) for d in destinations))
        summary = FanoutSummary.from_outcomes(list(outcomes))
        log.info(
            "broadcast finished: %d/%d delivered, %d failed",
            summary.successful, summary.total, summary.failed,
        )
        return summary

    def metrics_for(self, identifier: str) -> MetricsSnapshot:
        return self.metrics.snapshot(identifier)

    def remaining_for(self, identifier: str) -> int:
        return self.limiter.remaining(identifier)


def build_directory(cfg: Settings = default_settings) -> DestinationDirectory:
    if cfg.DESTINATION_SOURCE == "table_api":
        return TableApiDestinationDirectory(
            base_url=cfg.TABLE_API_BASE_URL,
            table=cfg.TABLE_API_DESTINATIONS_TABLE,
            timeout_s=cfg.TABLE_API_TIMEOUT_S,
        )
    return SqlAlchemyDestinationDirectory(AsyncSessionLocal)


def build_fanout_service(
    cfg: Settings = default_settings,
    directory: DestinationDirectory | None = None,
) -> FanoutService:
    transport = WebhookTransport(
        user_agent=cfg.FANOUT_USER_AGENT,
        mode=TransportMode(cfg.FANOUT_TRANSPORT_MODE),
    )
    return FanoutService(
        directory or build_directory(cfg),
        transport,
        limiter=SlidingWindowRateLimiter(cfg.FANOUT_RATE_MAX_REQUESTS, cfg.FANOUT_RATE_WINDOW_S),
        retries=cfg.FANOUT_RETRIES,
        timeout_s=cfg.FANOUT_TIMEOUT_S,
        backoff_base_s=cfg.FANOUT_BACKOFF_BASE_S,
        origin=cfg.FANOUT_ORIGIN,
        sanitize=cfg.FANOUT_SANITIZE,
        validate=cfg.FANOUT_VALIDATE,
    )
