# app/integrations/services/activation.py
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import IntegrationEndpoint

log = logging.getLogger(__name__)


async def find_endpoint(
    session: AsyncSession,
    *,
    endpoint_id: int | None = None,
    webhook_url: str | None = None,
) -> IntegrationEndpoint | None:
    """Looks an endpoint up by exactly one of id or webhook URL."""
    if (endpoint_id is None) == (webhook_url is None):
        raise ValueError("Provide exactly one of endpoint_id or webhook_url")

    if endpoint_id is not None:
        cond = IntegrationEndpoint.id == endpoint_id
    else:
        cond = IntegrationEndpoint.webhook_url == webhook_url
    return (await session.execute(select(IntegrationEndpoint).where(cond))).scalars().first()


async def set_endpoint_active(session: AsyncSession, endpoint: IntegrationEndpoint, active: bool) -> bool:
    """
    Switches an endpoint in or out of the broadcast set. The next broadcast
    picks the change up because destinations are reloaded per call.

    Flushes but leaves the commit to the caller. Returns True when the flag
    actually changed.
    """
    active = bool(active)
    if endpoint.is_active == active:
        return False

    endpoint.is_active = active
    await session.flush()
    log.info("endpoint %s (%s) %s", endpoint.id, endpoint.webhook_url, "activated" if active else "deactivated")
    return True


async def toggle_endpoint(session: AsyncSession, endpoint: IntegrationEndpoint) -> bool:
    """Flips the active flag; returns the new state."""
    await set_endpoint_active(session, endpoint, not endpoint.is_active)
    return endpoint.is_active
