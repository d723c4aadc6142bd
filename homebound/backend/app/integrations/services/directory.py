from __future__ import annotations

import logging
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...models import IntegrationEndpoint
from ..base import Destination, DestinationDirectoryError

log = logging.getLogger(__name__)


def _truthy(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "yes", "on"}
    return bool(v)


def endpoint_to_destination(row: IntegrationEndpoint) -> Destination:
    return Destination(
        identifier=row.webhook_url,
        endpoint=row.webhook_url,
        display_name=row.webhook_name or "Untitled",
        is_active=bool(row.is_active),
        secret=row.secret,
    )


class SqlAlchemyDestinationDirectory:
    """Active endpoints from the integration_endpoints table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_active_destinations(self) -> list[Destination]:
        try:
            async with self._session_factory() as session:
                rows = (
                    await session.execute(
                        select(IntegrationEndpoint)
                        .where(IntegrationEndpoint.is_active == True)  # noqa: E712
                        .order_by(IntegrationEndpoint.id.asc())
                    )
                ).scalars().all()
        except SQLAlchemyError as e:
            raise DestinationDirectoryError(f"could not load integration endpoints: {e}") from e
        return [endpoint_to_destination(r) for r in rows if r.webhook_url]


class TableApiDestinationDirectory:
    """
    Active endpoints from the generic REST table store:
      GET {base_url}?table=<table>  ->  {"success": true, "data": [ {...}, ... ]}
    Rows carry webhook_url, webhook_name and is_active (0/1 or bool).
    """

    def __init__(
        self,
        base_url: str,
        table: str = "zapier_settings",
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self.table = table
        self.timeout_s = timeout_s
        self._client = client

    async def _fetch(self) -> httpx.Response:
        params = {"table": self.table}
        if self._client is not None:
            return await self._client.get(self.base_url, params=params, timeout=self.timeout_s)
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            return await client.get(self.base_url, params=params)

    async def list_active_destinations(self) -> list[Destination]:
        try:
            r = await self._fetch()
            r.raise_for_status()
            body = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DestinationDirectoryError(f"table api unavailable: {e}") from e

        if not isinstance(body, dict) or not body.get("success"):
            err = body.get("error") if isinstance(body, dict) else None
            raise DestinationDirectoryError(err or "table api returned an unsuccessful response")

        rows = body.get("data")
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            raise DestinationDirectoryError(
                f"table api returned malformed data: expected a list, got {type(rows).__name__}"
            )

        out: list[Destination] = []
        for row in rows:
            if not isinstance(row, dict):
                log.warning("skipping malformed table api row: %r", row)
                continue
            url = row.get("webhook_url")
            url = url.strip() if isinstance(url, str) else ""
            if not url or not _truthy(row.get("is_active")):
                continue
            out.append(
                Destination(
                    identifier=url,
                    endpoint=url,
                    display_name=row.get("webhook_name") or "Untitled",
                    is_active=True,
                    secret=row.get("secret"),
                )
            )
        log.debug("table api returned %d active destinations", len(out))
        return out
