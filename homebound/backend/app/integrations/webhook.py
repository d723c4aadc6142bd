from __future__ import annotations

import enum
import hashlib
import hmac
import json
import logging
from typing import Any, Mapping

import httpx

from .base import Destination, FatalDeliveryError, SuccessCriterion, TransientDeliveryError

log = logging.getLogger(__name__)

RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}


class TransportMode(str, enum.Enum):
    # opaque: any answer from the receiver counts as transmitted
    # transparent: only 2xx counts, status codes are classified
    opaque = "opaque"
    transparent = "transparent"


class WebhookTransport:
    """
    JSON POST to a destination endpoint.

    The timeout is owned by the retrying sender, so the client here has no
    timeout of its own. Pass a shared ``httpx.AsyncClient`` to reuse
    connections across a broadcast; otherwise a client is opened per send.
    """

    def __init__(
        self,
        user_agent: str = "HomeboundApp/1.0",
        mode: TransportMode = TransportMode.opaque,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.mode = TransportMode(mode)
        self._client = client

    def _sign(self, secret: str | None, body: bytes) -> str | None:
        if not secret:
            return None
        return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    def _headers(self, destination: Destination, body: bytes) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": self.user_agent}
        sig = self._sign(destination.secret, body)
        if sig:
            headers["X-Homebound-Signature"] = sig
        return headers

    async def _post(self, url: str, body: bytes, headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, content=body, headers=headers)
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.post(url, content=body, headers=headers)

    async def send(self, destination: Destination, body: Mapping[str, Any]) -> SuccessCriterion:
        raw = json.dumps(dict(body), default=str).encode("utf-8")
        headers = self._headers(destination, raw)
        log.debug("POST %s %s", destination.endpoint, raw[:500])

        try:
            r = await self._post(destination.endpoint, raw, headers)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise FatalDeliveryError(f"invalid destination url: {e}") from e
        except httpx.TimeoutException as e:
            raise TransientDeliveryError("timeout") from e
        except httpx.TransportError as e:
            raise TransientDeliveryError(f"{type(e).__name__}: {e}") from e

        if self.mode == TransportMode.opaque:
            return SuccessCriterion.transmitted

        if 200 <= r.status_code < 300:
            return SuccessCriterion.confirmed
        detail = f"HTTP {r.status_code}: {r.text[:500]}"
        if r.status_code in RETRYABLE_STATUS:
            raise TransientDeliveryError(detail)
        raise FatalDeliveryError(detail)
