import hashlib
import hmac
import json

import httpx
import pytest

from app.integrations.base import Destination, FatalDeliveryError, SuccessCriterion, TransientDeliveryError
from app.integrations.webhook import TransportMode, WebhookTransport

URL = "https://hooks.example.com/catch/1"


def _transport(handler, mode=TransportMode.opaque, **kw) -> WebhookTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookTransport(mode=mode, client=client, **kw)


async def test_posts_json_with_headers():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    t = _transport(handler, user_agent="HomeboundApp/1.0")
    result = await t.send(Destination(URL, URL, "zap"), {"a": 1, "b": "x"})

    assert result == SuccessCriterion.transmitted
    req = seen[0]
    assert req.method == "POST"
    assert str(req.url) == URL
    assert req.headers["Content-Type"] == "application/json"
    assert req.headers["User-Agent"] == "HomeboundApp/1.0"
    assert "X-Homebound-Signature" not in req.headers
    assert json.loads(req.content) == {"a": 1, "b": "x"}


async def test_signs_body_when_destination_has_secret():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    await _transport(handler).send(Destination(URL, URL, "zap", secret="s3cret"), {"a": 1})

    req = seen[0]
    expected = hmac.new(b"s3cret", req.content, hashlib.sha256).hexdigest()
    assert req.headers["X-Homebound-Signature"] == expected


async def test_opaque_mode_ignores_status():
    t = _transport(lambda r: httpx.Response(500))
    assert await t.send(Destination(URL, URL, "zap"), {}) == SuccessCriterion.transmitted


@pytest.mark.parametrize(
    "status, expected",
    [(200, SuccessCriterion.confirmed), (503, TransientDeliveryError), (429, TransientDeliveryError), (404, FatalDeliveryError)],
)
async def test_transparent_mode_classifies_status(status, expected):
    t = _transport(lambda r: httpx.Response(status, text="nope"), mode=TransportMode.transparent)
    dest = Destination(URL, URL, "zap")

    if isinstance(expected, SuccessCriterion):
        assert await t.send(dest, {}) == expected
    else:
        with pytest.raises(expected, match=f"HTTP {status}"):
            await t.send(dest, {})


async def test_network_errors_are_transient():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransientDeliveryError):
        await _transport(handler).send(Destination(URL, URL, "zap"), {})


async def test_read_timeout_is_transient():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(TransientDeliveryError, match="timeout"):
        await _transport(handler).send(Destination(URL, URL, "zap"), {})


async def test_malformed_url_is_fatal():
    t = WebhookTransport()
    with pytest.raises(FatalDeliveryError):
        await t.send(Destination("x", "not a url", "broken"), {})
