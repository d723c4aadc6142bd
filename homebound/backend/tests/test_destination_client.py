from datetime import datetime, timezone

import pytest

from app.integrations.base import AttemptStatus, Payload
from app.integrations.client import DestinationClient
from app.integrations.metrics import DeliveryMetricsRegistry
from app.integrations.rate_limit import SlidingWindowRateLimiter
from app.integrations.retry import RetryingSender

from conftest import FakeTransport, make_destination

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def parts(clock, recording_sleep):
    transport = FakeTransport()
    return {
        "transport": transport,
        "limiter": SlidingWindowRateLimiter(max_requests=100, window_s=60, clock=clock),
        "metrics": DeliveryMetricsRegistry(),
        "sender": RetryingSender(transport, retries=3, sleep=recording_sleep),
    }


def _client(parts, dest, **kw):
    return DestinationClient(
        dest,
        limiter=parts["limiter"],
        metrics=parts["metrics"],
        sender=parts["sender"],
        now=lambda: FIXED_NOW,
        **kw,
    )


async def test_attaches_metadata_to_sanitized_copy(parts):
    dest = make_destination("a")
    raw = {"borrower_first_name": "  <Ana> "}
    outcome = await _client(parts, dest, origin="https://agent.example.com").deliver(Payload(raw))

    assert outcome.succeeded
    _, body = parts["transport"].calls[0]
    assert body == {
        "borrower_first_name": "Ana",
        "timestamp": "2024-05-01T12:00:00+00:00",
        "origin": "https://agent.example.com",
    }
    assert raw == {"borrower_first_name": "  <Ana> "}


async def test_rate_limited_is_terminal_and_not_retried(parts, clock):
    parts["limiter"] = SlidingWindowRateLimiter(max_requests=1, window_s=60, clock=clock)
    dest = make_destination("a")
    client = _client(parts, dest)

    assert (await client.deliver(Payload({}))).succeeded
    outcome = await client.deliver(Payload({}))

    assert outcome.succeeded is False
    assert outcome.error == "rate limited"
    assert outcome.attempts == ()
    assert parts["transport"].calls_to(dest.endpoint) == 1


async def test_invalid_lead_is_fatal_and_never_sent(parts):
    dest = make_destination("a")
    outcome = await _client(parts, dest).deliver(Payload.lead({"borrower_first_name": "Ana"}))

    assert outcome.succeeded is False
    assert "borrower_email" in outcome.error
    assert [a.status for a in outcome.attempts] == [AttemptStatus.fatal_failure]
    assert parts["transport"].calls == []
    assert parts["metrics"].snapshot(dest.identifier).failures == 1


async def test_untyped_payload_is_not_validated(parts):
    dest = make_destination("a")
    outcome = await _client(parts, dest).deliver(Payload({"borrower_email": "not-an-email"}))
    assert outcome.succeeded


async def test_validation_can_be_disabled(parts):
    dest = make_destination("a")
    outcome = await _client(parts, dest, validate=False).deliver(Payload.lead({}))
    assert outcome.succeeded


async def test_metrics_accumulate_across_calls(parts):
    dest = make_destination("a")
    client = _client(parts, dest)
    transport = parts["transport"]

    for _ in range(5):
        assert (await client.deliver(Payload({"n": 1}))).succeeded

    transport.behaviours[dest.endpoint] = "fatal"
    for _ in range(2):
        assert not (await client.deliver(Payload({"n": 1}))).succeeded

    m = parts["metrics"].snapshot(dest.identifier)
    assert (m.requests, m.successes, m.failures) == (7, 5, 2)
    assert m.success_rate == pytest.approx(71.43, abs=0.01)
    assert m.average_response_time_ms >= 0


async def test_only_own_destination_state_is_touched(parts):
    a, b = make_destination("a"), make_destination("b")
    await _client(parts, a).deliver(Payload({}))

    assert parts["metrics"].snapshot(b.identifier).requests == 0
    assert parts["limiter"].remaining(b.identifier) == 100
    assert parts["limiter"].remaining(a.identifier) == 99
