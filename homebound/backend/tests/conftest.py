# tests/conftest.py
from __future__ import annotations

import asyncio
from typing import Any, Mapping

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.integrations.base import (
    Destination,
    FatalDeliveryError,
    SuccessCriterion,
    TransientDeliveryError,
)
from app.integrations.services.fanout import FanoutService
from app.models import Base


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stands in for asyncio.sleep between attempts; records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeTransport:
    """
    Scripted transport keyed by endpoint.
    behaviour: "ok" | "transient" | "fatal" | "hang"
    """

    def __init__(self, behaviours: dict[str, str] | None = None, default: str = "ok") -> None:
        self.behaviours = behaviours or {}
        self.default = default
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.completed_at: dict[str, float] = {}

    async def send(self, destination: Destination, body: Mapping[str, Any]) -> SuccessCriterion:
        self.calls.append((destination.endpoint, dict(body)))
        behaviour = self.behaviours.get(destination.endpoint, self.default)
        if behaviour == "hang":
            await asyncio.sleep(60)
        await asyncio.sleep(0)
        if behaviour == "transient":
            raise TransientDeliveryError("connection refused")
        if behaviour == "fatal":
            raise FatalDeliveryError("invalid destination url")
        self.completed_at[destination.endpoint] = asyncio.get_running_loop().time()
        return SuccessCriterion.transmitted

    def calls_to(self, endpoint: str) -> int:
        return sum(1 for url, _ in self.calls if url == endpoint)


class StaticDirectory:
    def __init__(self, destinations: list[Destination] | None = None, error: Exception | None = None) -> None:
        self.destinations = destinations or []
        self.error = error
        self.loads = 0

    async def list_active_destinations(self) -> list[Destination]:
        self.loads += 1
        if self.error is not None:
            raise self.error
        return list(self.destinations)


def make_destination(name: str, active: bool = True) -> Destination:
    url = f"https://hooks.example.com/{name}"
    return Destination(identifier=url, endpoint=url, display_name=name, is_active=active)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_service(recording_sleep):
    def _make(directory, transport, **kw) -> FanoutService:
        kw.setdefault("sleep", recording_sleep)
        return FanoutService(directory, transport, **kw)

    return _make


@pytest.fixture
async def engine():
    """
    Fresh in-memory DB per test. StaticPool makes all connections share the same
    in-memory database for the lifetime of this engine fixture.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)
