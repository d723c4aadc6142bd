from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Protocol


class PayloadKind(str, enum.Enum):
    # untyped payloads are sanitized but never schema-validated
    untyped = "untyped"
    lead_qualification = "lead_qualification"


class AttemptStatus(str, enum.Enum):
    success = "success"
    transient_failure = "transient_failure"
    fatal_failure = "fatal_failure"


class SuccessCriterion(str, enum.Enum):
    # transmitted: request left the process, receiver status unknown (opaque transport)
    # confirmed: receiver answered 2xx (transparent transport)
    transmitted = "transmitted"
    confirmed = "confirmed"


@dataclass(frozen=True)
class Destination:
    identifier: str
    endpoint: str
    display_name: str
    is_active: bool = True
    secret: str | None = None


@dataclass(frozen=True)
class Payload:
    data: Mapping[str, Any]
    kind: PayloadKind = PayloadKind.untyped

    def __post_init__(self) -> None:
        # read-only view over a private copy; callers keep their own dict
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def lead(cls, data: Mapping[str, Any]) -> "Payload":
        return cls(data=data, kind=PayloadKind.lead_qualification)


@dataclass(frozen=True)
class DeliveryAttempt:
    attempt_number: int
    status: AttemptStatus
    elapsed_ms: int
    reason: str | None = None
    criterion: SuccessCriterion | None = None

    @property
    def ok(self) -> bool:
        return self.status == AttemptStatus.success

    @property
    def fatal(self) -> bool:
        return self.status == AttemptStatus.fatal_failure


@dataclass(frozen=True)
class DeliveryOutcome:
    destination: Destination
    succeeded: bool
    attempts: tuple[DeliveryAttempt, ...] = ()
    error: str | None = None

    @property
    def elapsed_ms(self) -> int:
        return sum(a.elapsed_ms for a in self.attempts)


@dataclass(frozen=True)
class FanoutSummary:
    total: int
    successful: int
    failed: int
    per_destination: tuple[DeliveryOutcome, ...] = field(default_factory=tuple)
    note: str | None = None

    @classmethod
    def from_outcomes(cls, outcomes: list[DeliveryOutcome]) -> "FanoutSummary":
        successful = sum(1 for o in outcomes if o.succeeded)
        return cls(
            total=len(outcomes),
            successful=successful,
            failed=len(outcomes) - successful,
            per_destination=tuple(outcomes),
        )


@dataclass(frozen=True)
class MetricsSnapshot:
    requests: int = 0
    successes: int = 0
    failures: int = 0
    total_response_time_ms: int = 0

    @property
    def average_response_time_ms(self) -> float:
        return self.total_response_time_ms / self.requests if self.requests else 0.0

    @property
    def success_rate(self) -> float:
        """Percentage, 0-100."""
        return (self.successes / self.requests) * 100 if self.requests else 0.0


class DeliveryError(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class TransientDeliveryError(DeliveryError):
    """Worth retrying: timeouts, connection failures, 429/5xx."""


class FatalDeliveryError(DeliveryError):
    """Will fail identically on retry: bad payload, bad destination URL."""


class DestinationDirectoryError(RuntimeError):
    """The list of destinations could not be loaded."""


class DestinationDirectory(Protocol):
    async def list_active_destinations(self) -> list[Destination]:
        ...


class DeliveryTransport(Protocol):
    async def send(self, destination: Destination, body: Mapping[str, Any]) -> SuccessCriterion:
        ...
