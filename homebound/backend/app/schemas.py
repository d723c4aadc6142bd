from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Literal

from .integrations.base import DeliveryAttempt, DeliveryOutcome, FanoutSummary, MetricsSnapshot

PayloadKindName = Literal["untyped", "lead_qualification"]


class EndpointCreate(BaseModel):
    webhook_url: str
    webhook_name: str | None = None
    description: str | None = None
    is_active: bool = True
    secret: str | None = None


class EndpointUpdate(BaseModel):
    webhook_url: str | None = None
    webhook_name: str | None = None
    description: str | None = None
    is_active: bool | None = None
    secret: str | None = None


class EndpointOut(BaseModel):
    id: int
    webhook_url: str
    webhook_name: str | None = None
    description: str | None = None
    is_active: bool
    has_secret: bool = False
    created_at: datetime


class BroadcastRequest(BaseModel):
    payload: dict[str, Any]
    kind: PayloadKindName = "untyped"


class AttemptOut(BaseModel):
    attempt_number: int = Field(..., ge=1)
    status: str
    elapsed_ms: int
    reason: str | None = None
    criterion: str | None = None

    @classmethod
    def from_attempt(cls, a: DeliveryAttempt) -> "AttemptOut":
        return cls(
            attempt_number=a.attempt_number,
            status=a.status.value,
            elapsed_ms=a.elapsed_ms,
            reason=a.reason,
            criterion=a.criterion.value if a.criterion else None,
        )


class DeliveryOutcomeOut(BaseModel):
    identifier: str
    name: str
    succeeded: bool
    error: str | None = None
    attempts: list[AttemptOut]

    @classmethod
    def from_outcome(cls, o: DeliveryOutcome) -> "DeliveryOutcomeOut":
        return cls(
            identifier=o.destination.identifier,
            name=o.destination.display_name,
            succeeded=o.succeeded,
            error=o.error,
            attempts=[AttemptOut.from_attempt(a) for a in o.attempts],
        )


class FanoutSummaryOut(BaseModel):
    total: int = Field(..., ge=0)
    successful: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    note: str | None = None
    per_destination: list[DeliveryOutcomeOut]

    @classmethod
    def from_summary(cls, s: FanoutSummary) -> "FanoutSummaryOut":
        return cls(
            total=s.total,
            successful=s.successful,
            failed=s.failed,
            note=s.note,
            per_destination=[DeliveryOutcomeOut.from_outcome(o) for o in s.per_destination],
        )


class DestinationMetricsOut(BaseModel):
    identifier: str
    requests: int
    successes: int
    failures: int
    total_response_time_ms: int
    average_response_time_ms: float
    success_rate: float
    remaining_requests: int

    @classmethod
    def from_snapshot(cls, identifier: str, m: MetricsSnapshot, remaining: int) -> "DestinationMetricsOut":
        return cls(
            identifier=identifier,
            requests=m.requests,
            successes=m.successes,
            failures=m.failures,
            total_response_time_ms=m.total_response_time_ms,
            average_response_time_ms=m.average_response_time_ms,
            success_rate=m.success_rate,
            remaining_requests=remaining,
        )
