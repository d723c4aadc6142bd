# app/entrypoints/api/routers/integrations.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ....config import settings
from ....integrations.base import Payload
from ....integrations.services.activation import find_endpoint, set_endpoint_active, toggle_endpoint
from ....integrations.services.directory import endpoint_to_destination
from ....integrations.services.endpoints import TEST_LEAD_PAYLOAD, validate_webhook_url
from ....integrations.services.fanout import FanoutService
from ....models import IntegrationEndpoint
from ....schemas import DeliveryOutcomeOut, EndpointCreate, EndpointOut, EndpointUpdate
from ..deps import get_fanout_service, get_session, require_api_key

router = APIRouter(tags=["integrations"])


def _out(e: IntegrationEndpoint) -> EndpointOut:
    return EndpointOut(
        id=e.id,
        webhook_url=e.webhook_url,
        webhook_name=e.webhook_name,
        description=e.description,
        is_active=e.is_active,
        has_secret=bool(e.secret),
        created_at=e.created_at,
    )


def _checked_url(url: str) -> str:
    try:
        return validate_webhook_url(url, settings.allowed_hosts())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def _get_or_404(session: AsyncSession, endpoint_id: int) -> IntegrationEndpoint:
    row = await find_endpoint(session, endpoint_id=endpoint_id)
    if not row:
        raise HTTPException(status_code=404, detail="Integration endpoint not found")
    return row


async def _ensure_unique_url(session: AsyncSession, url: str, exclude_id: int | None = None) -> None:
    stmt = select(IntegrationEndpoint).where(IntegrationEndpoint.webhook_url == url)
    if exclude_id is not None:
        stmt = stmt.where(IntegrationEndpoint.id != exclude_id)
    if (await session.execute(stmt)).scalars().first():
        raise HTTPException(status_code=409, detail="A webhook with this URL already exists")


@router.post("/integrations", response_model=EndpointOut, dependencies=[Depends(require_api_key)])
async def create_endpoint(
    body: EndpointCreate,
    session: AsyncSession = Depends(get_session),
) -> EndpointOut:
    url = _checked_url(body.webhook_url)
    await _ensure_unique_url(session, url)

    row = IntegrationEndpoint(
        webhook_url=url,
        webhook_name=(body.webhook_name or "").strip() or None,
        description=(body.description or "").strip() or None,
        is_active=body.is_active,
        secret=body.secret or None,
    )
    session.add(row)
    await session.commit()
    return _out(row)


@router.get("/integrations", response_model=list[EndpointOut], dependencies=[Depends(require_api_key)])
async def list_endpoints(
    session: AsyncSession = Depends(get_session),
) -> list[EndpointOut]:
    rows = (await session.execute(select(IntegrationEndpoint).order_by(IntegrationEndpoint.id.asc()))).scalars().all()
    return [_out(r) for r in rows]


@router.patch("/integrations/{endpoint_id}", response_model=EndpointOut, dependencies=[Depends(require_api_key)])
async def update_endpoint(
    endpoint_id: int,
    body: EndpointUpdate,
    session: AsyncSession = Depends(get_session),
) -> EndpointOut:
    row = await _get_or_404(session, endpoint_id)

    if body.webhook_url is not None:
        url = _checked_url(body.webhook_url)
        await _ensure_unique_url(session, url, exclude_id=row.id)
        row.webhook_url = url
    if body.webhook_name is not None:
        row.webhook_name = body.webhook_name.strip() or None
    if body.description is not None:
        row.description = body.description.strip() or None
    if body.secret is not None:
        row.secret = body.secret or None
    if body.is_active is not None:
        await set_endpoint_active(session, row, body.is_active)

    await session.commit()
    return _out(row)


@router.post(
    "/integrations/{endpoint_id}/toggle",
    response_model=EndpointOut,
    dependencies=[Depends(require_api_key)],
)
async def toggle_endpoint_active(
    endpoint_id: int,
    session: AsyncSession = Depends(get_session),
) -> EndpointOut:
    row = await _get_or_404(session, endpoint_id)
    await toggle_endpoint(session, row)
    await session.commit()
    return _out(row)


@router.delete("/integrations/{endpoint_id}", status_code=204, dependencies=[Depends(require_api_key)])
async def delete_endpoint(
    endpoint_id: int,
    session: AsyncSession = Depends(get_session),
) -> None:
    row = await _get_or_404(session, endpoint_id)
    await session.delete(row)
    await session.commit()


@router.post(
    "/integrations/{endpoint_id}/test",
    response_model=DeliveryOutcomeOut,
    dependencies=[Depends(require_api_key)],
)
async def test_endpoint(
    endpoint_id: int,
    session: AsyncSession = Depends(get_session),
    fanout: FanoutService = Depends(get_fanout_service),
) -> DeliveryOutcomeOut:
    """Sends the canned lead payload to one endpoint, active or not."""
    row = await _get_or_404(session, endpoint_id)
    outcome = await fanout.deliver_to_one(endpoint_to_destination(row), Payload.lead(TEST_LEAD_PAYLOAD))
    return DeliveryOutcomeOut.from_outcome(outcome)
