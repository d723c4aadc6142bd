# app/entrypoints/api/routers/fanout.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ....integrations.base import DestinationDirectoryError, Payload, PayloadKind
from ....integrations.services.fanout import FanoutService
from ....schemas import BroadcastRequest, DestinationMetricsOut, FanoutSummaryOut
from ..deps import get_fanout_service, require_api_key

log = logging.getLogger(__name__)

router = APIRouter(tags=["fanout"])


@router.post("/fanout/broadcast", response_model=FanoutSummaryOut, dependencies=[Depends(require_api_key)])
async def broadcast(
    body: BroadcastRequest,
    fanout: FanoutService = Depends(get_fanout_service),
) -> FanoutSummaryOut:
    try:
        summary = await fanout.broadcast(Payload(data=body.payload, kind=PayloadKind(body.kind)))
    except DestinationDirectoryError as e:
        log.error("broadcast aborted: %s", e)
        raise HTTPException(status_code=503, detail=f"Destination directory unavailable: {e}")
    return FanoutSummaryOut.from_summary(summary)


@router.get("/fanout/metrics", response_model=list[DestinationMetricsOut], dependencies=[Depends(require_api_key)])
def delivery_metrics(
    fanout: FanoutService = Depends(get_fanout_service),
) -> list[DestinationMetricsOut]:
    return [
        DestinationMetricsOut.from_snapshot(ident, fanout.metrics_for(ident), fanout.remaining_for(ident))
        for ident in fanout.metrics.identifiers()
    ]
