# app/entrypoints/fastapi_app.py
from __future__ import annotations

from fastapi import FastAPI

from ..db import engine
from ..integrations.services.fanout import FanoutService, build_fanout_service
from ..models import Base
from .api.routers import fanout, health, integrations


def create_app(fanout_service: FanoutService | None = None) -> FastAPI:
    app = FastAPI(title="Homebound - Integration Fan-out")

    # one service per process: rate windows and metrics live on it
    app.state.fanout = fanout_service or build_fanout_service()

    @app.on_event("startup")
    async def _startup() -> None:
        # Single place where DB tables are created in dev.
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    # Routers
    app.include_router(health.router)
    app.include_router(integrations.router)
    app.include_router(fanout.router)

    return app
