# scripts/init_db.py
import asyncio

from sqlalchemy import select

from app.db import async_session, engine
from app.models import Base, IntegrationEndpoint

SAMPLE_WEBHOOK_URL = "https://hooks.zapier.com/hooks/catch/000000/sample/"


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        existing = (
            await session.execute(select(IntegrationEndpoint).where(IntegrationEndpoint.webhook_url == SAMPLE_WEBHOOK_URL))
        ).scalars().first()
        if existing is None:
            # inactive until someone replaces the URL with a real one
            session.add(
                IntegrationEndpoint(
                    webhook_url=SAMPLE_WEBHOOK_URL,
                    webhook_name="Sample Webhook (Replace with yours)",
                    description="Replace this with the webhook URL from your Zap configuration.",
                    is_active=False,
                )
            )
            await session.commit()

    print("OK: created all tables (idempotent).")


if __name__ == "__main__":
    asyncio.run(main())
