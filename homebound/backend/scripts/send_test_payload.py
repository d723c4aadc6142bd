# scripts/send_test_payload.py
from __future__ import annotations

import argparse
import asyncio
import json
import logging

from app.integrations.base import Payload
from app.integrations.services.endpoints import TEST_LEAD_PAYLOAD
from app.integrations.services.fanout import build_fanout_service


def _quiet_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    # Quiet the usual offenders
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


async def main() -> None:
    ap = argparse.ArgumentParser(description="Broadcast the canned lead payload to every active endpoint once.")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    _quiet_logging(args.verbose)

    service = build_fanout_service()
    summary = await service.broadcast(Payload.lead(TEST_LEAD_PAYLOAD))

    print(json.dumps(
        {
            "total": summary.total,
            "successful": summary.successful,
            "failed": summary.failed,
            "note": summary.note,
            "errors": {o.destination.display_name: o.error for o in summary.per_destination if not o.succeeded},
        },
        indent=2,
    ))


if __name__ == "__main__":
    asyncio.run(main())
