"""
Replenishment job entry point.

Runs a single replenishment pass and exits. Scheduling is external (cron,
Kubernetes CronJob, ...):

    slotbook-replenish

Exit status is 1 when any product failed to replenish.
"""

import asyncio
import sys

from slotbook.core.logging import get_logger, setup_logging
from slotbook.db.session import AsyncSessionLocal, engine
from slotbook.services.replenishment_service import ReplenishmentReport, replenish_all


async def run() -> ReplenishmentReport:
    try:
        return await replenish_all(AsyncSessionLocal)
    finally:
        await engine.dispose()


def main() -> None:
    setup_logging()
    logger = get_logger(__name__)

    report = asyncio.run(run())
    if report.failed:
        logger.error("replenishment_incomplete", failed_products=[str(p) for p in report.failed])
        sys.exit(1)


if __name__ == "__main__":
    main()
