"""Background task for the periodic reconciliation pass."""

import asyncio
import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.database import get_db_context
from app.services.reconciliation_service import ReconciliationReport, reconciliation_service

logger = logging.getLogger(__name__)

# Flag to stop the background task
_stop_reconciliation = False


async def run_reconciliation(trigger: str = "scheduled") -> ReconciliationReport | None:
    """Run one reconciliation pass in its own session."""
    started = time.perf_counter()
    logger.info(f"Starting reconciliation (trigger: {trigger})")
    try:
        async with get_db_context() as db:
            report = await reconciliation_service.reconcile(db)
    except SQLAlchemyError as e:
        logger.error(f"Reconciliation failed: {e}")
        return None

    duration_ms = int((time.perf_counter() - started) * 1000)
    logger.info(f"Reconciliation completed in {duration_ms}ms")
    return report


async def start_reconciliation_scheduler(interval_seconds: int | None = None) -> None:
    """Run reconciliation every ``interval_seconds`` until stopped."""
    global _stop_reconciliation
    _stop_reconciliation = False
    interval = interval_seconds or settings.reconciliation_interval_seconds

    logger.info(f"Reconciliation scheduler started (every {interval}s)")

    while not _stop_reconciliation:
        await run_reconciliation(trigger="scheduled")

        # Wait for next interval (check stop flag every second)
        for _ in range(interval):
            if _stop_reconciliation:
                break
            await asyncio.sleep(1)

    logger.info("Reconciliation scheduler stopped")


def stop_reconciliation_scheduler() -> None:
    """Signal the reconciliation scheduler to stop."""
    global _stop_reconciliation
    _stop_reconciliation = True
