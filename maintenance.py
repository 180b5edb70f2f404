"""
Daily retention sweep for cancelled orders.

Runs inside the API process as an asyncio task (see main.lifespan), or once
from the command line:

    python maintenance.py
"""
import asyncio
from datetime import datetime, timedelta

from config import CLEANUP_HOUR
from database import utcnow
from logging_config import get_logger
from orders import sweep_cancelled_orders

logger = get_logger(__name__)


def seconds_until(hour: int, now: datetime = None) -> float:
    """Seconds from `now` (naive UTC) to the next occurrence of hour:00."""
    now = now or utcnow()
    run_at = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if run_at <= now:
        run_at += timedelta(days=1)
    return (run_at - now).total_seconds()


async def run_daily_sweep(hour: int = CLEANUP_HOUR) -> None:
    while True:
        await asyncio.sleep(seconds_until(hour))
        logger.info("scheduled_cleanup_started")
        try:
            await asyncio.to_thread(sweep_cancelled_orders)
        except Exception:
            # Keep the schedule alive; the next run retries
            logger.exception("scheduled_cleanup_failed")


def main() -> int:
    deleted = sweep_cancelled_orders()
    print(f"Deleted {deleted} cancelled orders")
    return 0


if __name__ == "__main__":
    from logging_config import configure_logging

    configure_logging()
    raise SystemExit(main())
