"""
Periodic offline rebuilds of the sign tile store.

Usage:
    python scheduler.py          # rebuild on UPDATE_SCHEDULE until SIGINT/SIGTERM
    python scheduler.py --once   # rebuild now and exit
"""
import asyncio
import logging
import signal
import sys
import threading
from datetime import datetime
import schedule

from config import TILE_STORE_DIR, UPDATE_SCHEDULE, UPDATE_DAY, UPDATE_HOUR
from pipeline import run_pipeline

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Set by SIGINT/SIGTERM; the loop finishes its current tick and exits
stop_requested = threading.Event()


def request_stop(signum, frame):
    logger.info(f"Received signal {signum}, stopping after the current check...")
    stop_requested.set()


def rebuild_tiles() -> bool:
    """Run one tile build. A failed build leaves the previous tiles in place."""
    logger.info(f"Tile rebuild starting at {datetime.utcnow()}")
    success = asyncio.run(run_pipeline(TILE_STORE_DIR))
    if success:
        logger.info("Tile rebuild completed successfully")
    else:
        logger.error("Tile rebuild failed; serving previous tiles")
    return success


def setup_schedule(scheduler: schedule.Scheduler = schedule.default_scheduler) -> schedule.Job:
    """Register the rebuild job on scheduler and return it"""
    at = f"{UPDATE_HOUR:02d}:00"

    if UPDATE_SCHEDULE == "daily":
        job = scheduler.every().day.at(at).do(rebuild_tiles)
        logger.info(f"Tile rebuild scheduled daily at {at}")
    elif UPDATE_SCHEDULE == "weekly":
        job = getattr(scheduler.every(), UPDATE_DAY.lower()).at(at).do(rebuild_tiles)
        logger.info(f"Tile rebuild scheduled every {UPDATE_DAY} at {at}")
    else:
        logger.warning(f"Unknown schedule '{UPDATE_SCHEDULE}', defaulting to weekly")
        job = scheduler.every().sunday.at(at).do(rebuild_tiles)

    return job


def run_scheduler(scheduler: schedule.Scheduler = schedule.default_scheduler, poll_seconds: float = 1.0):
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, request_stop)

    job = setup_schedule(scheduler)
    logger.info(f"Scheduler started, first rebuild at {job.next_run}. Ctrl+C to stop.")

    while not stop_requested.is_set():
        scheduler.run_pending()
        stop_requested.wait(poll_seconds)

    logger.info("Scheduler stopped.")


if __name__ == "__main__":
    if "--once" in sys.argv:
        sys.exit(0 if rebuild_tiles() else 1)
    run_scheduler()
