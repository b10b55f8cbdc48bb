"""
Extraction Scheduler - Cron and On-Demand Execution

Manages scheduled and manual extraction job execution using APScheduler.

Features:
- Cron-based scheduling (configurable via EXTRACT_SCHEDULE_CRON)
- RUN_ONCE mode for immediate execution
- Graceful shutdown handling

Usage:
    # Scheduled mode (default)
    python -m apps.extractor.scheduler

    # Run once and exit
    RUN_ONCE=true python -m apps.extractor.scheduler

    # Or through the console script
    RUN_ONCE=true billing-extractor
"""

import asyncio
import logging
import signal
import sys

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from apps.extractor.extractor_job import run_extraction
from utils.config import Settings, get_settings
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


class ExtractionScheduler:
    """
    Scheduler for periodic or on-demand extraction jobs.

    Handles:
    - APScheduler setup and management
    - Cron-based scheduling
    - RUN_ONCE immediate execution
    - Signal handling for graceful shutdown
    """

    def __init__(self, config: Settings | None = None, run_once: bool | None = None) -> None:
        """
        Initialize scheduler.

        Args:
            config: Settings for the scheduler and every extraction it runs
            run_once: Overrides config.RUN_ONCE; if True, run extraction once and exit
        """
        self.config = config or get_settings()
        self.run_once = self.config.RUN_ONCE if run_once is None else run_once
        self.cron = self.config.EXTRACT_SCHEDULE_CRON
        self.scheduler: AsyncIOScheduler | None = None
        self.shutdown_event = asyncio.Event()

        logger.info(
            "ExtractionScheduler initialized",
            extra={"run_once": self.run_once, "cron_schedule": self.cron},
        )

    async def execute_extraction(self) -> None:
        """Execute one extraction job, logging its outcome."""
        logger.info("Starting extraction execution")

        try:
            output_file = await run_extraction(self.config)

            logger.info(
                "Extraction execution completed successfully",
                extra={"output_file": output_file},
            )

        except Exception as e:
            logger.error(
                "Extraction execution failed",
                extra={"error": str(e)},
                exc_info=True,
            )
            raise

        finally:
            if self.run_once:
                logger.info("RUN_ONCE mode: signaling shutdown")
                self.shutdown_event.set()

    def setup_signal_handlers(self) -> None:
        """Setup handlers for graceful shutdown on SIGINT/SIGTERM."""

        def signal_handler(signum: int, frame: object) -> None:
            logger.info(f"Received signal {signum}, initiating graceful shutdown")
            self.shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def start(self) -> None:
        """
        Start scheduler or execute once.

        In scheduled mode, runs continuously until shutdown signal.
        In RUN_ONCE mode, executes immediately and exits.
        """
        self.setup_signal_handlers()

        if self.run_once:
            logger.info("Running in RUN_ONCE mode")
            await self.execute_extraction()
            return

        logger.info("Running in scheduled mode")

        self.scheduler = AsyncIOScheduler()

        trigger = CronTrigger.from_crontab(self.cron)
        self.scheduler.add_job(
            self.execute_extraction,
            trigger=trigger,
            id="extraction_job",
            name="Periodic Billing Event Extraction",
            replace_existing=True,
            max_instances=1,
        )

        # Start scheduler first to get next_run_time
        self.scheduler.start()
        logger.info("Scheduler started")

        job = self.scheduler.get_job("extraction_job")
        next_run = getattr(job, "next_run_time", None)
        next_run_str = str(next_run) if next_run is not None else None

        logger.info(
            "Scheduled extraction job",
            extra={"schedule": self.cron, "next_run": next_run_str},
        )
        logger.info("Waiting for jobs...")

        await self.shutdown_event.wait()

        logger.info("Shutting down scheduler")
        if self.scheduler:
            self.scheduler.shutdown(wait=True)
        logger.info("Scheduler shutdown complete")


async def main() -> None:
    """Main entry point for scheduler."""
    config = get_settings()
    setup_logging(level=config.LOG_LEVEL, format_type=config.LOG_FORMAT)

    scheduler = ExtractionScheduler(config)

    try:
        await scheduler.start()
    except Exception as e:
        logger.error("Scheduler failed", extra={"error": str(e)}, exc_info=True)
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
