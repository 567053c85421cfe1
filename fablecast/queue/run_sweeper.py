#!/usr/bin/env python3
"""
Stale job sweeper process for Fablecast.

Usage:
    python -m fablecast.queue.run_sweeper
    python -m fablecast.queue.run_sweeper --once    # Single pass and exit
"""

import argparse
import asyncio
import signal
import sys

from fablecast.config import config
from fablecast.database.jobs import StoryJobService
from fablecast.jobs.sweeper import StaleJobSweeper
from fablecast.queue.tasks import enqueue_story_job
from fablecast.utils.logging import configure_logging, job_logger as logger


async def run(once: bool = False):
    sweeper = StaleJobSweeper(StoryJobService(), enqueue_story_job)

    if once:
        counts = await sweeper.sweep()
        logger.info("Single sweep complete", **counts)
        return

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)

    sweeper.start()
    await stop_event.wait()
    sweeper.stop()


def main():
    parser = argparse.ArgumentParser(description="Run the Fablecast stale job sweeper")
    parser.add_argument("--once", action="store_true", help="Run one sweep and exit")
    args = parser.parse_args()

    configure_logging(config.LOG_LEVEL)

    if not config.REDIS_URL or not config.supabase_configured:
        logger.critical("REDIS_URL and Supabase credentials are required for the sweeper")
        sys.exit(1)

    asyncio.run(run(once=args.once))


if __name__ == "__main__":
    main()
