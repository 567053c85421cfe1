#!/usr/bin/env python3
"""
RQ Worker Runner for Fablecast.

Runs the worker process that executes story pipeline jobs. Run this
separately from the web server.

Usage:
    python -m fablecast.queue.run_worker            # Story queue
    python -m fablecast.queue.run_worker --burst    # Process and exit
"""

import argparse
import sys

from rq import Worker, Queue

from fablecast.config import config
from fablecast.queue.connection import get_redis_connection, QUEUE_STORIES
from fablecast.utils.logging import configure_logging, job_logger as logger


def main():
    parser = argparse.ArgumentParser(description="Run Fablecast RQ worker")
    parser.add_argument(
        "--queues",
        "-q",
        nargs="+",
        default=[QUEUE_STORIES],
        help=f"Queues to process (default: {QUEUE_STORIES})"
    )
    parser.add_argument(
        "--burst",
        "-b",
        action="store_true",
        help="Run in burst mode (process all jobs and exit)"
    )
    parser.add_argument(
        "--name",
        "-n",
        default=None,
        help="Worker name (auto-generated if not specified)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()
    configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL)

    if not config.REDIS_URL:
        logger.critical("REDIS_URL environment variable is required")
        sys.exit(1)

    try:
        conn = get_redis_connection()
        queues = [Queue(name, connection=conn) for name in args.queues]
        logger.info("Worker starting", queues=args.queues, burst=args.burst)

        worker = Worker(
            queues,
            connection=conn,
            name=args.name,
        )
        worker.work(
            burst=args.burst,
            logging_level="DEBUG" if args.verbose else "INFO",
        )

    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.critical("Worker error", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
