"""Timer worker for order sagas.

Polls for due timers and drives the sagas waiting on them.

Usage:
    python src/worker.py                 # Poll every PICKUP_TIMER_POLL_SECONDS
    python src/worker.py --once          # Fire what is due now and exit
    python src/worker.py --interval 1.5  # Override the poll interval
"""

import argparse
import time

import structlog

from pickup.bootstrap import build_handler
from pickup.config import Settings
from pickup.order.commands import FireDueTimers
from pickup.order.handler import OrderCommandHandler
from pickup.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


def run(handler: OrderCommandHandler, interval: float, once: bool = False) -> None:
    while True:
        try:
            driven = handler.handle(FireDueTimers())
        except Exception:
            logger.exception("timer_poll_failed")
        else:
            if driven:
                logger.info("timers_fired", executions=driven)
        if once:
            return
        time.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description="Pickup timer worker")
    parser.add_argument("--once", action="store_true", help="Fire due timers once and exit")
    parser.add_argument("--interval", type=float, help="Seconds between polls")
    args = parser.parse_args()

    configure_logging()
    settings = Settings.from_env()
    handler = build_handler(settings, create_schema=True)

    interval = args.interval or settings.timer_poll_seconds
    logger.info("worker_started", interval=interval, database_uri=settings.database_uri)
    try:
        run(handler, interval, once=args.once)
    except KeyboardInterrupt:
        logger.info("worker_stopped")


if __name__ == "__main__":
    main()
