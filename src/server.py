"""Progression clock for the marketplace.

Fires due scheduled transitions (``pending → confirmed → shipped``) every
tick. Demo and fallback deployments only; production drives transitions
from seller and carrier events instead.

Usage:
    python src/server.py                 # Tick every BAZAAR_TICK_SECONDS (default 1)
    python src/server.py --interval 5    # Tick every 5 seconds
    python src/server.py --once          # Process due transitions once and exit
"""

import argparse
import asyncio
import os
from datetime import UTC, datetime

import structlog
from marketplace.domain import marketplace
from marketplace.progression.processing import ProcessDueTransitions

logger = structlog.get_logger(__name__)


def tick() -> dict:
    with marketplace.domain_context():
        return marketplace.process(ProcessDueTransitions(as_of=datetime.now(UTC)), asynchronous=False)


async def run(interval: float, once: bool = False):
    marketplace.init()
    logger.info("Progression clock started", interval=interval)
    while True:
        try:
            result = tick()
            if result["fired"] or result["skipped"]:
                logger.info("Progression tick", **result)
        except Exception as exc:
            logger.error("Progression tick failed", error=str(exc))
        if once:
            return
        await asyncio.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description="Bazaar progression clock")
    parser.add_argument(
        "--interval",
        type=float,
        default=float(os.getenv("BAZAAR_TICK_SECONDS", "1")),
        help="Seconds between ticks (default: BAZAAR_TICK_SECONDS or 1)",
    )
    parser.add_argument("--once", action="store_true", help="Process due transitions once and exit")
    args = parser.parse_args()

    try:
        asyncio.run(run(args.interval, args.once))
    except KeyboardInterrupt:
        logger.info("Progression clock stopped")


if __name__ == "__main__":
    main()
