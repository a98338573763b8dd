"""
Entry point: run the scheduled-publishing driver.

Usage::

    # Poll forever (one pass now, then every interval):
    python run.py

    # Run a single pass and exit (non-zero exit code on failure):
    python run.py --once

    # Use a different settings file:
    python run.py --config config/staging.yaml
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("run")


async def main() -> int:
    from blog_scheduler.bootstrap import configure_logging, create_scheduler
    from blog_scheduler.config import Settings, validate_env
    from blog_scheduler.database import get_db

    parser = argparse.ArgumentParser(
        description="Publish approved articles once their scheduled time has passed"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single publishing pass and exit",
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        type=Path,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    args = parser.parse_args()

    settings = Settings.from_yaml(args.config)
    configure_logging(settings)
    validate_env(strict=True)

    db = await get_db()
    scheduler = create_scheduler(settings, db)

    if args.once:
        result = await scheduler.run_once()
        if result is None or not result.success:
            logger.error("Scheduled publish pass failed")
            return 1
        logger.info("%s", result.message)
        return 0

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.request_stop)
        except NotImplementedError:
            # Windows: fall back to KeyboardInterrupt below
            pass

    await scheduler.start()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(0)
