"""
Application wiring for the scheduled-publishing service.

``run.py`` calls these helpers during startup; tests call them with their own
settings and an in-memory store.
"""

import logging
from typing import Any, Optional

from blog_scheduler.config import Settings
from blog_scheduler.logging import (
    LogLevel,
    PublisherLogger,
    init_logger,
    stdlib_handler,
)
from blog_scheduler.scheduling import PublishingScheduler, ScheduledPublishEvaluator
from blog_scheduler.utils import utc_now


def configure_logging(settings: Settings) -> PublisherLogger:
    """Configure stdlib console logging and the structured file logger.

    Returns:
        The initialised global :class:`PublisherLogger`.
    """
    level = LogLevel[settings.log_level.upper()]
    logging.basicConfig(
        level=level.value,
        format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    publisher_logger = init_logger(log_dir=settings.log_dir, min_level=level)
    publisher_logger.add_handler(stdlib_handler)
    return publisher_logger


def create_scheduler(
    settings: Settings,
    db: Any,
    clock: Optional[Any] = None,
) -> PublishingScheduler:
    """Build the evaluator and polling driver from settings.

    Args:
        settings: Loaded application settings.
        db: Article store.
        clock: Optional clock override (defaults to ``utc_now``).
    """
    evaluator = ScheduledPublishEvaluator(
        db,
        clock=clock or utc_now,
        display_timezone=settings.display_timezone,
        store_timeout_seconds=settings.store_timeout_seconds,
        run_diagnostics=settings.run_diagnostics,
    )
    return PublishingScheduler(
        evaluator,
        check_interval_seconds=settings.check_interval_seconds,
        max_attempts=settings.retry_attempts,
        retry_delay_seconds=settings.retry_delay_seconds,
    )


__all__ = [
    "configure_logging",
    "create_scheduler",
]
