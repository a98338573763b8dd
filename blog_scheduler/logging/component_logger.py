"""Component-bound logging and pass timing.

The evaluator and the driver each hold a ``ComponentLogger`` so their log
calls do not repeat the component.  ``timed()`` measures one block (the
publishing pass) and records how long it took.
"""

import time
from typing import Any, Optional

from blog_scheduler.logging.models import LogComponent
from blog_scheduler.logging.publisher_logger import get_logger


class ComponentLogger:
    """Routes calls to the global ``PublisherLogger`` under one component.

    Example::

        log = ComponentLogger(LogComponent.SCHEDULER)
        await log.info("Published scheduled article: Hello (ID: 7)", article_id=7)
    """

    def __init__(self, component: LogComponent) -> None:
        self.component = component

    async def debug(self, message: str, **kwargs: Any) -> None:
        await get_logger().debug(self.component, message, **kwargs)

    async def info(self, message: str, **kwargs: Any) -> None:
        await get_logger().info(self.component, message, **kwargs)

    async def warning(self, message: str, **kwargs: Any) -> None:
        await get_logger().warning(self.component, message, **kwargs)

    async def error(
        self, message: str, error: Optional[Exception] = None, **kwargs: Any
    ) -> None:
        await get_logger().error(self.component, message, error=error, **kwargs)

    def timed(self, message: str) -> "TimedOperation":
        """Time an ``async with`` block, e.g. ``self.log.timed("Scheduled publish pass")``."""
        return TimedOperation(self, message)


class TimedOperation:
    """Logs ``Starting:``/``Completed:`` at DEBUG, or ``Failed:`` at ERROR.

    Exceptions raised inside the block are logged and then propagate.
    ``duration_ms`` is available after the block exits.
    """

    def __init__(self, logger: ComponentLogger, message: str) -> None:
        self.logger = logger
        self.message = message
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[int] = None

    async def __aenter__(self) -> "TimedOperation":
        self.start_time = time.monotonic()
        await self.logger.debug(f"Starting: {self.message}")
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        elapsed = time.monotonic() - (self.start_time or time.monotonic())
        self.duration_ms = int(elapsed * 1000)

        if exc_type is None:
            await self.logger.debug(
                f"Completed: {self.message}", duration_ms=self.duration_ms
            )
            return

        await self.logger.error(
            f"Failed: {self.message}",
            error=exc_val if isinstance(exc_val, Exception) else None,
            duration_ms=self.duration_ms,
        )
