"""
Polling driver that runs the scheduled-publish evaluator on a fixed cadence.

``PublishingScheduler`` runs as an asyncio background task: one tick right
away at start, then one tick per ``check_interval_seconds``.  Each tick wraps
the evaluator in a bounded retry so a crash in a single pass does not drop
that cycle silently, and never lets an evaluator failure escape to the host
process.
"""

import asyncio
import logging
from typing import Any, Optional

from blog_scheduler.exceptions import RetryExhaustedError
from blog_scheduler.logging import ComponentLogger, LogComponent, get_logger
from blog_scheduler.models import PublishResult
from blog_scheduler.scheduling.evaluator import ScheduledPublishEvaluator
from blog_scheduler.utils import generate_id, with_retry

logger = logging.getLogger(__name__)


class PublishingScheduler:
    """Background task that publishes scheduled articles once they are due.

    Runs an asyncio loop that:
    1. Runs one tick immediately.
    2. Sleeps ``check_interval_seconds`` and runs the next tick, until
       :meth:`stop` is called.

    Ticks never overlap: the loop awaits each tick before sleeping.

    Retries only happen when the evaluator *raises*.  A returned
    ``PublishResult(success=False)`` is a clean, reported failure and is left
    for the next tick.

    Args:
        evaluator: The evaluator to run each tick.
        check_interval_seconds: Seconds between ticks (default: 60).
        max_attempts: Attempts per tick when the evaluator raises (default: 3).
        retry_delay_seconds: Fixed delay between attempts (default: 3).
    """

    def __init__(
        self,
        evaluator: ScheduledPublishEvaluator,
        check_interval_seconds: float = 60,
        max_attempts: int = 3,
        retry_delay_seconds: float = 3.0,
    ) -> None:
        self.evaluator = evaluator
        self.check_interval_seconds = check_interval_seconds
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.log = ComponentLogger(LogComponent.SCHEDULER)
        self._running: bool = False
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        """Whether the background loop is active."""
        return self._running

    # ================================================================
    # LIFECYCLE
    # ================================================================

    async def start(self) -> None:
        """Start the polling loop.

        Runs until :meth:`stop` is called or the task is cancelled.  Does not
        raise for evaluator or logging failures.
        """
        self._running = True
        self._stop_event = asyncio.Event()
        await self._log_safely(
            "info",
            f"Publishing scheduler started (interval={self.check_interval_seconds}s)",
        )

        try:
            while self._running:
                try:
                    await self.run_once()
                except Exception:
                    logger.exception(
                        "[SCHEDULER] Unexpected error in publishing scheduler loop"
                    )

                if not self._running:
                    break

                # Wait for next tick; stop() wakes the wait early
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=self.check_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            await self._log_safely("info", "Publishing scheduler cancelled")
            raise
        finally:
            self._running = False

        await self._log_safely("info", "Publishing scheduler stopped")

    def request_stop(self) -> None:
        """Ask the loop to exit without awaiting anything.

        Safe to call from a signal handler.  The tick in progress (if any)
        completes; a pending sleep is interrupted immediately.
        """
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    async def stop(self) -> None:
        """Stop the polling loop (see :meth:`request_stop`)."""
        self.request_stop()
        await self._log_safely("info", "Publishing scheduler stop requested")

    async def _log_safely(self, level: str, message: str, **kwargs: Any) -> None:
        """Structured log line, falling back to stdlib logging if the sink fails."""
        try:
            await getattr(self.log, level)(message, **kwargs)
        except Exception:
            logger.exception("[SCHEDULER] %s (structured log failed)", message)

    # ================================================================
    # TICK
    # ================================================================

    async def run_once(self) -> Optional[PublishResult]:
        """Run one tick: the evaluator wrapped in the retry policy.

        Returns:
            The evaluator's result, or ``None`` when every attempt raised or
            the tick could not run at all.
        """
        publisher_logger = None
        try:
            publisher_logger = get_logger()
            publisher_logger.set_context(tick_id=generate_id())
            return await self._run_tick()
        except Exception:
            logger.exception("[SCHEDULER] Scheduled publish tick failed")
            return None
        finally:
            if publisher_logger is not None:
                publisher_logger.clear_context()

    async def _run_tick(self) -> Optional[PublishResult]:
        @with_retry(
            max_attempts=self.max_attempts,
            base_delay=self.retry_delay_seconds,
            backoff=1.0,
            operation_name="scheduled publish",
        )
        async def _attempt() -> PublishResult:
            try:
                return await self.evaluator.evaluate()
            except Exception as exc:
                await self._log_safely(
                    "warning", f"Scheduled publish attempt failed: {exc}", error=exc
                )
                raise

        try:
            result = await _attempt()
        except RetryExhaustedError as exc:
            await self._log_safely(
                "error",
                f"Max retries reached, scheduled publish failed permanently "
                f"after {exc.attempts} attempts: {exc.last_error}",
                error=exc.last_error,
            )
            return None

        if not result.success:
            await self._log_safely(
                "warning",
                f"Scheduled publish pass reported failure: {result.message}",
                data=result.to_dict(),
            )
        elif result.published > 0:
            await self._log_safely(
                "info",
                f"Published {result.published} scheduled article(s)",
                data=result.to_dict(),
            )
        return result


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    "PublishingScheduler",
]
