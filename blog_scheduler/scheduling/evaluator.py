"""
Scheduled-publish evaluator: one pass over the article store.

``ScheduledPublishEvaluator.evaluate()`` finds every article that is
approved (status ``published``) but not yet live, whose scheduled time is at
or before the evaluation time, and makes it live with ``published_at`` set to
that evaluation time.

Error convention:
    - Store failures (``DatabaseError``, including timeouts) are expected and
      come back as ``PublishResult(success=False, ...)``.
    - A row with a corrupted ``scheduled_publish_at`` is skipped on its own.
    - Anything else is a bug and propagates to the polling driver, which
      retries it.
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from blog_scheduler.exceptions import (
    DatabaseError,
    InvalidTimestampError,
    StoreTimeoutError,
    ValidationError,
)
from blog_scheduler.logging import ComponentLogger, LogComponent
from blog_scheduler.models import Article, PublishResult
from blog_scheduler.timezones import DEFAULT_DISPLAY_TIMEZONE, format_display_date
from blog_scheduler.utils import ensure_utc, utc_now

T = TypeVar("T")

Clock = Callable[[], datetime]


class ScheduledPublishEvaluator:
    """Finds due articles and makes them live.

    Args:
        db: Article store (:class:`~blog_scheduler.database.SupabaseDB` or
            any object with ``get_scheduled_articles()``,
            ``get_due_articles(now)`` and
            ``mark_article_live(article_id, published_at)`` coroutines).
        clock: Zero-argument callable returning the current time.
        display_timezone: IANA zone used for the human-readable times in
            log lines.  Comparisons always use UTC.
        store_timeout_seconds: Upper bound for each individual store call.
        run_diagnostics: Whether to log every scheduled article before the
            main pass.
    """

    def __init__(
        self,
        db: Any,
        clock: Clock = utc_now,
        display_timezone: str = DEFAULT_DISPLAY_TIMEZONE,
        store_timeout_seconds: float = 30.0,
        run_diagnostics: bool = True,
    ) -> None:
        self.db = db
        self.clock = clock
        self.display_timezone = display_timezone
        self.store_timeout_seconds = store_timeout_seconds
        self.run_diagnostics = run_diagnostics
        self.log = ComponentLogger(LogComponent.SCHEDULER)

    # ================================================================
    # PUBLIC API
    # ================================================================

    async def evaluate(self, now: Optional[datetime] = None) -> PublishResult:
        """Run one publishing pass.

        Args:
            now: Evaluation time.  Defaults to the injected clock.  Naive
                values are treated as UTC.

        Returns:
            A :class:`PublishResult`.  ``success`` is ``False`` only when the
            store failed; ``published`` counts articles actually written.
        """
        now = ensure_utc(now if now is not None else self.clock())

        await self.log.info(
            f"Checking for scheduled articles to publish at {now.isoformat()} "
            f"({self._display(now)})",
        )

        async with self.log.timed("Scheduled publish pass"):
            try:
                return await self._run_pass(now)
            except DatabaseError as exc:
                message = f"Error processing scheduled articles: {exc}"
                await self.log.error(message, error=exc)
                return PublishResult(
                    success=False,
                    published=0,
                    message=message,
                    evaluated_at=now,
                )

    # ================================================================
    # PASS
    # ================================================================

    async def _run_pass(self, now: datetime) -> PublishResult:
        if self.run_diagnostics:
            await self._log_scheduled_articles()

        rows = await self._call_store(
            "get_due_articles", lambda: self.db.get_due_articles(now)
        )

        if not rows:
            await self.log.info("No scheduled articles to publish")
            return PublishResult(
                success=True,
                published=0,
                message="No scheduled articles to publish",
                evaluated_at=now,
            )

        await self.log.info(
            f"Found {len(rows)} scheduled article(s) to publish at {self._display(now)}",
        )

        published = 0
        skipped = 0
        for row in rows:
            article = await self._to_article(row)
            if article is None:
                skipped += 1
                continue

            if not article.is_eligible(now):
                # Store filter and in-memory predicate disagree
                await self.log.warning(
                    f"Article {article.id} returned as due but is not eligible, skipping",
                    article_id=article.id,
                    data=self._article_data(article),
                )
                skipped += 1
                continue

            await self._call_store(
                "mark_article_live",
                lambda: self.db.mark_article_live(article.id, now),
            )
            published += 1

            await self.log.info(
                f"Published scheduled article: {article.title} (ID: {article.id})",
                article_id=article.id,
                data={
                    "article_id": article.id,
                    "title": article.title,
                    "scheduled_for_utc": article.scheduled_publish_at.isoformat(),
                    "scheduled_for_display": self._display(article.scheduled_publish_at),
                    "published_at_utc": now.isoformat(),
                    "published_at_display": self._display(now),
                },
            )

        message = f"Published {published} scheduled article(s)"
        if skipped:
            message += f", skipped {skipped}"
        return PublishResult(
            success=True,
            published=published,
            message=message,
            skipped=skipped,
            evaluated_at=now,
        )

    async def _log_scheduled_articles(self) -> None:
        """Log every approved, not-live article with a schedule.  No writes."""
        rows = await self._call_store(
            "get_scheduled_articles", self.db.get_scheduled_articles
        )

        if not rows:
            await self.log.debug("No articles with scheduled_publish_at found")
            return

        await self.log.debug(
            f"Found {len(rows)} article(s) with scheduled_publish_at",
        )
        for row in rows:
            try:
                article = Article.from_row(row)
            except ValidationError:
                await self.log.debug(
                    f"Article {row.get('id')} \"{row.get('title')}\" has an invalid "
                    f"scheduled_publish_at value",
                    article_id=row.get("id"),
                    data={"scheduled_publish_at": str(row.get("scheduled_publish_at"))},
                )
                continue
            await self.log.debug(
                f"Article {article.id} \"{article.title}\" status={article.status.value}, "
                f"published={article.published}",
                article_id=article.id,
                data=self._article_data(article),
            )

    # ================================================================
    # INTERNAL HELPERS
    # ================================================================

    async def _to_article(self, row: Dict[str, Any]) -> Optional[Article]:
        """Convert a row, returning ``None`` (and logging) for corrupted data."""
        try:
            return Article.from_row(row)
        except InvalidTimestampError as exc:
            await self.log.warning(
                f"Article ID {row.get('id')} has an invalid {exc.field_name} "
                f"date, skipping publish",
                article_id=row.get("id"),
                data={
                    "title": row.get("title"),
                    exc.field_name: str(exc.value),
                },
            )
            return None
        except ValidationError as exc:
            await self.log.warning(
                f"Article ID {row.get('id')} has invalid data, skipping publish",
                article_id=row.get("id"),
                data={
                    "title": row.get("title"),
                    "scheduled_publish_at": str(row.get("scheduled_publish_at")),
                    "reason": str(exc),
                },
            )
            return None

    async def _call_store(
        self, operation: str, call: Callable[[], Awaitable[T]]
    ) -> T:
        """Await a store call with the configured timeout.

        Raises:
            StoreTimeoutError: If the call does not finish in time.
        """
        try:
            return await asyncio.wait_for(call(), timeout=self.store_timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise StoreTimeoutError(operation, self.store_timeout_seconds) from exc

    def _display(self, value: Optional[datetime]) -> str:
        return format_display_date(value, self.display_timezone)

    def _article_data(self, article: Article) -> Dict[str, Any]:
        scheduled = article.scheduled_publish_at
        return {
            "article_id": article.id,
            "title": article.title,
            "status": article.status.value,
            "published": article.published,
            "scheduled_for_utc": scheduled.isoformat() if scheduled else None,
            "scheduled_for_display": self._display(scheduled),
        }


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    "ScheduledPublishEvaluator",
]
