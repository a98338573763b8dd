"""
Async article store client for the scheduled-publishing service.

ALL article table access goes through the SupabaseDB class defined here.
No direct Supabase calls should appear anywhere else in the codebase.

Usage::

    from blog_scheduler.database import get_db

    # In async context:
    db = await get_db()
    rows = await db.get_due_articles(utc_now())
"""

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import AsyncClient, create_async_client

from blog_scheduler.exceptions import DatabaseError, ValidationError
from blog_scheduler.models import ArticleStatus, serialize_published_flag
from blog_scheduler.utils import ensure_utc

logger = logging.getLogger(__name__)

ARTICLES_TABLE = "articles"

# Columns the scheduler needs; keeps row payloads small.
ARTICLE_COLUMNS = "id,title,status,published,scheduled_publish_at,published_at"


# =============================================================================
# VALIDATION HELPERS
# =============================================================================


def validate_not_empty(value: Any, name: str) -> None:
    """Validate that *value* is not ``None`` or an empty string.

    Args:
        value: The value to check.
        name: Human-readable field name used in error messages.

    Raises:
        ValidationError: If *value* is ``None`` or a blank string.
    """
    if value is None:
        raise ValidationError(f"{name} cannot be None")
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"{name} cannot be empty string")


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class SupabaseConfig:
    """Supabase configuration loaded from environment variables.

    Attributes:
        url: The Supabase project URL (``SUPABASE_URL``).
        key: The service-role key for full server-side access
            (``SUPABASE_SERVICE_KEY``).
    """

    url: str
    key: str  # service_role key for full server-side access

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        """Create a config instance from environment variables.

        Reads ``SUPABASE_URL`` and ``SUPABASE_SERVICE_KEY``.

        Raises:
            ValueError: If either variable is missing or empty.
        """
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_KEY")

        if not url or not key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY must be set"
            )

        return cls(url=url, key=key)


# =============================================================================
# SUPABASE DATABASE CLIENT
# =============================================================================


class SupabaseDB:
    """Unified **async** article store client.

    Rows are returned as plain dicts exactly as stored (``published`` as
    text, timestamps as ISO strings); conversion to :class:`Article` is the
    caller's job so that a single corrupted row can be skipped on its own.

    Every client failure is re-raised as :class:`DatabaseError`.

    **Important:** Use the :meth:`create` factory method instead of
    ``__init__`` directly -- the underlying async client requires an
    ``await`` during initialisation.
    """

    def __init__(self, client: AsyncClient) -> None:
        """Private constructor.  Use :meth:`create` factory method."""
        self.client = client

    @classmethod
    async def create(
        cls, config: Optional[SupabaseConfig] = None
    ) -> "SupabaseDB":
        """Factory method to create an async :class:`SupabaseDB` instance.

        Args:
            config: Optional configuration.  When ``None``,
                :meth:`SupabaseConfig.from_env` is used.

        Returns:
            A fully initialised :class:`SupabaseDB` instance.
        """
        config = config or SupabaseConfig.from_env()
        client = await create_async_client(config.url, config.key)
        return cls(client)

    # -----------------------------------------------------------------
    # SCHEDULED ARTICLES
    # -----------------------------------------------------------------

    async def get_scheduled_articles(self) -> List[Dict[str, Any]]:
        """Get every approved, not-yet-live article that has a schedule.

        Used by the evaluator's diagnostic pre-pass; performs no writes.

        Returns:
            List of article row dicts ordered by
            ``scheduled_publish_at`` ascending.

        Raises:
            DatabaseError: If the query fails.
        """
        try:
            result = await (
                self.client.table(ARTICLES_TABLE)
                .select(ARTICLE_COLUMNS)
                .eq("status", ArticleStatus.PUBLISHED.value)
                .eq("published", serialize_published_flag(False))
                .not_.is_("scheduled_publish_at", "null")
                .order("scheduled_publish_at", desc=False)
                .execute()
            )
        except Exception as exc:
            raise DatabaseError(f"Failed to query scheduled articles: {exc}") from exc
        return result.data or []

    async def get_due_articles(self, now: datetime) -> List[Dict[str, Any]]:
        """Get articles that are due for publishing at *now*.

        Returns all articles with status ``"published"``, published flag
        ``"false"`` and a non-null ``scheduled_publish_at`` at or before
        *now* (compared in UTC).

        Args:
            now: Evaluation time.  Naive values are treated as UTC.

        Returns:
            List of article row dicts ordered by
            ``scheduled_publish_at`` ascending.

        Raises:
            DatabaseError: If the query fails.
        """
        cutoff = ensure_utc(now).isoformat()
        try:
            result = await (
                self.client.table(ARTICLES_TABLE)
                .select(ARTICLE_COLUMNS)
                .eq("status", ArticleStatus.PUBLISHED.value)
                .eq("published", serialize_published_flag(False))
                .not_.is_("scheduled_publish_at", "null")
                .lte("scheduled_publish_at", cutoff)
                .order("scheduled_publish_at", desc=False)
                .execute()
            )
        except Exception as exc:
            raise DatabaseError(f"Failed to query due articles: {exc}") from exc

        logger.debug(
            "[DATABASE] %d articles due at %s",
            len(result.data or []),
            cutoff,
        )
        return result.data or []

    async def mark_article_live(
        self, article_id: Any, published_at: datetime
    ) -> None:
        """Make an article live and stamp its publication time.

        Writes ``published = "true"`` and ``published_at``.  Setting the flag
        on an already-live article is harmless, so the write is idempotent.

        Args:
            article_id: Primary key of the article.
            published_at: Actual publication time (stored as UTC).

        Raises:
            ValidationError: If *article_id* is empty.
            DatabaseError: If the update fails.
        """
        validate_not_empty(article_id, "article_id")

        try:
            await (
                self.client.table(ARTICLES_TABLE)
                .update({
                    "published": serialize_published_flag(True),
                    "published_at": ensure_utc(published_at).isoformat(),
                })
                .eq("id", article_id)
                .execute()
            )
        except Exception as exc:
            raise DatabaseError(
                f"Failed to publish article {article_id}: {exc}"
            ) from exc

# =============================================================================
# GLOBAL DATABASE INSTANCE (Singleton)
# =============================================================================

# One async connection for the entire application.
_db_instance: Optional[SupabaseDB] = None
_db_lock: Optional[asyncio.Lock] = None

# Thread lock for safe initialisation of the async lock itself.
_init_lock = threading.Lock()


async def get_db() -> SupabaseDB:
    """Get the global async database instance.

    Thread-safe **and** async-safe.  The first call creates the
    :class:`SupabaseDB` singleton; subsequent calls return the same
    instance.

    Returns:
        The singleton :class:`SupabaseDB` instance.
    """
    global _db_instance, _db_lock

    # Thread-safe lazy initialisation of the async lock.
    if _db_lock is None:
        with _init_lock:
            # Double-check after acquiring thread lock.
            if _db_lock is None:
                _db_lock = asyncio.Lock()

    if _db_instance is None:
        async with _db_lock:
            # Double-check after acquiring async lock.
            if _db_instance is None:
                _db_instance = await SupabaseDB.create()

    return _db_instance
