"""Shared fixtures for the scheduled-publishing test suite."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from blog_scheduler.logging import init_logger
from blog_scheduler.utils import parse_timestamp


# ---------------------------------------------------------------------------
# Ensure we don't hit real services during tests
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _block_env_keys(monkeypatch):
    """Clear credentials and overrides so tests never hit real services."""
    keys = [
        "SUPABASE_URL",
        "SUPABASE_SERVICE_KEY",
        "SCHEDULER_DISPLAY_TIMEZONE",
        "SCHEDULER_INTERVAL_SECONDS",
        "SCHEDULER_RETRY_ATTEMPTS",
        "SCHEDULER_RETRY_DELAY_SECONDS",
        "SCHEDULER_STORE_TIMEOUT_SECONDS",
        "SCHEDULER_RUN_DIAGNOSTICS",
        "LOG_LEVEL",
        "LOG_DIR",
    ]
    for key in keys:
        monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Structured logger writes into a temp dir
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def publisher_logger(tmp_path):
    """Initialise the global structured logger for every test."""
    return init_logger(log_dir=str(tmp_path / "logs"))


# ---------------------------------------------------------------------------
# Common datetime fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def sample_utc_now():
    """A fixed UTC datetime for deterministic tests."""
    return datetime(2025, 1, 1, 10, 0, 1, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock; call it to read the current value."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock(sample_utc_now):
    return FakeClock(sample_utc_now)


# ---------------------------------------------------------------------------
# In-memory article store
# ---------------------------------------------------------------------------
class InMemoryArticleStore:
    """Article store double holding rows in their stored representation.

    ``published`` is kept as ``"true"``/``"false"`` text and timestamps as
    ISO strings, like the real table.  A row whose ``scheduled_publish_at``
    cannot be parsed is reported as due, simulating a corrupted value that
    slipped past the database filter.

    ``fail_next`` makes the next N store calls raise ``failure``.
    """

    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.writes: List[Dict[str, Any]] = []
        self.calls: List[str] = []
        self.fail_next = 0
        self.failure: Exception = RuntimeError("store unavailable")

    def add(
        self,
        id: Any,
        title: str = "Untitled",
        status: str = "published",
        published: str = "false",
        scheduled_publish_at: Optional[str] = None,
        published_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        row = {
            "id": id,
            "title": title,
            "status": status,
            "published": published,
            "scheduled_publish_at": scheduled_publish_at,
            "published_at": published_at,
        }
        self.rows.append(row)
        return row

    def get(self, article_id: Any) -> Dict[str, Any]:
        return next(row for row in self.rows if row["id"] == article_id)

    def _maybe_fail(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_next > 0:
            self.fail_next -= 1
            raise self.failure

    def _pending(self) -> List[Dict[str, Any]]:
        return [
            row for row in self.rows
            if row["status"] == "published"
            and row["published"] == "false"
            and row["scheduled_publish_at"] is not None
        ]

    async def get_scheduled_articles(self) -> List[Dict[str, Any]]:
        self._maybe_fail("get_scheduled_articles")
        return [dict(row) for row in self._pending()]

    async def get_due_articles(self, now: datetime) -> List[Dict[str, Any]]:
        self._maybe_fail("get_due_articles")
        due = []
        for row in self._pending():
            try:
                scheduled = parse_timestamp(row["scheduled_publish_at"])
            except ValueError:
                due.append(dict(row))
                continue
            if scheduled <= now:
                due.append(dict(row))
        return due

    async def mark_article_live(self, article_id: Any, published_at: datetime) -> None:
        self._maybe_fail("mark_article_live")
        row = self.get(article_id)
        row["published"] = "true"
        row["published_at"] = published_at.isoformat()
        self.writes.append({"id": article_id, "published_at": published_at})


@pytest.fixture
def article_store():
    return InMemoryArticleStore()


# ---------------------------------------------------------------------------
# Mock Supabase client
# ---------------------------------------------------------------------------
@pytest.fixture
def mock_supabase_client():
    """A mock Supabase async client whose query builder chains to itself."""
    client = MagicMock()
    table_mock = MagicMock()
    for method in ("select", "update", "eq", "is_", "lte", "order", "limit"):
        getattr(table_mock, method).return_value = table_mock
    table_mock.not_ = table_mock
    table_mock.execute = AsyncMock(return_value=MagicMock(data=[]))
    client.table.return_value = table_mock
    return client
