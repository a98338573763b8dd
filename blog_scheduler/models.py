"""
Article data models: ArticleStatus, Article, PublishResult.

Defines the core data structures used by the scheduled-publishing subsystem:
- ``ArticleStatus``: Editorial status of an article.
- ``Article``: The subset of an article row the scheduler reads and writes.
- ``PublishResult``: Summary of one evaluator pass.

The article table stores the live flag as the text ``"true"``/``"false"``.
That quirk is handled here at the row boundary; everything else in the
package works with a real ``bool``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from blog_scheduler.exceptions import InvalidTimestampError, ValidationError
from blog_scheduler.utils import ensure_utc, parse_timestamp, utc_now


# =============================================================================
# ARTICLE STATUS ENUM
# =============================================================================


class ArticleStatus(Enum):
    """Editorial status of an article.

    ``PUBLISHED`` means an admin approved the article.  Whether readers can
    see it is tracked separately by ``Article.published``.

    Transitions (owned by the editorial workflow):
        DRAFT -> REVIEW -> PUBLISHED
                 REVIEW -> DRAFT
    """

    DRAFT = "draft"
    REVIEW = "review"
    PUBLISHED = "published"

    @property
    def is_approved(self) -> bool:
        """Check if an admin has signed off on the article."""
        return self is ArticleStatus.PUBLISHED


# =============================================================================
# BOOLEAN-AS-TEXT CONVERSION
# =============================================================================

_TRUE_VALUES = {"true", "1", "t", "yes"}
_FALSE_VALUES = {"false", "0", "f", "no", ""}


def parse_published_flag(value: Any) -> bool:
    """Convert the stored ``published`` column into a ``bool``.

    Raises:
        ValidationError: If the value is not a recognised boolean spelling.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValidationError(f"Invalid published flag value: {value!r}")


def serialize_published_flag(value: bool) -> str:
    """Convert a ``bool`` into the stored text representation."""
    return "true" if value else "false"


# =============================================================================
# ARTICLE
# =============================================================================


@dataclass
class Article:
    """An article as seen by the scheduler.

    Attributes:
        id: Unique identifier (immutable).
        title: Article title, used for diagnostics only.
        status: Editorial status.
        published: Whether the article is live for readers.
        scheduled_publish_at: When the article should go live (aware UTC).
            ``None`` means no schedule is in effect.
        published_at: When the article actually went live (aware UTC).
    """

    id: Any
    title: str
    status: ArticleStatus
    published: bool = False
    scheduled_publish_at: Optional[datetime] = None
    published_at: Optional[datetime] = None

    def is_eligible(self, now: datetime) -> bool:
        """Check whether the article may be auto-published at *now*.

        True only for approved, not-yet-live articles whose schedule is set
        and not in the future.
        """
        if self.scheduled_publish_at is None:
            return False
        return (
            self.status is ArticleStatus.PUBLISHED
            and not self.published
            and ensure_utc(self.scheduled_publish_at) <= ensure_utc(now)
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Article":
        """Convert a store row dict to an ``Article``.

        Args:
            row: Dict from a store query result.

        Returns:
            An ``Article`` instance.

        Raises:
            InvalidTimestampError: If ``scheduled_publish_at`` cannot be
                parsed.  An unparseable ``published_at`` becomes ``None``.
            ValidationError: If ``status`` or ``published`` is malformed.
        """
        try:
            status = ArticleStatus(row.get("status", "draft"))
        except ValueError as exc:
            raise ValidationError(
                f"Invalid status for article {row.get('id')}: {row.get('status')!r}"
            ) from exc

        try:
            published_at = parse_timestamp(row.get("published_at"), "published_at")
        except InvalidTimestampError:
            # Overwritten when the article goes live
            published_at = None

        return cls(
            id=row["id"],
            title=row.get("title") or "",
            status=status,
            published=parse_published_flag(row.get("published")),
            scheduled_publish_at=parse_timestamp(
                row.get("scheduled_publish_at"), "scheduled_publish_at"
            ),
            published_at=published_at,
        )


# =============================================================================
# PUBLISH RESULT
# =============================================================================


@dataclass
class PublishResult:
    """Summary of one evaluator pass.

    Attributes:
        success: ``False`` only when the store failed during the pass.
        published: Number of articles made live in this pass.
        message: Human-readable summary or error detail.
        skipped: Number of due articles skipped because of invalid data.
        evaluated_at: The evaluation time used for the pass.
    """

    success: bool
    published: int
    message: str
    skipped: int = 0
    evaluated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict for logging."""
        return {
            "success": self.success,
            "published": self.published,
            "message": self.message,
            "skipped": self.skipped,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    "ArticleStatus",
    "Article",
    "PublishResult",
    "parse_published_flag",
    "serialize_published_flag",
]
