"""
Display time-zone conversion helpers.

Storage and every comparison happen in UTC.  The CMS shows times to editors in
a single civil zone (``Asia/Kolkata``, UTC+05:30, by default), so conversion
only ever happens at the edges: log formatting and parsing of editor input.

All helpers accept ``None`` and return ``None`` (or ``""`` for formatters) so
callers can pass optional article fields straight through.
"""

from datetime import datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from blog_scheduler.exceptions import ConfigurationError
from blog_scheduler.utils import ensure_utc, parse_timestamp, utc_now

DEFAULT_DISPLAY_TIMEZONE = "Asia/Kolkata"

TimestampLike = Union[str, datetime, None]


def get_zone(name: Optional[str] = None) -> ZoneInfo:
    """Resolve an IANA zone name, defaulting to the display zone.

    Raises:
        ConfigurationError: If the zone name is unknown.
    """
    name = name or DEFAULT_DISPLAY_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown time zone '{name}'") from exc


def utc_to_display(value: TimestampLike, tz: Optional[str] = None) -> Optional[datetime]:
    """Convert a UTC timestamp to an aware datetime in the display zone."""
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.astimezone(get_zone(tz))


def display_to_utc(value: TimestampLike, tz: Optional[str] = None) -> Optional[datetime]:
    """Convert display-zone input to aware UTC.

    Naive values are read as wall-clock time in the display zone, which is
    how editors enter schedule times.  Aware values are simply normalised.
    """
    if value is None:
        return None
    if isinstance(value, datetime) and value.tzinfo is None:
        return ensure_utc(value.replace(tzinfo=get_zone(tz)))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            naive = datetime.fromisoformat(text)
        except ValueError:
            naive = None
        if naive is not None and naive.tzinfo is None:
            return ensure_utc(naive.replace(tzinfo=get_zone(tz)))
    return parse_timestamp(value)


def format_display_date(value: TimestampLike, tz: Optional[str] = None) -> str:
    """Format a timestamp for humans, e.g. ``"May 2, 2025, 5:36 AM IST"``."""
    local = utc_to_display(value, tz)
    if local is None:
        return ""
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return (
        f"{local.strftime('%B')} {local.day}, {local.year}, "
        f"{hour}:{local.minute:02d} {meridiem} {local.tzname()}"
    )


def format_display_iso(value: TimestampLike, tz: Optional[str] = None) -> str:
    """ISO-8601 string of the timestamp expressed in the display zone."""
    local = utc_to_display(value, tz)
    if local is None:
        return ""
    return local.isoformat()


def now_in_display(tz: Optional[str] = None) -> datetime:
    """Current time as an aware datetime in the display zone."""
    return utc_now().astimezone(get_zone(tz))


def is_past(value: TimestampLike, now: Optional[datetime] = None) -> bool:
    """Whether a timestamp lies strictly before *now* (default: current time).

    Both sides are compared as UTC instants.
    """
    dt = parse_timestamp(value)
    if dt is None:
        return False
    reference = ensure_utc(now) if now is not None else utc_now()
    return dt < reference


__all__ = [
    "DEFAULT_DISPLAY_TIMEZONE",
    "get_zone",
    "utc_to_display",
    "display_to_utc",
    "format_display_date",
    "format_display_iso",
    "now_in_display",
    "is_past",
]
