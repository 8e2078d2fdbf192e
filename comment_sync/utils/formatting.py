"""
Formatting helpers shared by the renderer, task builder and notifications.
"""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

NOTION_WEB_BASE = "https://www.notion.so"


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (Notion uses a trailing ``Z``)."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def format_time(value: str | datetime | None, timezone: str = "Asia/Shanghai") -> str:
    """
    Format a timestamp for display, e.g. ``2024/01/15 14:30``.

    Naive datetimes are treated as UTC. Unparseable strings are returned as-is.

    Args:
        value: ISO string or datetime
        timezone: IANA zone name used for display

    Returns:
        Formatted timestamp string
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        return "" if value is None else str(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(ZoneInfo(timezone)).strftime("%Y/%m/%d %H:%M")


def format_datetime(value: datetime, timezone: str = "Asia/Shanghai") -> str:
    """Format a datetime with seconds in the display timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(ZoneInfo(timezone)).strftime("%Y/%m/%d %H:%M:%S")


def compact_timestamp(value: datetime) -> str:
    """UTC timestamp as ``YYYYMMDDHHMMSS`` for task titles and email subjects."""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime("%Y%m%d%H%M%S")


def page_url(page_id: str) -> str:
    """Public web URL of a Notion page."""
    return f"{NOTION_WEB_BASE}/{page_id.replace('-', '')}"


def short_id(identifier: str, length: int = 4) -> str:
    """Trailing characters of an identifier, used for anonymous display names."""
    return identifier[-length:] if identifier else ""
