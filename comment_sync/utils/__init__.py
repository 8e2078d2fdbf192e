"""Utility modules for comment sync."""

from comment_sync.utils.exceptions import (
    CommentSyncError,
    ConfigurationError,
    FetchError,
    NotificationError,
    SchemaValidationError,
    StoreError,
    WriteError,
)
from comment_sync.utils.formatting import (
    compact_timestamp,
    format_datetime,
    format_time,
    page_url,
    parse_timestamp,
    short_id,
)
from comment_sync.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # Formatting
    "compact_timestamp",
    "format_datetime",
    "format_time",
    "page_url",
    "parse_timestamp",
    "short_id",
    # Exceptions
    "CommentSyncError",
    "StoreError",
    "FetchError",
    "WriteError",
    "SchemaValidationError",
    "ConfigurationError",
    "NotificationError",
]
