"""
Custom exception hierarchy for comment sync.

Every error raised by the package inherits from CommentSyncError so callers
can catch the whole family at the run boundary.
"""


class CommentSyncError(Exception):
    """
    Base exception for all comment sync errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize comment sync error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(CommentSyncError):
    """
    Base exception for document store operations.
    """

    pass


class FetchError(StoreError):
    """
    Read failures against the document store.
    Raised when a page of children, an annotation list or a query cannot be retrieved.
    """

    pass


class WriteError(StoreError):
    """
    Write failures against the document store.
    Raised when a record, work item or status update cannot be persisted.
    """

    pass


class SchemaValidationError(CommentSyncError):
    """
    Target store schema errors.
    Raised when a required property is missing or has the wrong type. Fatal for a run.
    """

    pass


class ConfigurationError(CommentSyncError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass


class NotificationError(CommentSyncError):
    """
    Notification delivery errors.
    Never escapes a notifier; used to label failures in logs.
    """

    pass
