"""Document store backends."""

from .base import DocumentStore
from .notion import NotionStore

__all__ = ["DocumentStore", "NotionStore"]
