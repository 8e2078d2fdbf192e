"""
Factory modules for creating comment sync components.

Provides factories for the document store and the notifier.
"""

from comment_sync.core.factory.notifier_factory import NotifierFactory
from comment_sync.core.factory.store_factory import DocumentStoreFactory

__all__ = [
    "DocumentStoreFactory",
    "NotifierFactory",
]
