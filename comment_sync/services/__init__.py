"""
Services for comment sync.

Pipeline stages:
- TreeWalker: Flattens a document's content tree
- CommentAggregator: Groups annotations into classified threads
- filter_new_threads: Idempotence checkpoint against existing records
- ContentRenderer: Thread to target record
- RecordWriter: Schema validation and sequential writes

Follow-up:
- TaskGuard: At most one unresolved work item per category
- NotificationBuilder: Reminder and warning payloads
- WorkflowManager: Reference and card processing workflows

Orchestration:
- CommentSyncPipeline: Full sync run
"""

from comment_sync.services.comment_aggregator import CommentAggregator
from comment_sync.services.content_renderer import ContentRenderer
from comment_sync.services.deduplicator import filter_new_threads
from comment_sync.services.notifications import NotificationBuilder
from comment_sync.services.record_writer import RecordWriter
from comment_sync.services.sync_pipeline import CommentSyncPipeline
from comment_sync.services.task_guard import GuardDecision, GuardState, TaskGuard
from comment_sync.services.tree_walker import TreeWalker
from comment_sync.services.workflow import WorkflowManager

__all__ = [
    "TreeWalker",
    "CommentAggregator",
    "filter_new_threads",
    "ContentRenderer",
    "RecordWriter",
    "TaskGuard",
    "GuardState",
    "GuardDecision",
    "NotificationBuilder",
    "WorkflowManager",
    "CommentSyncPipeline",
]
