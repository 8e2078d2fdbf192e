"""
Data models for comment sync.

Source side:
- Node, Annotation, ChildrenPage: document tree and comments
- SourceDocument, SourceStatus: documents whose comments are synchronized

Pipeline:
- Thread, CommentKind: grouped and classified discussions
- Block, BlockType, TargetRecord: rendered output rows
- StoredRecord, RecordFilter: records read back from the target store

Workflow:
- WorkItem, WorkItemStatus, WorkItemCategory, BacklogEntry

Results:
- WriteResult, BatchResult, SyncSummary, StoreStats
- WorkflowResult, ProcessingStats, NotificationPayload
"""

from comment_sync.models.document import (
    Annotation,
    ChildrenPage,
    Node,
    SourceDocument,
    SourceStatus,
)
from comment_sync.models.record import (
    Block,
    BlockType,
    RecordFilter,
    StoredRecord,
    TargetRecord,
)
from comment_sync.models.results import (
    BatchResult,
    NotificationPayload,
    ProcessingStats,
    StoreStats,
    SyncSummary,
    WorkflowResult,
    WriteResult,
)
from comment_sync.models.thread import CommentKind, Thread
from comment_sync.models.work_item import (
    BacklogEntry,
    WorkItem,
    WorkItemCategory,
    WorkItemStatus,
)

__all__ = [
    # Source models
    "Node",
    "Annotation",
    "ChildrenPage",
    "SourceDocument",
    "SourceStatus",
    # Pipeline models
    "Thread",
    "CommentKind",
    "Block",
    "BlockType",
    "TargetRecord",
    "StoredRecord",
    "RecordFilter",
    # Workflow models
    "WorkItem",
    "WorkItemStatus",
    "WorkItemCategory",
    "BacklogEntry",
    # Result models
    "WriteResult",
    "BatchResult",
    "SyncSummary",
    "StoreStats",
    "ProcessingStats",
    "WorkflowResult",
    "NotificationPayload",
]
