"""
Shared fixtures for all test modules.

FakeDocumentStore is an in-memory DocumentStore with switchable failures;
RecordingNotifier captures payloads instead of sending email.
"""

from datetime import UTC, datetime, timedelta

import pytest

from comment_sync.config import Config, EmailConfig, NotionConfig, SyncConfig
from comment_sync.core.notifier.base import Notifier
from comment_sync.core.store.base import DocumentStore
from comment_sync.models.document import (
    Annotation,
    ChildrenPage,
    Node,
    SourceDocument,
    SourceStatus,
)
from comment_sync.models.record import Block, RecordFilter, StoredRecord, TargetRecord
from comment_sync.models.results import NotificationPayload
from comment_sync.models.work_item import WorkItem, WorkItemCategory
from comment_sync.utils.exceptions import ConfigurationError, FetchError, WriteError

BASE_TIME = datetime(2024, 1, 15, 6, 0, tzinfo=UTC)

TARGET_SCHEMA = {
    "卡片笔记": "title",
    "DiscussionID": "rich_text",
    "Reference": "relation",
    "它在解决什么问题？": "multi_select",
}


class FakeDocumentStore(DocumentStore):
    """In-memory document store."""

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.children: dict[str, list[Node]] = {}
        self.annotations: dict[str, list[Annotation]] = {}
        self.source_documents: dict[str, SourceDocument] = {}
        self.records: list[StoredRecord] = []
        self.work_items: list[WorkItem] = []
        self.schema: dict[str, str] = dict(TARGET_SCHEMA)
        self.action_configured = True

        # Failure switches
        self.failing_children: dict[str, int] = {}  # node id -> offset at which fetching fails
        self.failing_annotations: set[str] = set()
        self.failing_writes: set[str] = set()  # discussion ids
        self.failing_status_updates: set[str] = set()
        self.failing_work_item_creation = False

        # Call log
        self.children_calls: list[tuple[str, str | None]] = []
        self.created_records: list[TargetRecord] = []
        self.created_work_items: list[tuple[WorkItem, list[Block]]] = []
        self.status_updates: list[tuple[str, SourceStatus]] = []
        self.closed = False

    # Seeding helpers

    def add_children(self, parent_id: str, nodes: list[Node]) -> None:
        self.children[parent_id] = nodes

    def add_annotations(self, node_id: str, annotations: list[Annotation]) -> None:
        self.annotations.setdefault(node_id, []).extend(annotations)

    def add_source_document(
        self, document_id: str, status: SourceStatus = SourceStatus.UNPROCESSED
    ) -> SourceDocument:
        document = SourceDocument(
            id=document_id,
            title=f"Document {document_id}",
            url=f"https://notion.so/{document_id}",
            created_at="2024-01-10T00:00:00.000Z",
            status=status,
        )
        self.source_documents[document_id] = document
        return document

    def add_record(self, discussion_id: str, classified: bool = False) -> StoredRecord:
        record = StoredRecord(
            id=f"existing-{len(self.records) + 1}",
            title=f"Existing {discussion_id}",
            discussion_id=discussion_id,
            classified=classified,
            created_at=(BASE_TIME + timedelta(minutes=len(self.records))).isoformat(),
            url=f"https://www.notion.so/existing{len(self.records) + 1}",
        )
        self.records.append(record)
        return record

    # DocumentStore

    async def list_children(self, node_id: str, cursor: str | None = None) -> ChildrenPage:
        self.children_calls.append((node_id, cursor))
        start = int(cursor or 0)
        fail_at = self.failing_children.get(node_id)
        if fail_at is not None and start >= fail_at:
            raise FetchError(f"children of {node_id} unavailable", context={"node_id": node_id})

        items = self.children.get(node_id, [])
        end = start + self.page_size
        has_more = end < len(items)
        return ChildrenPage(
            items=items[start:end],
            next_cursor=str(end) if has_more else None,
            has_more=has_more,
        )

    async def list_annotations(self, node_id: str) -> list[Annotation]:
        if node_id in self.failing_annotations:
            raise FetchError(f"annotations of {node_id} unavailable")
        return list(self.annotations.get(node_id, []))

    async def query_source_documents(self, status: SourceStatus) -> list[SourceDocument]:
        return [doc for doc in self.source_documents.values() if doc.status == status]

    async def update_source_status(self, document_id: str, status: SourceStatus) -> None:
        if document_id in self.failing_status_updates:
            raise WriteError(f"status update of {document_id} rejected")
        self.status_updates.append((document_id, status))
        document = self.source_documents[document_id]
        self.source_documents[document_id] = document.model_copy(update={"status": status})

    async def retrieve_target_schema(self) -> dict[str, str]:
        return dict(self.schema)

    async def query_records(self, record_filter: RecordFilter | None = None) -> list[StoredRecord]:
        record_filter = record_filter or RecordFilter()
        records = list(self.records)
        if record_filter.require_discussion_id:
            records = [r for r in records if r.discussion_id]
        if record_filter.classified is not None:
            records = [r for r in records if r.classified == record_filter.classified]
        if record_filter.newest_first:
            records.reverse()
        return records

    async def create_record(self, record: TargetRecord) -> str:
        if record.discussion_id in self.failing_writes:
            raise WriteError(f"write of {record.discussion_id} rejected")
        record_id = f"record-{len(self.created_records) + 1}"
        self.created_records.append(record)
        self.records.append(
            StoredRecord(
                id=record_id,
                title=record.title,
                discussion_id=record.discussion_id,
                source_document_id=record.source_document_id or "",
                url=f"https://www.notion.so/{record_id}",
            )
        )
        return record_id

    async def query_work_items(
        self, category: WorkItemCategory, unresolved_only: bool = True
    ) -> list[WorkItem]:
        if not self.action_configured:
            raise ConfigurationError("Action database id is not configured")
        items = [
            item
            for item in self.work_items
            if item.category == category and not (unresolved_only and item.is_resolved)
        ]
        return sorted(items, key=lambda item: item.created_at, reverse=True)

    async def create_work_item(self, item: WorkItem, blocks: list[Block]) -> str:
        if self.failing_work_item_creation:
            raise WriteError("work item creation rejected")
        work_item_id = f"task-{len(self.created_work_items) + 1}"
        stored = item.model_copy(update={"id": work_item_id})
        self.work_items.append(stored)
        self.created_work_items.append((stored, blocks))
        return work_item_id

    async def close(self) -> None:
        self.closed = True


class RecordingNotifier(Notifier):
    """Notifier that records payloads."""

    def __init__(self, configured: bool = True, deliver: bool = True):
        self.configured = configured
        self.deliver = deliver
        self.sent: list[NotificationPayload] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def send(self, payload: NotificationPayload) -> bool:
        if not self.configured:
            return False
        self.sent.append(payload)
        return self.deliver


# Fixtures


@pytest.fixture
def fake_store():
    """Empty in-memory store with page size 2."""
    return FakeDocumentStore()


@pytest.fixture
def notifier():
    """Notifier that records every payload."""
    return RecordingNotifier()


@pytest.fixture
def config():
    """Configuration with an action database and no write delay."""
    return Config(
        notion=NotionConfig(
            token="secret-token",
            source_database_id="source-db",
            target_database_id="target-db",
            action_database_id="action-db",
        ),
        sync=SyncConfig(write_delay_seconds=0),
        email=EmailConfig(),
    )


@pytest.fixture
def make_node():
    """Factory for paragraph nodes."""

    def _make(node_id: str, text: str = "", kind: str = "paragraph", has_children: bool = False):
        return Node(id=node_id, kind=kind, text=text, has_children=has_children)

    return _make


@pytest.fixture
def make_annotation():
    """Factory for annotations; minutes offsets created_at from a fixed base time."""
    counter = iter(range(1, 10_000))

    def _make(
        text: str,
        discussion_id: str = "d1",
        node_id: str = "n1",
        minutes: int = 0,
        author_name: str | None = None,
        author_id: str | None = None,
    ):
        return Annotation(
            id=f"c{next(counter)}",
            discussion_id=discussion_id,
            node_id=node_id,
            created_at=BASE_TIME + timedelta(minutes=minutes),
            text=text,
            author_id=author_id,
            author_name=author_name,
        )

    return _make
