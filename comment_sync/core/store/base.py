"""
Base interface for the document store.

The store is the only collaborator that touches the network. Every method is
a suspending operation; implementations raise FetchError for reads and
WriteError for writes so the services can apply their failure policy.
"""

from abc import ABC, abstractmethod

from comment_sync.models.document import Annotation, ChildrenPage, SourceDocument, SourceStatus
from comment_sync.models.record import Block, RecordFilter, StoredRecord, TargetRecord
from comment_sync.models.work_item import WorkItem, WorkItemCategory


class DocumentStore(ABC):
    """Abstract base class for document store implementations."""

    # ═══════════════════════════════════════════════════════════
    # SOURCE DOCUMENTS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def list_children(self, node_id: str, cursor: str | None = None) -> ChildrenPage:
        """
        Fetch one page of a node's children.

        Args:
            node_id: Parent node or document id
            cursor: Continuation cursor from the previous page (None for the first page)

        Returns:
            Page with items, next_cursor and has_more
        """
        pass

    @abstractmethod
    async def list_annotations(self, node_id: str) -> list[Annotation]:
        """
        Fetch every annotation attached to a node.

        Args:
            node_id: Node identifier

        Returns:
            Annotations in store order
        """
        pass

    @abstractmethod
    async def query_source_documents(self, status: SourceStatus) -> list[SourceDocument]:
        """
        Query source documents by automation status, newest first.

        Args:
            status: Status to match

        Returns:
            Matching source documents
        """
        pass

    @abstractmethod
    async def update_source_status(self, document_id: str, status: SourceStatus) -> None:
        """
        Set the automation status of a source document.

        Args:
            document_id: Source document id
            status: New status
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # TARGET RECORDS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def retrieve_target_schema(self) -> dict[str, str]:
        """
        Read the target store schema.

        Returns:
            Mapping of property name to property type
        """
        pass

    @abstractmethod
    async def query_records(self, record_filter: RecordFilter | None = None) -> list[StoredRecord]:
        """
        Query target records.

        Args:
            record_filter: Filter conditions (default: records with a discussion id)

        Returns:
            Every matching record (all pages)
        """
        pass

    @abstractmethod
    async def create_record(self, record: TargetRecord) -> str:
        """
        Create one target record.

        Args:
            record: Rendered record

        Returns:
            Created record id
        """
        pass

    # ═══════════════════════════════════════════════════════════
    # WORK ITEMS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    async def query_work_items(
        self, category: WorkItemCategory, unresolved_only: bool = True
    ) -> list[WorkItem]:
        """
        Query work items of a category, most recent first.

        Args:
            category: Work item category
            unresolved_only: Only return items whose status is not DONE

        Returns:
            Matching work items
        """
        pass

    @abstractmethod
    async def create_work_item(self, item: WorkItem, blocks: list[Block]) -> str:
        """
        Create one work item.

        Args:
            item: Work item properties
            blocks: Body content

        Returns:
            Created work item id
        """
        pass

    async def close(self) -> None:
        """Release connections. Optional to override."""
        return None
