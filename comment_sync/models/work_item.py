"""Work item models used by the task guard and workflows."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class WorkItemStatus(str, Enum):
    """Work item lifecycle. Only a human moves an item to DONE."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class WorkItemCategory(str, Enum):
    """
    Work item categories. Each category has its own at-most-one-unresolved guard.

    - REFERENCE_PROCESSING: source documents still waiting for processing
      (pending-thread backlog)
    - CARD_PROCESSING: records still missing a classification
      (pending-classification backlog)
    """

    REFERENCE_PROCESSING = "reference_processing"
    CARD_PROCESSING = "card_processing"


class WorkItem(BaseModel):
    """An aggregate follow-up task tracked in the action store."""

    id: str | None = None
    title: str
    category: WorkItemCategory
    status: WorkItemStatus = WorkItemStatus.NOT_STARTED
    priority: str | None = None
    related_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    url: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.status == WorkItemStatus.DONE


class BacklogEntry(BaseModel):
    """One pending item summarized inside a work item or notification."""

    id: str
    title: str
    url: str = ""
    created_at: str | None = None
    discussion_id: str | None = None
    source_document_id: str | None = None
