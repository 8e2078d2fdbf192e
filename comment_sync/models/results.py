"""
Result models for sync runs, workflows and notifications.

These are the outputs consumed by the reporting layer (main.py) and
by the email-dispatch collaborator.
"""

from pydantic import BaseModel, Field

from .work_item import WorkItem, WorkItemCategory


class WriteResult(BaseModel):
    """Outcome of writing one target record."""

    success: bool
    title: str
    discussion_id: str
    source_document_id: str | None = None
    record_id: str | None = None
    error: str | None = None


class BatchResult(BaseModel):
    """Outcome of a sequential write batch."""

    processed_count: int = Field(default=0, ge=0, description="Threads discovered this run")
    written_count: int = Field(default=0, ge=0, description="Records successfully created")
    error_count: int = Field(default=0, ge=0, description="Failed record writes")
    errors: list[WriteResult] = Field(default_factory=list)
    results: list[WriteResult] = Field(default_factory=list)


class StoreStats(BaseModel):
    """Snapshot of the target store size."""

    total_records: int = 0
    unique_discussion_ids: int = 0


class ProcessingStats(BaseModel):
    """Classification progress of target records."""

    total: int = 0
    processed: int = 0
    pending: int = 0
    processing_rate: float = 0.0


class NotificationPayload(BaseModel):
    """Email-ready notification content."""

    subject: str
    body_markdown: str
    body_html: str


class WorkflowResult(BaseModel):
    """Outcome of one work-item workflow run."""

    category: WorkItemCategory
    success: bool
    backlog_size: int = 0
    action_task_created: bool = False
    email_sent: bool = False
    open_task: WorkItem | None = None
    created_task: WorkItem | None = None
    statistics: ProcessingStats | None = None
    message: str = ""
    error: str | None = None
    duration_ms: float = 0.0


class SyncSummary(BatchResult):
    """
    Full summary of a sync run.

    Always produced, regardless of partial failures. schema_valid is False only
    when the run was aborted by target schema validation.
    """

    success: bool = True
    schema_valid: bool = True
    error: str | None = None
    duration_ms: float = 0.0
    before_stats: StoreStats | None = None
    after_stats: StoreStats | None = None
    reference_workflow: WorkflowResult | None = None
    card_workflow: WorkflowResult | None = None
