"""
Workflow manager - follow-up work items after a sync batch.

Two workflows, each gated by the task guard of its own category:
- reference processing: source documents still unprocessed
- card processing: records still missing a classification

Flow per workflow:
backlog → (empty: done) → guard → create task + reminder | warning
"""

import time
from collections.abc import Awaitable, Callable

from comment_sync.config import Config
from comment_sync.core.notifier.base import Notifier
from comment_sync.core.store.base import DocumentStore
from comment_sync.models.document import SourceStatus
from comment_sync.models.record import RecordFilter
from comment_sync.models.results import ProcessingStats, WorkflowResult
from comment_sync.models.work_item import BacklogEntry, WorkItemCategory
from comment_sync.services.notifications import NotificationBuilder
from comment_sync.services.task_guard import TaskGuard
from comment_sync.utils.exceptions import CommentSyncError
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowManager:
    """Runs the reference and card processing workflows."""

    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier,
        config: Config,
        task_guard: TaskGuard | None = None,
        notifications: NotificationBuilder | None = None,
    ):
        """
        Initialize workflow manager.

        Args:
            store: Document store
            notifier: Notification delivery
            config: Full configuration
            task_guard: Guard instance (default: built from store and config)
            notifications: Payload builder (default: built from config)
        """
        self.store = store
        self.notifier = notifier
        self.config = config
        self.task_guard = task_guard or TaskGuard(
            store, config.workflow, config.properties, config.sync
        )
        self.notifications = notifications or NotificationBuilder(
            config.workflow, config.properties, config.sync
        )

    # ═══════════════════════════════════════════════════════════
    # BACKLOGS
    # ═══════════════════════════════════════════════════════════

    async def get_reference_backlog(self) -> list[BacklogEntry]:
        """Source documents still waiting for processing, newest first."""
        documents = await self.store.query_source_documents(SourceStatus.UNPROCESSED)
        return [
            BacklogEntry(
                id=document.id,
                title=document.title,
                url=document.url,
                created_at=document.created_at,
                source_document_id=document.id,
            )
            for document in documents
        ]

    async def get_card_backlog(self) -> list[BacklogEntry]:
        """Records with a discussion id and no classification, newest first."""
        records = await self.store.query_records(
            RecordFilter(require_discussion_id=True, classified=False, newest_first=True)
        )
        return [
            BacklogEntry(
                id=record.id,
                title=record.title,
                url=record.url,
                created_at=record.created_at,
                discussion_id=record.discussion_id,
                source_document_id=record.source_document_id,
            )
            for record in records
        ]

    async def get_processing_stats(self) -> ProcessingStats:
        """Classification progress across records that carry a discussion id."""
        records = await self.store.query_records(RecordFilter(require_discussion_id=True))
        total = len(records)
        processed = sum(1 for record in records if record.classified)
        return ProcessingStats(
            total=total,
            processed=processed,
            pending=total - processed,
            processing_rate=round(processed / total * 100, 1) if total else 0.0,
        )

    # ═══════════════════════════════════════════════════════════
    # WORKFLOWS
    # ═══════════════════════════════════════════════════════════

    async def run_reference_workflow(self) -> WorkflowResult:
        """Guarded work item for unprocessed source documents."""
        return await self._run(WorkItemCategory.REFERENCE_PROCESSING, self.get_reference_backlog)

    async def run_card_workflow(self) -> WorkflowResult:
        """Guarded work item for unclassified records, with processing statistics."""
        return await self._run(
            WorkItemCategory.CARD_PROCESSING,
            self.get_card_backlog,
            with_statistics=True,
        )

    async def run_all(self) -> tuple[WorkflowResult, WorkflowResult | None]:
        """
        Run the reference workflow, then the card workflow.

        The card workflow is skipped when the reference workflow failed or found
        an unresolved task.

        Returns:
            (reference_result, card_result or None when skipped)
        """
        reference = await self.run_reference_workflow()
        if not reference.success or reference.open_task is not None:
            logger.info("Skipping card workflow: reference workflow did not complete cleanly")
            return reference, None
        return reference, await self.run_card_workflow()

    async def _run(
        self,
        category: WorkItemCategory,
        load_backlog: Callable[[], Awaitable[list[BacklogEntry]]],
        with_statistics: bool = False,
    ) -> WorkflowResult:
        start_time = time.time()
        result = WorkflowResult(category=category, success=False)
        logger.info(f"Starting {category.value} workflow")

        try:
            if not self.config.notion.action_database_id:
                result.error = "Action database id is not configured"
                result.message = "Workflow skipped: action database not configured"
                logger.bind(category=category.value).error(result.error)
                return result

            if with_statistics:
                result.statistics = await self.get_processing_stats()

            backlog = await load_backlog()
            result.backlog_size = len(backlog)
            if not backlog:
                result.success = True
                result.message = "No pending items, nothing to do"
                logger.info(f"{category.value}: backlog empty")
                return result

            decision = await self.task_guard.evaluate(category)
            if not decision.may_create:
                result.open_task = decision.open_task
                payload = self.notifications.build_warning(category, backlog, decision.open_task)
                result.email_sent = await self.notifier.send(payload)
                result.success = True
                result.message = (
                    f"Unresolved task exists ({decision.open_task.title}); "
                    f"no new task created, warning sent: {result.email_sent}"
                )
                return result

            task = await self.task_guard.create_task(category, backlog)
            result.created_task = task
            result.action_task_created = True
            payload = self.notifications.build_reminder(category, backlog, task)
            result.email_sent = await self.notifier.send(payload)
            result.success = True
            result.message = (
                f"Created task {task.title} for {len(backlog)} items, "
                f"reminder sent: {result.email_sent}"
            )
            return result

        except CommentSyncError as e:
            result.success = False
            result.error = str(e)
            result.message = f"{category.value} workflow failed"
            logger.bind(category=category.value, error=str(e)).error(
                f"{category.value} workflow failed: {e}"
            )
            return result

        finally:
            result.duration_ms = (time.time() - start_time) * 1000
            logger.bind(category=category.value, success=result.success).info(
                f"{category.value} workflow finished in {result.duration_ms:.0f}ms"
            )
