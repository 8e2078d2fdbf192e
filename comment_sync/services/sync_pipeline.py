"""
Comment sync pipeline - one run-to-completion sync.

Steps:
1. Validate the target schema (fatal on failure, before any write)
2. Snapshot store statistics
3. Discover unprocessed source documents
4. Walk each document and aggregate threads
5. Drop threads whose discussion id already exists
6. Render and write records sequentially
7. Mark documents with at least one written record as processed
8. Run follow-up work item workflows
9. Snapshot store statistics again
"""

import time

from comment_sync.config import Config
from comment_sync.core.notifier.base import Notifier
from comment_sync.core.store.base import DocumentStore
from comment_sync.models.document import SourceDocument, SourceStatus
from comment_sync.models.results import StoreStats, SyncSummary, WriteResult
from comment_sync.services.comment_aggregator import CommentAggregator
from comment_sync.services.content_renderer import ContentRenderer
from comment_sync.services.deduplicator import existing_discussion_ids, filter_new_threads
from comment_sync.services.record_writer import RecordWriter
from comment_sync.services.tree_walker import TreeWalker
from comment_sync.services.workflow import WorkflowManager
from comment_sync.utils.exceptions import CommentSyncError, SchemaValidationError, StoreError
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)


class CommentSyncPipeline:
    """
    Orchestrates a full sync run.

    A run always returns a SyncSummary. Only schema validation failures mark
    the summary with schema_valid=False; every other failure is recorded and
    the run continues where it can.
    """

    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier,
        config: Config,
        run_workflows: bool = True,
    ):
        """
        Initialize sync pipeline.

        Args:
            store: Document store
            notifier: Notification delivery for workflows
            config: Full configuration
            run_workflows: Run the work item workflows after the batch
        """
        self.store = store
        self.notifier = notifier
        self.config = config
        self.run_workflows = run_workflows

        self.tree_walker = TreeWalker(store)
        self.aggregator = CommentAggregator(store, self.tree_walker)
        self.renderer = ContentRenderer(config.sync)
        self.writer = RecordWriter(store, config.properties, config.sync)
        self.workflows = WorkflowManager(store, notifier, config)

    async def sync(self) -> SyncSummary:
        """
        Run one sync.

        Returns:
            SyncSummary with counts, per-write failures, statistics and workflow results
        """
        start_time = time.time()
        summary = SyncSummary()
        logger.info("Starting comment sync")

        try:
            await self.writer.validate_schema()
            summary.before_stats = await self._safe_stats()

            documents = await self.store.query_source_documents(SourceStatus.UNPROCESSED)
            if not documents:
                logger.info("No unprocessed source documents")

            threads = await self.aggregator.collect_threads(documents)
            summary.processed_count = len(threads)

            existing = existing_discussion_ids(await self.store.query_records())
            new_threads = filter_new_threads(threads, existing)
            logger.bind(candidates=len(threads), new=len(new_threads)).info(
                f"{len(new_threads)} new threads after dedup "
                f"({len(threads) - len(new_threads)} already synced)"
            )

            batch = await self.writer.write_records(self.renderer.render_all(new_threads))
            summary.written_count = batch.written_count
            summary.error_count = batch.error_count
            summary.errors = batch.errors
            summary.results = batch.results

            await self._propagate_status(documents, batch.results)

            if self.run_workflows:
                summary.reference_workflow, summary.card_workflow = await self.workflows.run_all()

            summary.after_stats = await self._safe_stats()

        except SchemaValidationError as e:
            summary.success = False
            summary.schema_valid = False
            summary.error = str(e)
            logger.error(f"Schema validation failed, aborting run: {e}")

        except CommentSyncError as e:
            summary.success = False
            summary.error = str(e)
            logger.bind(error=str(e)).error(f"Sync failed: {e}")

        summary.duration_ms = (time.time() - start_time) * 1000
        logger.bind(
            success=summary.success,
            processed=summary.processed_count,
            written=summary.written_count,
            failed=summary.error_count,
        ).info(
            f"Sync finished in {summary.duration_ms:.0f}ms: "
            f"{summary.processed_count} processed, {summary.written_count} written, "
            f"{summary.error_count} failed"
        )
        return summary

    async def _propagate_status(
        self, documents: list[SourceDocument], results: list[WriteResult]
    ) -> None:
        """Mark documents with at least one successful write as processed."""
        written_ids = {
            result.source_document_id
            for result in results
            if result.success and result.source_document_id
        }
        for document in documents:
            if document.id not in written_ids:
                continue
            try:
                await self.store.update_source_status(document.id, SourceStatus.PROCESSED)
            except StoreError as e:
                logger.bind(document_id=document.id, error=str(e)).error(
                    f"Failed to update status of source document {document.id}: {e}"
                )

    async def _safe_stats(self) -> StoreStats | None:
        try:
            return await self.writer.get_stats()
        except StoreError as e:
            logger.warning(f"Failed to compute store statistics: {e}")
            return None
