"""
Record writer - validates the target schema and writes records one at a time.

Handles:
- Schema validation before any write (fatal on mismatch)
- Strictly sequential writes with a fixed delay between them
- Per-write outcome capture (failures never abort the batch)
- Target store statistics
"""

import asyncio

from comment_sync.config import PropertySchema, SyncConfig
from comment_sync.core.store.base import DocumentStore
from comment_sync.models.record import RecordFilter, TargetRecord
from comment_sync.models.results import BatchResult, StoreStats, WriteResult
from comment_sync.services.deduplicator import existing_discussion_ids
from comment_sync.utils.exceptions import FetchError, SchemaValidationError, StoreError
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)


class RecordWriter:
    """Writes rendered records into the target store."""

    def __init__(
        self,
        store: DocumentStore,
        properties: PropertySchema | None = None,
        config: SyncConfig | None = None,
    ):
        """
        Initialize record writer.

        Args:
            store: Document store
            properties: Property names checked by schema validation
            config: Sync configuration (write delay)
        """
        self.store = store
        self.properties = properties or PropertySchema()
        self.config = config or SyncConfig()

    def required_properties(self) -> dict[str, str]:
        """Property name -> expected type for every property a record write sets."""
        return {
            self.properties.target_title: "title",
            self.properties.target_discussion_id: "rich_text",
            self.properties.target_reference: "relation",
        }

    async def validate_schema(self) -> None:
        """
        Check that the target store has every property a write needs.

        Raises:
            SchemaValidationError: If the schema cannot be read, or a property is
                missing or has the wrong type
        """
        try:
            schema = await self.store.retrieve_target_schema()
        except FetchError as e:
            raise SchemaValidationError(
                f"Failed to read target schema: {e}", context={"error": str(e)}
            ) from e

        problems = []
        for name, expected in self.required_properties().items():
            actual = schema.get(name)
            if actual is None:
                problems.append(f"missing property '{name}' ({expected})")
            elif actual != expected:
                problems.append(f"property '{name}' is {actual}, expected {expected}")

        if problems:
            raise SchemaValidationError(
                f"Target schema validation failed: {'; '.join(problems)}",
                context={"problems": problems, "available": sorted(schema)},
            )

        logger.info("Target schema validated")

    async def write_record(self, record: TargetRecord) -> WriteResult:
        """Write one record, capturing failure instead of raising."""
        result = WriteResult(
            success=False,
            title=record.title,
            discussion_id=record.discussion_id,
            source_document_id=record.source_document_id,
        )
        try:
            result.record_id = await self.store.create_record(record)
            result.success = True
        except StoreError as e:
            result.error = str(e)
            logger.bind(discussion_id=record.discussion_id, error=str(e)).error(
                f"Failed to write record '{record.title}': {e}"
            )
        return result

    async def write_records(self, records: list[TargetRecord]) -> BatchResult:
        """
        Write records sequentially in the given order.

        The configured delay is applied between consecutive writes, not after
        the last one.

        Args:
            records: Rendered records, post-dedup discovery order

        Returns:
            BatchResult with one WriteResult per record
        """
        batch = BatchResult(processed_count=len(records))
        if not records:
            return batch

        logger.info(f"Writing {len(records)} records")

        for index, record in enumerate(records):
            if index > 0 and self.config.write_delay_seconds > 0:
                await asyncio.sleep(self.config.write_delay_seconds)

            result = await self.write_record(record)
            batch.results.append(result)
            if result.success:
                batch.written_count += 1
                logger.bind(record_id=result.record_id, discussion_id=record.discussion_id).info(
                    f"[{index + 1}/{len(records)}] Wrote record '{record.title}'"
                )
            else:
                batch.error_count += 1
                batch.errors.append(result)

        logger.bind(written=batch.written_count, failed=batch.error_count).info(
            f"Batch complete: {batch.written_count} written, {batch.error_count} failed"
        )
        return batch

    async def get_stats(self) -> StoreStats:
        """
        Count records carrying a discussion id.

        Raises:
            FetchError: If the query fails
        """
        records = await self.store.query_records(RecordFilter(require_discussion_id=True))
        return StoreStats(
            total_records=len(records),
            unique_discussion_ids=len(existing_discussion_ids(records)),
        )
