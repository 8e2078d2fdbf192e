"""
Notion-backed document store using the public REST API over httpx.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx

from comment_sync.config import PropertySchema, WorkflowConfig
from comment_sync.core.store import notion_properties as props
from comment_sync.core.store.base import DocumentStore
from comment_sync.models.document import (
    Annotation,
    ChildrenPage,
    Node,
    SourceDocument,
    SourceStatus,
)
from comment_sync.models.record import Block, RecordFilter, StoredRecord, TargetRecord
from comment_sync.models.work_item import WorkItem, WorkItemCategory, WorkItemStatus
from comment_sync.utils.exceptions import (
    ConfigurationError,
    FetchError,
    StoreError,
    WriteError,
)
from comment_sync.utils.formatting import page_url, parse_timestamp
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)

RETRYABLE_STATUS = frozenset({409, 429, 500, 502, 503, 504})
# Statuses for which Notion applied nothing
UNAPPLIED_STATUS = frozenset({409, 429})
# Failed before the request was sent
UNSENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


class NotionStore(DocumentStore):
    """
    Document store backed by three Notion databases.

    - source database: annotated documents with an automation status
    - target database: one record per accepted thread
    - action database: work items (optional)
    """

    def __init__(
        self,
        token: str | None,
        source_database_id: str | None,
        target_database_id: str | None,
        action_database_id: str | None = None,
        properties: PropertySchema | None = None,
        workflow: WorkflowConfig | None = None,
        base_url: str = "https://api.notion.com/v1",
        api_version: str = "2022-06-28",
        source_database_url: str | None = None,
        timeout: float = 30.0,
        page_size: int = 100,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize Notion store.

        Args:
            token: Integration token
            source_database_id: Database of annotated documents
            target_database_id: Database receiving records
            action_database_id: Database receiving work items
            properties: Property names and status values
            workflow: Work item labels and priorities
            base_url: API base URL
            api_version: Value of the Notion-Version header
            source_database_url: Optional web URL used for source document links
            timeout: Request timeout in seconds
            page_size: Page size for paginated endpoints (max 100)
            max_retries: Attempts per request for retryable failures
            retry_delay: Base delay for exponential backoff in seconds
            transport: Optional httpx transport (tests)

        Raises:
            ConfigurationError: If the token or a required database id is missing
        """
        if not token:
            raise ConfigurationError("Notion token is required (COMMENT_SYNC_NOTION_TOKEN)")
        if not source_database_id or not target_database_id:
            raise ConfigurationError(
                "Source and target database ids are required",
                context={
                    "source_database_id": source_database_id,
                    "target_database_id": target_database_id,
                },
            )

        self.source_database_id = source_database_id
        self.target_database_id = target_database_id
        self.action_database_id = action_database_id
        self.properties = properties or PropertySchema()
        self.workflow = workflow or WorkflowConfig()
        self.source_database_url = source_database_url
        self.page_size = min(page_size, 100)
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Notion-Version": api_version,
                "Content-Type": "application/json",
            },
        )

        logger.bind(
            source_database_id=source_database_id,
            target_database_id=target_database_id,
            action_database_id=action_database_id,
        ).info("NotionStore initialized")

    # ═══════════════════════════════════════════════════════════
    # HTTP
    # ═══════════════════════════════════════════════════════════

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        error_cls: type[StoreError] = FetchError,
        idempotent: bool = True,
    ) -> dict[str, Any]:
        """
        Send a request, retrying rate limits, server errors and transport errors
        with exponential backoff.

        Non-idempotent requests (page creation and appends) are retried only when Notion
        reports that nothing was applied (409, 429) or the connection was never
        established. Any other failure of such a request is raised on the first
        attempt, since the page may already exist.

        Raises:
            error_cls: If the request fails permanently or retries are exhausted
        """
        operation = f"{method} {path}"
        last_error: str | None = None

        for attempt in range(self.max_retries):
            try:
                response = await self.client.request(method, path, params=params, json=json)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
                if not idempotent and not isinstance(e, UNSENT_ERRORS):
                    raise error_cls(
                        f"{operation} failed: {last_error}",
                        context={"operation": operation},
                    ) from e
            else:
                if response.status_code < 400:
                    return response.json()
                message = _error_message(response)
                retryable = RETRYABLE_STATUS if idempotent else UNAPPLIED_STATUS
                if response.status_code not in retryable:
                    raise error_cls(
                        f"{operation} failed with {response.status_code}: {message}",
                        context={"operation": operation, "status_code": response.status_code},
                    )
                last_error = f"{response.status_code}: {message}"

            if attempt < self.max_retries - 1:
                delay = self.retry_delay * (2**attempt)
                logger.bind(operation=operation, attempt=attempt + 1).warning(
                    f"{operation} failed (attempt {attempt + 1}/{self.max_retries}): {last_error}. "
                    f"Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)

        raise error_cls(
            f"{operation} failed after {self.max_retries} attempts: {last_error}",
            context={"operation": operation, "max_retries": self.max_retries},
        )

    async def _create_page(
        self, database_id: str, properties: dict[str, Any], blocks: list[Block]
    ) -> dict[str, Any]:
        """
        Create a page under a database.

        Children beyond the per-request limit are appended to the new page in
        batches after it exists.
        """
        children = [props.block_to_notion(block) for block in blocks]
        limit = props.MAX_CHILDREN
        response = await self._request(
            "POST",
            "/pages",
            json={
                "parent": {"database_id": database_id},
                "properties": properties,
                "children": children[:limit],
            },
            error_cls=WriteError,
            idempotent=False,
        )
        for start in range(limit, len(children), limit):
            await self._request(
                "PATCH",
                f"/blocks/{response['id']}/children",
                json={"children": children[start : start + limit]},
                error_cls=WriteError,
                idempotent=False,
            )
        return response

    async def _query_database(self, database_id: str, body: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a database query across every page of results."""
        results: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            payload = {**body, "page_size": self.page_size}
            if cursor:
                payload["start_cursor"] = cursor
            response = await self._request("POST", f"/databases/{database_id}/query", json=payload)
            results.extend(response.get("results") or [])
            if not response.get("has_more"):
                return results
            cursor = response.get("next_cursor")

    # ═══════════════════════════════════════════════════════════
    # SOURCE DOCUMENTS
    # ═══════════════════════════════════════════════════════════

    async def list_children(self, node_id: str, cursor: str | None = None) -> ChildrenPage:
        params: dict[str, Any] = {"page_size": self.page_size}
        if cursor:
            params["start_cursor"] = cursor
        response = await self._request("GET", f"/blocks/{node_id}/children", params=params)

        items = [
            Node(
                id=block["id"],
                kind=block.get("type") or "unsupported",
                text=props.get_block_text(block),
                has_children=bool(block.get("has_children")),
                parent_id=node_id,
            )
            for block in response.get("results") or []
        ]
        return ChildrenPage(
            items=items,
            next_cursor=response.get("next_cursor"),
            has_more=bool(response.get("has_more")),
        )

    async def list_annotations(self, node_id: str) -> list[Annotation]:
        annotations: list[Annotation] = []
        cursor: str | None = None

        while True:
            params: dict[str, Any] = {"block_id": node_id, "page_size": self.page_size}
            if cursor:
                params["start_cursor"] = cursor
            response = await self._request("GET", "/comments", params=params)

            for comment in response.get("results") or []:
                author_id, author_name = props.get_user(comment)
                annotations.append(
                    Annotation(
                        id=comment["id"],
                        discussion_id=comment.get("discussion_id") or comment["id"],
                        node_id=node_id,
                        created_at=parse_timestamp(comment.get("created_time"))
                        or datetime.now(UTC),
                        text=props.plain_text(comment.get("rich_text")).strip(),
                        author_id=author_id,
                        author_name=author_name,
                    )
                )

            if not response.get("has_more"):
                return annotations
            cursor = response.get("next_cursor")

    async def query_source_documents(self, status: SourceStatus) -> list[SourceDocument]:
        body = {
            "filter": {
                "property": self.properties.source_status,
                "select": {"equals": self._source_status_name(status)},
            },
            "sorts": [{"property": self.properties.source_created, "direction": "descending"}],
        }
        pages = await self._query_database(self.source_database_id, body)

        documents = [
            SourceDocument(
                id=page["id"],
                title=props.get_title(page.get("properties"), self.properties.source_title)
                or "未知标题",
                url=self.source_document_url(page["id"]),
                created_at=props.get_created_time(
                    page.get("properties"), self.properties.source_created
                )
                or page.get("created_time"),
                status=status,
            )
            for page in pages
        ]
        logger.info(f"Found {len(documents)} source documents with status '{status.value}'")
        return documents

    async def update_source_status(self, document_id: str, status: SourceStatus) -> None:
        await self._request(
            "PATCH",
            f"/pages/{document_id}",
            json={
                "properties": {
                    self.properties.source_status: props.select_value(
                        self._source_status_name(status)
                    )
                }
            },
            error_cls=WriteError,
        )
        logger.info(f"Updated status to '{status.value}' for source document: {document_id}")

    # ═══════════════════════════════════════════════════════════
    # TARGET RECORDS
    # ═══════════════════════════════════════════════════════════

    async def retrieve_target_schema(self) -> dict[str, str]:
        response = await self._request("GET", f"/databases/{self.target_database_id}")
        return {
            name: prop.get("type", "")
            for name, prop in (response.get("properties") or {}).items()
            if isinstance(prop, dict)
        }

    async def query_records(self, record_filter: RecordFilter | None = None) -> list[StoredRecord]:
        record_filter = record_filter or RecordFilter()
        conditions: list[dict[str, Any]] = []
        if record_filter.require_discussion_id:
            conditions.append(
                {
                    "property": self.properties.target_discussion_id,
                    "rich_text": {"is_not_empty": True},
                }
            )
        if record_filter.classified is not None:
            check = "is_not_empty" if record_filter.classified else "is_empty"
            conditions.append(
                {
                    "property": self.properties.target_classification,
                    "multi_select": {check: True},
                }
            )

        body: dict[str, Any] = {}
        if len(conditions) == 1:
            body["filter"] = conditions[0]
        elif conditions:
            body["filter"] = {"and": conditions}
        if record_filter.newest_first:
            body["sorts"] = [{"timestamp": "created_time", "direction": "descending"}]

        pages = await self._query_database(self.target_database_id, body)
        return [self._to_stored_record(page) for page in pages]

    async def create_record(self, record: TargetRecord) -> str:
        properties: dict[str, Any] = {
            self.properties.target_title: props.title_value(record.title),
            self.properties.target_discussion_id: props.rich_text_value(record.discussion_id),
        }
        if record.source_document_id:
            properties[self.properties.target_reference] = props.relation_value(
                [record.source_document_id]
            )

        response = await self._create_page(self.target_database_id, properties, record.blocks)
        logger.bind(record_id=response["id"], discussion_id=record.discussion_id).debug(
            f"Record created: {response['id']}"
        )
        return response["id"]

    # ═══════════════════════════════════════════════════════════
    # WORK ITEMS
    # ═══════════════════════════════════════════════════════════

    async def query_work_items(
        self, category: WorkItemCategory, unresolved_only: bool = True
    ) -> list[WorkItem]:
        database_id = self._require_action_database()
        conditions: list[dict[str, Any]] = [
            {
                "property": self.properties.task_title,
                "title": {"contains": self.workflow.label_for(category)},
            }
        ]
        if unresolved_only:
            conditions.append(
                {
                    "property": self.properties.task_status,
                    "status": {"does_not_equal": self.properties.task_done},
                }
            )
        body = {
            "filter": {"and": conditions},
            "sorts": [{"property": self.properties.task_created, "direction": "descending"}],
        }
        pages = await self._query_database(database_id, body)
        return [self._to_work_item(page, category) for page in pages]

    async def create_work_item(self, item: WorkItem, blocks: list[Block]) -> str:
        database_id = self._require_action_database()
        properties: dict[str, Any] = {
            self.properties.task_title: props.title_value(item.title),
            self.properties.task_status: props.status_value(self._task_status_name(item.status)),
            self.properties.task_deadline: props.date_value(item.created_at.date().isoformat()),
        }
        if item.priority:
            properties[self.properties.task_priority] = props.select_value(item.priority)
        if item.related_ids:
            properties[self.properties.task_reference] = props.relation_value(item.related_ids)

        response = await self._create_page(database_id, properties, blocks)
        logger.bind(work_item_id=response["id"]).info(f"Work item created: {item.title}")
        return response["id"]

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    # ═══════════════════════════════════════════════════════════
    # MAPPING HELPERS
    # ═══════════════════════════════════════════════════════════

    def source_document_url(self, document_id: str) -> str:
        compact = document_id.replace("-", "")
        if self.source_database_url:
            return f"{self.source_database_url}?p={compact}"
        return f"https://notion.so/{compact}"

    def _require_action_database(self) -> str:
        if not self.action_database_id:
            raise ConfigurationError("Action database id is not configured")
        return self.action_database_id

    def _source_status_name(self, status: SourceStatus) -> str:
        if status == SourceStatus.PROCESSED:
            return self.properties.status_processed
        return self.properties.status_unprocessed

    def _task_status_name(self, status: WorkItemStatus) -> str:
        return {
            WorkItemStatus.NOT_STARTED: self.properties.task_not_started,
            WorkItemStatus.IN_PROGRESS: self.properties.task_in_progress,
            WorkItemStatus.DONE: self.properties.task_done,
        }[status]

    def _parse_task_status(self, name: str | None) -> WorkItemStatus:
        if name == self.properties.task_done:
            return WorkItemStatus.DONE
        if name == self.properties.task_in_progress:
            return WorkItemStatus.IN_PROGRESS
        return WorkItemStatus.NOT_STARTED

    def _to_stored_record(self, page: dict[str, Any]) -> StoredRecord:
        properties = page.get("properties")
        related = props.get_relation_ids(properties, self.properties.target_reference)
        return StoredRecord(
            id=page["id"],
            title=props.get_title(properties, self.properties.target_title),
            discussion_id=props.get_rich_text(properties, self.properties.target_discussion_id),
            source_document_id=related[0] if related else "",
            classified=bool(
                props.get_multi_select(properties, self.properties.target_classification)
            ),
            created_at=page.get("created_time"),
            url=page.get("url") or page_url(page["id"]),
        )

    def _to_work_item(self, page: dict[str, Any], category: WorkItemCategory) -> WorkItem:
        properties = page.get("properties")
        created = props.get_created_time(properties, self.properties.task_created) or page.get(
            "created_time"
        )
        return WorkItem(
            id=page["id"],
            title=props.get_title(properties, self.properties.task_title) or "未知标题",
            category=category,
            status=self._parse_task_status(
                props.get_status(properties, self.properties.task_status)
            ),
            priority=props.get_select(properties, self.properties.task_priority),
            related_ids=props.get_relation_ids(properties, self.properties.task_reference),
            created_at=parse_timestamp(created) or datetime.now(UTC),
            url=page.get("url") or page_url(page["id"]),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase
    message = response.reason_phrase
    if isinstance(body, dict):
        message = str(body.get("message") or body.get("code") or message)
    return message
