"""
Tests for NotionStore.

Requests are served by httpx.MockTransport; no network access.
"""

import json

import httpx
import pytest

from comment_sync.config import PropertySchema
from comment_sync.core.store.notion import NotionStore
from comment_sync.models.document import SourceStatus
from comment_sync.models.record import Block, BlockType, RecordFilter, TargetRecord
from comment_sync.models.work_item import WorkItem, WorkItemCategory, WorkItemStatus
from comment_sync.utils.exceptions import ConfigurationError, FetchError, WriteError


def _rich(text: str) -> list[dict]:
    return [{"type": "text", "plain_text": text, "text": {"content": text}}]


class Recorder:
    """Routes requests to canned responses and keeps every request."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.pop(0)
        return httpx.Response(status, json=body)

    def body(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


def _store(recorder: Recorder, **kwargs) -> NotionStore:
    options = {
        "token": "secret",
        "source_database_id": "source-db",
        "target_database_id": "target-db",
        "action_database_id": "action-db",
        "retry_delay": 0,
        "transport": httpx.MockTransport(recorder),
    }
    options.update(kwargs)
    return NotionStore(**options)


class TestConstruction:
    """Test configuration checks."""

    def test_missing_token(self):
        """Test a missing token is a configuration error."""
        with pytest.raises(ConfigurationError):
            NotionStore(token=None, source_database_id="s", target_database_id="t")

    def test_missing_database_ids(self):
        """Test missing database ids are a configuration error."""
        with pytest.raises(ConfigurationError):
            NotionStore(token="x", source_database_id=None, target_database_id="t")


@pytest.mark.asyncio
class TestSourceDocuments:
    """Test source-side endpoints."""

    async def test_list_children(self):
        """Test block mapping, cursor and headers."""
        recorder = Recorder(
            [
                (
                    200,
                    {
                        "results": [
                            {
                                "id": "b1",
                                "type": "paragraph",
                                "has_children": True,
                                "paragraph": {"rich_text": _rich("hello")},
                            },
                            {"id": "b2", "type": "image", "image": {}},
                        ],
                        "next_cursor": "cur-2",
                        "has_more": True,
                    },
                )
            ]
        )
        store = _store(recorder)

        page = await store.list_children("root", cursor="cur-1")

        request = recorder.requests[0]
        assert request.url.path == "/v1/blocks/root/children"
        assert request.url.params["start_cursor"] == "cur-1"
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["Notion-Version"] == "2022-06-28"
        assert [(n.id, n.kind, n.text, n.has_children) for n in page.items] == [
            ("b1", "paragraph", "hello", True),
            ("b2", "image", "", False),
        ]
        assert page.next_cursor == "cur-2"
        assert page.has_more
        await store.close()

    async def test_list_annotations_paginates(self):
        """Test comment pages are joined and mapped."""
        recorder = Recorder(
            [
                (
                    200,
                    {
                        "results": [
                            {
                                "id": "c1",
                                "discussion_id": "d1",
                                "created_time": "2024-01-15T06:00:00.000Z",
                                "rich_text": _rich("Q: ") + _rich("hi"),
                                "created_by": {"id": "user-1234", "name": "Alice"},
                            }
                        ],
                        "has_more": True,
                        "next_cursor": "next",
                    },
                ),
                (
                    200,
                    {
                        "results": [
                            {
                                "id": "c2",
                                "discussion_id": "d1",
                                "created_time": "2024-01-15T06:01:00.000Z",
                                "rich_text": _rich("A: yo"),
                                "created_by": {"id": "user-9999"},
                            }
                        ],
                        "has_more": False,
                    },
                ),
            ]
        )
        store = _store(recorder)

        annotations = await store.list_annotations("n1")

        assert recorder.requests[0].url.params["block_id"] == "n1"
        assert recorder.requests[1].url.params["start_cursor"] == "next"
        assert [a.text for a in annotations] == ["Q: hi", "A: yo"]
        assert annotations[0].author_name == "Alice"
        assert annotations[1].author_name is None
        assert annotations[1].author_id == "user-9999"
        assert all(a.node_id == "n1" for a in annotations)
        await store.close()

    async def test_query_source_documents(self):
        """Test status filter, sort and URL building."""
        recorder = Recorder(
            [
                (
                    200,
                    {
                        "results": [
                            {
                                "id": "aaaa-bbbb",
                                "created_time": "2024-01-10T00:00:00.000Z",
                                "properties": {"标题": {"type": "title", "title": _rich("Note")}},
                            }
                        ],
                        "has_more": False,
                    },
                )
            ]
        )
        store = _store(recorder, source_database_url="https://www.notion.so/ws/db")

        documents = await store.query_source_documents(SourceStatus.UNPROCESSED)

        body = recorder.body()
        assert recorder.requests[0].url.path == "/v1/databases/source-db/query"
        assert body["filter"] == {"property": "自动化", "select": {"equals": "未执行"}}
        assert body["sorts"][0]["direction"] == "descending"
        assert documents[0].title == "Note"
        assert documents[0].url == "https://www.notion.so/ws/db?p=aaaabbbb"
        assert documents[0].created_at == "2024-01-10T00:00:00.000Z"
        await store.close()

    async def test_update_source_status(self):
        """Test the status property is patched."""
        recorder = Recorder([(200, {"id": "doc-1"})])
        store = _store(recorder)

        await store.update_source_status("doc-1", SourceStatus.PROCESSED)

        assert recorder.requests[0].method == "PATCH"
        assert recorder.body() == {"properties": {"自动化": {"select": {"name": "已执行"}}}}
        await store.close()


@pytest.mark.asyncio
class TestTargetRecords:
    """Test target-side endpoints."""

    async def test_retrieve_target_schema(self):
        """Test the schema maps names to types."""
        recorder = Recorder(
            [(200, {"properties": {"卡片笔记": {"type": "title"}, "DiscussionID": {"type": "rich_text"}}})]
        )
        store = _store(recorder)

        schema = await store.retrieve_target_schema()

        assert schema == {"卡片笔记": "title", "DiscussionID": "rich_text"}
        await store.close()

    async def test_query_records_filters_and_mapping(self):
        """Test combined filters and record mapping."""
        recorder = Recorder(
            [
                (
                    200,
                    {
                        "results": [
                            {
                                "id": "r1",
                                "url": "https://www.notion.so/r1",
                                "created_time": "2024-01-15T06:00:00.000Z",
                                "properties": {
                                    "卡片笔记": {"title": _rich("Card")},
                                    "DiscussionID": {"rich_text": _rich("d1")},
                                    "Reference": {"relation": [{"id": "doc-1"}]},
                                    "它在解决什么问题？": {"multi_select": []},
                                },
                            }
                        ],
                        "has_more": False,
                    },
                )
            ]
        )
        store = _store(recorder)

        records = await store.query_records(RecordFilter(classified=False, newest_first=True))

        body = recorder.body()
        assert body["filter"]["and"][0] == {
            "property": "DiscussionID",
            "rich_text": {"is_not_empty": True},
        }
        assert body["filter"]["and"][1] == {
            "property": "它在解决什么问题？",
            "multi_select": {"is_empty": True},
        }
        assert body["sorts"] == [{"timestamp": "created_time", "direction": "descending"}]
        record = records[0]
        assert (record.title, record.discussion_id, record.source_document_id) == (
            "Card",
            "d1",
            "doc-1",
        )
        assert record.classified is False
        await store.close()

    async def test_query_records_paginates(self):
        """Test database queries follow next_cursor."""
        recorder = Recorder(
            [
                (200, {"results": [{"id": "r1", "properties": {}}], "has_more": True, "next_cursor": "c"}),
                (200, {"results": [{"id": "r2", "properties": {}}], "has_more": False}),
            ]
        )
        store = _store(recorder)

        records = await store.query_records()

        assert [r.id for r in records] == ["r1", "r2"]
        assert recorder.body(1)["start_cursor"] == "c"
        await store.close()

    async def test_create_record_payload(self):
        """Test properties and children of a created record."""
        recorder = Recorder([(200, {"id": "new-page"})])
        store = _store(recorder)
        record = TargetRecord(
            title="什么是缓存?",
            discussion_id="d1",
            source_document_id="doc-1",
            blocks=[
                Block(type=BlockType.HEADING_2, text="Reference"),
                Block(type=BlockType.QUOTE, text="source"),
            ],
        )

        record_id = await store.create_record(record)

        body = recorder.body()
        assert record_id == "new-page"
        assert body["parent"] == {"database_id": "target-db"}
        assert body["properties"]["卡片笔记"]["title"][0]["text"]["content"] == "什么是缓存?"
        assert body["properties"]["DiscussionID"]["rich_text"][0]["text"]["content"] == "d1"
        assert body["properties"]["Reference"] == {"relation": [{"id": "doc-1"}]}
        assert [child["type"] for child in body["children"]] == ["heading_2", "quote"]
        await store.close()

    async def test_custom_property_names(self):
        """Test writes use the configured schema names."""
        recorder = Recorder([(200, {"id": "p"})])
        store = _store(
            recorder, properties=PropertySchema(target_title="Name", target_discussion_id="Thread")
        )

        await store.create_record(TargetRecord(title="t", discussion_id="d"))

        assert set(recorder.body()["properties"]) == {"Name", "Thread"}
        await store.close()


@pytest.mark.asyncio
class TestWorkItems:
    """Test action-store endpoints."""

    async def test_query_work_items(self):
        """Test label and status filters and status parsing."""
        recorder = Recorder(
            [
                (
                    200,
                    {
                        "results": [
                            {
                                "id": "t1",
                                "created_time": "2024-01-14T00:00:00.000Z",
                                "properties": {
                                    "Task": {"title": _rich("Reference处理需求-20240114000000")},
                                    "Status": {"status": {"name": "进行中"}},
                                    "优先级": {"select": {"name": "High"}},
                                    "Reference": {"relation": [{"id": "doc-1"}]},
                                },
                            }
                        ],
                        "has_more": False,
                    },
                )
            ]
        )
        store = _store(recorder)

        items = await store.query_work_items(WorkItemCategory.REFERENCE_PROCESSING)

        conditions = recorder.body()["filter"]["and"]
        assert conditions[0] == {"property": "Task", "title": {"contains": "Reference处理需求"}}
        assert conditions[1] == {"property": "Status", "status": {"does_not_equal": "完成"}}
        assert recorder.requests[0].url.path == "/v1/databases/action-db/query"
        assert items[0].status == WorkItemStatus.IN_PROGRESS
        assert items[0].priority == "High"
        assert items[0].related_ids == ["doc-1"]
        await store.close()

    async def test_create_work_item_payload(self):
        """Test work item properties."""
        recorder = Recorder([(200, {"id": "t2"})])
        store = _store(recorder)
        item = WorkItem(
            title="卡片处理需求-20240115000000",
            category=WorkItemCategory.CARD_PROCESSING,
            priority="Medium",
        )

        work_item_id = await store.create_work_item(
            item, [Block(type=BlockType.PARAGRAPH, text="x", link="https://a")]
        )

        properties = recorder.body()["properties"]
        assert work_item_id == "t2"
        assert properties["Status"] == {"status": {"name": "未开始"}}
        assert properties["优先级"] == {"select": {"name": "Medium"}}
        assert "DDL" in properties
        assert "Reference" not in properties
        runs = recorder.body()["children"][0]["paragraph"]["rich_text"]
        assert runs[1]["text"]["link"] == {"url": "https://a"}
        await store.close()

    async def test_missing_action_database(self):
        """Test work item calls need an action database."""
        store = _store(Recorder([]), action_database_id=None)

        with pytest.raises(ConfigurationError):
            await store.query_work_items(WorkItemCategory.CARD_PROCESSING)
        await store.close()


@pytest.mark.asyncio
class TestRetries:
    """Test retry behaviour of the HTTP layer."""

    async def test_rate_limit_is_retried(self):
        """Test 429 responses are retried until success."""
        recorder = Recorder(
            [(429, {"message": "slow down"}), (200, {"results": [], "has_more": False})]
        )
        store = _store(recorder)

        page = await store.list_children("root")

        assert page.items == []
        assert len(recorder.requests) == 2
        await store.close()

    async def test_client_error_is_not_retried(self):
        """Test 4xx errors fail immediately."""
        recorder = Recorder([(404, {"message": "not found"})])
        store = _store(recorder)

        with pytest.raises(FetchError, match="404: not found"):
            await store.list_annotations("missing")
        assert len(recorder.requests) == 1
        await store.close()

    async def test_retries_exhausted(self):
        """Test server errors give up after max_retries."""
        recorder = Recorder([(503, {"message": "unavailable"})] * 3)
        store = _store(recorder, max_retries=3)

        with pytest.raises(FetchError, match="after 3 attempts"):
            await store.retrieve_target_schema()
        assert len(recorder.requests) == 3
        await store.close()

    async def test_write_failures_raise_write_error(self):
        """Test failed writes raise WriteError."""
        recorder = Recorder([(400, {"message": "validation_error"})])
        store = _store(recorder)

        with pytest.raises(WriteError):
            await store.create_record(TargetRecord(title="t", discussion_id="d"))
        await store.close()

    async def test_failed_create_is_not_replayed(self):
        """Test a server error on page creation is raised without a second POST."""
        recorder = Recorder([(502, {"message": "bad gateway"}), (200, {"id": "dup"})])
        store = _store(recorder)

        with pytest.raises(WriteError, match="502"):
            await store.create_record(TargetRecord(title="t", discussion_id="d"))
        assert len(recorder.requests) == 1
        await store.close()

    async def test_rate_limited_create_is_retried(self):
        """Test a 429 on page creation is retried since nothing was created."""
        recorder = Recorder([(429, {"message": "slow down"}), (200, {"id": "p"})])
        store = _store(recorder)

        assert await store.create_record(TargetRecord(title="t", discussion_id="d")) == "p"
        assert len(recorder.requests) == 2
        await store.close()

    async def test_timed_out_create_is_not_replayed(self):
        """Test a read timeout on page creation is raised on the first attempt."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        store = _store(Recorder([]), transport=httpx.MockTransport(handler))

        with pytest.raises(WriteError, match="ReadTimeout"):
            await store.create_record(TargetRecord(title="t", discussion_id="d"))
        assert len(calls) == 1
        await store.close()

    async def test_read_timeout_on_query_is_retried(self):
        """Test reads still retry transport errors."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={"results": [], "has_more": False})

        store = _store(Recorder([]), transport=httpx.MockTransport(handler))

        page = await store.list_children("root")

        assert page.items == []
        assert len(calls) == 2
        await store.close()


@pytest.mark.asyncio
class TestLargeRecords:
    """Test payloads beyond the per-request children limit."""

    async def test_extra_children_are_appended(self):
        """Test the first batch goes with the create and the rest is appended."""
        recorder = Recorder([(200, {"id": "page-1"}), (200, {}), (200, {})])
        store = _store(recorder)
        blocks = [Block(type=BlockType.PARAGRAPH, text=f"p{i}") for i in range(250)]

        record_id = await store.create_record(
            TargetRecord(title="t", discussion_id="d", blocks=blocks)
        )

        assert record_id == "page-1"
        assert [r.method for r in recorder.requests] == ["POST", "PATCH", "PATCH"]
        assert recorder.requests[1].url.path == "/v1/blocks/page-1/children"
        assert len(recorder.body(0)["children"]) == 100
        assert len(recorder.body(1)["children"]) == 100
        assert len(recorder.body(2)["children"]) == 50
        last = recorder.body(2)["children"][-1]
        assert last["paragraph"]["rich_text"][0]["text"]["content"] == "p249"
        await store.close()

    async def test_small_record_is_one_request(self):
        """Test records within the limit need no append."""
        recorder = Recorder([(200, {"id": "page-1"})])
        store = _store(recorder)
        blocks = [Block(type=BlockType.PARAGRAPH, text="p")] * 100

        await store.create_record(TargetRecord(title="t", discussion_id="d", blocks=blocks))

        assert len(recorder.requests) == 1
        await store.close()

    async def test_work_item_children_are_appended(self):
        """Test work items batch their children the same way."""
        recorder = Recorder([(200, {"id": "task-1"}), (200, {})])
        store = _store(recorder)
        item = WorkItem(
            title="卡片处理需求",
            category=WorkItemCategory.CARD_PROCESSING,
            status=WorkItemStatus.NOT_STARTED,
        )
        blocks = [Block(type=BlockType.NUMBERED_LIST_ITEM, text="x")] * 101

        await store.create_work_item(item, blocks)

        assert recorder.requests[1].method == "PATCH"
        assert recorder.requests[1].url.path == "/v1/blocks/task-1/children"
        assert len(recorder.body(1)["children"]) == 1
        await store.close()
