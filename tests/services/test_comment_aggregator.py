"""
Tests for CommentAggregator.

Covers grouping, chronological ordering, thread validity and title derivation.
"""

import pytest

from comment_sync.models.document import SourceDocument
from comment_sync.services.comment_aggregator import (
    CommentAggregator,
    build_thread,
    group_by_discussion,
)


class TestGrouping:
    """Test pure grouping and thread building."""

    def test_group_by_discussion_keeps_first_seen_order(self, make_annotation):
        """Test groups appear in first-seen order."""
        annotations = [
            make_annotation("Q: one", discussion_id="d2"),
            make_annotation("Q: two", discussion_id="d1"),
            make_annotation("A: three", discussion_id="d2"),
        ]

        groups = group_by_discussion(annotations)

        assert list(groups) == ["d2", "d1"]
        assert [a.text for a in groups["d2"]] == ["Q: one", "A: three"]

    def test_members_sorted_by_created_at(self, make_annotation, make_node):
        """Test members are ordered chronologically."""
        members = [
            make_annotation("A: later", minutes=5),
            make_annotation("Q: first", minutes=1),
            make_annotation("→: last", minutes=9),
        ]

        thread = build_thread("d1", members, {"n1": make_node("n1", "source")})

        assert [m.text for m in thread.members] == ["Q: first", "A: later", "→: last"]
        created = [m.created_at for m in thread.members]
        assert created == sorted(created)

    def test_ties_keep_fetch_order(self, make_annotation, make_node):
        """Test equal timestamps keep fetch order."""
        members = [
            make_annotation("Q: b", minutes=0),
            make_annotation("Q: a", minutes=0),
        ]

        thread = build_thread("d1", members, {"n1": make_node("n1")})

        assert [m.text for m in thread.members] == ["Q: b", "Q: a"]
        assert thread.title == "b"

    def test_title_from_first_chronological_prefixed_member(self, make_annotation, make_node):
        """Test title is taken in time order, not fetch order."""
        members = [
            make_annotation("Q: fetched first but newer", minutes=10),
            make_annotation("plain comment", minutes=0),
            make_annotation("A: older answer", minutes=3),
        ]

        thread = build_thread("d1", members, {"n1": make_node("n1")})

        assert thread.title == "older answer"

    def test_group_without_prefix_is_rejected(self, make_annotation, make_node):
        """Test a group of plain comments does not form a thread."""
        members = [make_annotation("just a note"), make_annotation("another one", minutes=1)]

        assert build_thread("d1", members, {"n1": make_node("n1")}) is None

    def test_source_node_from_first_member(self, make_annotation, make_node):
        """Test the source node is the node of the earliest member."""
        members = [
            make_annotation("A: reply", node_id="n2", minutes=5),
            make_annotation("Q: ask", node_id="n1", minutes=0),
        ]
        nodes = {"n1": make_node("n1", "first node"), "n2": make_node("n2", "second node")}

        thread = build_thread("d1", members, nodes)

        assert thread.source_node.id == "n1"
        assert thread.source_node.text == "first node"


@pytest.mark.asyncio
class TestCommentAggregator:
    """Test aggregation against the store."""

    async def test_cache_scenario(self, fake_store, make_node, make_annotation):
        """Test Q/A/→ annotations on one node form one thread."""
        node = make_node("n1", "缓存是什么")
        fake_store.add_annotations(
            "n1",
            [
                make_annotation("Q: 什么是缓存?", minutes=0),
                make_annotation("A: 一种加速访问的临时存储", minutes=1),
                make_annotation("→: 补充示例", minutes=2),
            ],
        )
        document = SourceDocument(id="doc-1", title="Doc")
        aggregator = CommentAggregator(fake_store)

        threads = await aggregator.aggregate([node], document)

        assert len(threads) == 1
        assert threads[0].discussion_id == "d1"
        assert threads[0].title == "什么是缓存?"
        assert threads[0].source_document == document
        assert threads[0].source_node == node

    async def test_failed_node_counts_as_empty(self, fake_store, make_node, make_annotation):
        """Test a node whose annotations cannot be fetched is skipped."""
        fake_store.add_annotations("n1", [make_annotation("Q: lost", node_id="n1")])
        fake_store.add_annotations(
            "n2", [make_annotation("Q: kept", discussion_id="d2", node_id="n2")]
        )
        fake_store.failing_annotations.add("n1")
        aggregator = CommentAggregator(fake_store)

        threads = await aggregator.aggregate([make_node("n1"), make_node("n2")])

        assert [t.discussion_id for t in threads] == ["d2"]

    async def test_empty_node_set(self, fake_store):
        """Test no nodes means no threads."""
        aggregator = CommentAggregator(fake_store)

        assert await aggregator.aggregate([]) == []

    async def test_thread_spanning_nodes(self, fake_store, make_node, make_annotation):
        """Test annotations of one discussion on different nodes are grouped."""
        fake_store.add_annotations("n1", [make_annotation("Q: ask", node_id="n1", minutes=0)])
        fake_store.add_annotations("n2", [make_annotation("A: reply", node_id="n2", minutes=1)])
        aggregator = CommentAggregator(fake_store)

        threads = await aggregator.aggregate([make_node("n1"), make_node("n2")])

        assert len(threads) == 1
        assert len(threads[0].members) == 2

    async def test_collect_threads_across_documents(
        self, fake_store, make_node, make_annotation
    ):
        """Test documents are walked and aggregated in order."""
        doc_a = fake_store.add_source_document("doc-a")
        doc_b = fake_store.add_source_document("doc-b")
        fake_store.add_children("doc-a", [make_node("a1")])
        fake_store.add_children("doc-b", [make_node("b1")])
        fake_store.add_annotations("a1", [make_annotation("Q: a", "da", "a1")])
        fake_store.add_annotations("b1", [make_annotation("Q: b", "db", "b1")])
        aggregator = CommentAggregator(fake_store)

        threads = await aggregator.collect_threads([doc_a, doc_b])

        assert [t.discussion_id for t in threads] == ["da", "db"]
        assert threads[0].source_document.id == "doc-a"
        assert threads[1].source_document.id == "doc-b"
