"""
Comment aggregator - turns node annotations into discussion threads.

Pipeline per document:
nodes → annotations (per node, failures tolerated) → group by discussion
→ chronological sort → keep groups with a prefixed member → Thread
"""

from comment_sync.core.store.base import DocumentStore
from comment_sync.models.document import Annotation, Node, SourceDocument
from comment_sync.models.thread import Thread
from comment_sync.services.classifier import classify
from comment_sync.services.tree_walker import TreeWalker
from comment_sync.utils.exceptions import FetchError
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)


def group_by_discussion(annotations: list[Annotation]) -> dict[str, list[Annotation]]:
    """Partition annotations by discussion id, keeping first-seen group order."""
    groups: dict[str, list[Annotation]] = {}
    for annotation in annotations:
        groups.setdefault(annotation.discussion_id, []).append(annotation)
    return groups


def build_thread(
    discussion_id: str,
    members: list[Annotation],
    nodes_by_id: dict[str, Node],
    source_document: SourceDocument | None = None,
) -> Thread | None:
    """
    Build a thread from one discussion group.

    Members are sorted by created_at; Python's sort is stable so ties keep
    fetch order. The title comes from the first prefixed member in that order.

    Returns:
        Thread, or None when no member carries a recognized prefix
    """
    ordered = sorted(members, key=lambda annotation: annotation.created_at)

    classifications = (classify(member.text) for member in ordered)
    title_source = next((c for c in classifications if c.kind.is_prefixed), None)
    if title_source is None:
        return None

    first = ordered[0]
    source_node = nodes_by_id.get(first.node_id) or Node(id=first.node_id, kind="unsupported")

    return Thread(
        discussion_id=discussion_id,
        title=title_source.content,
        members=ordered,
        source_node=source_node,
        source_document=source_document,
    )


class CommentAggregator:
    """Collects annotations for a node set and groups them into valid threads."""

    def __init__(self, store: DocumentStore, tree_walker: TreeWalker | None = None):
        """
        Initialize comment aggregator.

        Args:
            store: Document store providing list_annotations
            tree_walker: Walker used by collect_document_threads (default: built from store)
        """
        self.store = store
        self.tree_walker = tree_walker or TreeWalker(store)

    async def fetch_annotations(self, nodes: list[Node]) -> list[Annotation]:
        """
        Fetch annotations for every node, in node order.

        A node whose fetch fails contributes zero annotations.
        """
        annotations: list[Annotation] = []
        for node in nodes:
            try:
                node_annotations = await self.store.list_annotations(node.id)
            except FetchError as e:
                logger.bind(node_id=node.id, error=str(e)).warning(
                    f"Failed to fetch annotations for node {node.id}: {e}"
                )
                continue
            if node_annotations:
                logger.debug(f"Node {node.id} has {len(node_annotations)} annotations")
            annotations.extend(node_annotations)
        return annotations

    async def aggregate(
        self, nodes: list[Node], source_document: SourceDocument | None = None
    ) -> list[Thread]:
        """
        Build valid threads from a node set.

        Args:
            nodes: Flattened node set of one document
            source_document: Document the nodes belong to, attached to each thread

        Returns:
            Threads in first-seen discussion order
        """
        if not nodes:
            return []

        annotations = await self.fetch_annotations(nodes)
        groups = group_by_discussion(annotations)
        nodes_by_id = {node.id: node for node in nodes}

        threads = []
        for discussion_id, members in groups.items():
            thread = build_thread(discussion_id, members, nodes_by_id, source_document)
            if thread is not None:
                threads.append(thread)

        logger.bind(
            document_id=source_document.id if source_document else None,
            annotation_count=len(annotations),
            thread_count=len(threads),
        ).info(
            f"Found {len(annotations)} annotations in {len(groups)} discussions, "
            f"{len(threads)} valid threads"
        )
        return threads

    async def collect_document_threads(self, document: SourceDocument) -> list[Thread]:
        """Walk a document's tree and aggregate its threads."""
        nodes = await self.tree_walker.walk(document.id)
        logger.info(f"Retrieved {len(nodes)} nodes for document {document.id}")
        return await self.aggregate(nodes, document)

    async def collect_threads(self, documents: list[SourceDocument]) -> list[Thread]:
        """
        Collect threads across documents, in document order.

        A document that fails as a whole is logged and skipped.
        """
        threads: list[Thread] = []
        for document in documents:
            try:
                document_threads = await self.collect_document_threads(document)
            except FetchError as e:
                logger.bind(document_id=document.id, error=str(e)).error(
                    f"Failed to process document {document.id}: {e}"
                )
                continue
            logger.info(f"Found {len(document_threads)} threads in document {document.id}")
            threads.extend(document_threads)

        logger.info(f"Total threads found across all documents: {len(threads)}")
        return threads
