"""
Tree walker - flattens a document's content tree.

Traversal uses an explicit worklist instead of recursion, so depth is
unbounded without growing the call stack.
"""

from collections import deque

from comment_sync.core.store.base import DocumentStore
from comment_sync.models.document import Node
from comment_sync.utils.exceptions import FetchError
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)


class TreeWalker:
    """
    Enumerates every descendant node of a root.

    A failed page fetch drops only the affected subtree (or the rest of that
    parent's pages); the walk continues and returns a partial result.
    """

    def __init__(self, store: DocumentStore):
        """
        Initialize tree walker.

        Args:
            store: Document store providing list_children
        """
        self.store = store

    async def list_all_children(self, node_id: str) -> list[Node]:
        """
        Fetch every page of a node's direct children.

        Args:
            node_id: Parent node id

        Returns:
            Direct children in store order

        Raises:
            FetchError: If a page cannot be fetched; pages already fetched are attached
                to the error context under "partial"
        """
        children: list[Node] = []
        cursor: str | None = None

        while True:
            try:
                page = await self.store.list_children(node_id, cursor)
            except FetchError as e:
                e.context["partial"] = children
                raise
            children.extend(page.items)
            if not page.has_more or not page.next_cursor:
                return children
            cursor = page.next_cursor

    async def walk(self, root_id: str) -> list[Node]:
        """
        Collect all descendants of a root, breadth first.

        Args:
            root_id: Root node or document id (not included in the result)

        Returns:
            Every reachable descendant node in discovery order
        """
        nodes: list[Node] = []
        pending: deque[str] = deque([root_id])
        failures = 0

        while pending:
            parent_id = pending.popleft()
            try:
                children = await self.list_all_children(parent_id)
            except FetchError as e:
                failures += 1
                children = e.context.get("partial", [])
                logger.bind(node_id=parent_id, error=str(e)).warning(
                    f"Failed to fetch children of {parent_id}, continuing with "
                    f"{len(children)} fetched: {e}"
                )

            for child in children:
                nodes.append(child)
                if child.has_children:
                    pending.append(child.id)

        logger.bind(root_id=root_id, node_count=len(nodes), failures=failures).debug(
            f"Walked {len(nodes)} nodes under {root_id}"
        )
        return nodes
