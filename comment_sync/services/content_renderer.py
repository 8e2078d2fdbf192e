"""
Content renderer - maps one thread to one target record.

Block order is fixed:
header → Q members → A members → quoted source node → → members → other members
"""

from comment_sync.config import SyncConfig
from comment_sync.models.document import Annotation, Node
from comment_sync.models.record import Block, BlockType, TargetRecord
from comment_sync.models.thread import CommentKind, Thread
from comment_sync.services.classifier import classify, display_text
from comment_sync.utils.formatting import format_time, short_id
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)

# Node kinds that expose a plain-text projection; anything else renders as "[kind]"
TEXT_NODE_KINDS = frozenset(
    {
        "paragraph",
        "heading_1",
        "heading_2",
        "heading_3",
        "bulleted_list_item",
        "numbered_list_item",
        "quote",
        "callout",
    }
)

UNKNOWN_AUTHOR = "未知用户"


def extract_node_text(node: Node) -> str:
    """Plain text of a node, or a bracketed type tag for unsupported kinds."""
    if node.kind in TEXT_NODE_KINDS:
        return node.text
    return f"[{node.kind}]"


def author_display_name(annotation: Annotation) -> str:
    """Author name, else an anonymous name built from the id's last 4 characters."""
    if annotation.author_name:
        return annotation.author_name
    if annotation.author_id:
        return f"用户{short_id(annotation.author_id)}"
    return UNKNOWN_AUTHOR


class ContentRenderer:
    """Renders threads into ordered content blocks plus record properties."""

    def __init__(self, config: SyncConfig | None = None):
        """
        Initialize content renderer.

        Args:
            config: Sync configuration (header text, display timezone)
        """
        self.config = config or SyncConfig()

    def render_blocks(self, thread: Thread) -> list[Block]:
        """
        Render a thread's content blocks.

        Args:
            thread: Valid thread with chronologically ordered members

        Returns:
            Blocks in the fixed section order
        """
        sections: dict[CommentKind, list[Block]] = {kind: [] for kind in CommentKind}

        for member in thread.members:
            kind, content = classify(member.text)
            if kind.is_prefixed:
                text = display_text(kind, content)
            else:
                time = format_time(member.created_at, self.config.display_timezone)
                text = f"【{author_display_name(member)}】(时间: {time}) {content}"
            sections[kind].append(Block(type=BlockType.PARAGRAPH, text=text))

        return [
            Block(type=BlockType.HEADING_2, text=self.config.header_text),
            *sections[CommentKind.QUESTION],
            *sections[CommentKind.ANSWER],
            Block(type=BlockType.QUOTE, text=extract_node_text(thread.source_node)),
            *sections[CommentKind.ARROW],
            *sections[CommentKind.OTHER],
        ]

    def render(self, thread: Thread) -> TargetRecord:
        """Render a thread into a target record."""
        blocks = self.render_blocks(thread)
        logger.bind(discussion_id=thread.discussion_id).debug(
            f"Rendered thread {thread.discussion_id} into {len(blocks)} blocks"
        )
        return TargetRecord(
            title=thread.title,
            discussion_id=thread.discussion_id,
            source_document_id=thread.source_document.id if thread.source_document else None,
            blocks=blocks,
        )

    def render_all(self, threads: list[Thread]) -> list[TargetRecord]:
        """Render threads in order."""
        return [self.render(thread) for thread in threads]
