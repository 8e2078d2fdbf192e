"""Discussion thread model and annotation classification tags."""

from enum import Enum

from pydantic import BaseModel, Field

from .document import Annotation, Node, SourceDocument


class CommentKind(str, Enum):
    """Classification tag of an annotation, decided by its leading prefix."""

    QUESTION = "Q"
    ANSWER = "A"
    ARROW = "→"
    OTHER = "other"

    @property
    def is_prefixed(self) -> bool:
        return self is not CommentKind.OTHER


class Thread(BaseModel):
    """
    A group of annotations sharing a discussion identity.

    Built in memory per run, rendered once and discarded.

    Invariants:
    - members are ordered by created_at ascending (ties keep fetch order)
    - at least one member carries a recognized prefix
    - title comes from the first prefixed member chronologically
    """

    discussion_id: str
    title: str
    members: list[Annotation] = Field(default_factory=list)
    source_node: Node
    source_document: SourceDocument | None = None
