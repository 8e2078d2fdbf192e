"""
Source-side models: document tree nodes, annotations and source documents.

All of these are read-only snapshots fetched fresh on every run.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Node(BaseModel):
    """One element of a document's content tree (paragraph, heading, list item...)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Node identifier")
    kind: str = Field(..., description="Block type, e.g. paragraph, heading_1, callout")
    text: str = Field(default="", description="Plain-text projection of the node's rich text")
    has_children: bool = Field(default=False, description="Whether the node owns child nodes")
    parent_id: str | None = Field(default=None, description="Parent node or document id")


class Annotation(BaseModel):
    """A user comment attached to exactly one Node."""

    model_config = ConfigDict(frozen=True)

    id: str
    discussion_id: str = Field(..., description="Thread identity shared by replies")
    node_id: str = Field(..., description="Node the annotation is attached to")
    created_at: datetime
    text: str = Field(default="", description="Plain text, joined across rich-text runs")
    author_id: str | None = None
    author_name: str | None = None


class ChildrenPage(BaseModel):
    """One page of a paginated children listing."""

    items: list[Node] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


class SourceStatus(str, Enum):
    """Automation status carried by every source document."""

    UNPROCESSED = "unprocessed"
    PROCESSED = "processed"


class SourceDocument(BaseModel):
    """A document whose annotations are synchronized."""

    id: str
    title: str = ""
    url: str = ""
    created_at: str | None = None
    status: SourceStatus = SourceStatus.UNPROCESSED
