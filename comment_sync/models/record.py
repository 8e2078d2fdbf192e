"""Target-side models: rendered content blocks and structured records."""

from enum import Enum

from pydantic import BaseModel, Field


class BlockType(str, Enum):
    """Content block types produced by this package."""

    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    PARAGRAPH = "paragraph"
    QUOTE = "quote"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    DIVIDER = "divider"


class Block(BaseModel):
    """A single structured content block."""

    type: BlockType
    text: str = ""
    # Optional trailing link run; rendered as "<text><link>" with the link clickable
    link: str | None = None


class TargetRecord(BaseModel):
    """
    Output row created once per accepted thread.

    discussion_id is the sync's idempotence key and is unique across all records.
    """

    title: str
    discussion_id: str
    source_document_id: str | None = None
    blocks: list[Block] = Field(default_factory=list)


class StoredRecord(BaseModel):
    """A record as read back from the target store."""

    id: str
    title: str = ""
    discussion_id: str = ""
    source_document_id: str = ""
    classified: bool = False
    created_at: str | None = None
    url: str = ""


class RecordFilter(BaseModel):
    """Query filter for target records."""

    require_discussion_id: bool = True
    # None: any; True: classification set; False: classification empty
    classified: bool | None = None
    newest_first: bool = False
