"""
Typed accessors and builders for Notion API payloads.

Notion returns deeply nested, partially populated JSON. Each reader here
handles exactly one property kind and returns a typed default when anything
along the path is missing, so callers never chain lookups themselves.
"""

from typing import Any

from comment_sync.models.record import Block, BlockType

# Block kinds whose payload carries a rich_text array
RICH_TEXT_KINDS = frozenset(
    {
        "paragraph",
        "heading_1",
        "heading_2",
        "heading_3",
        "bulleted_list_item",
        "numbered_list_item",
        "quote",
        "callout",
        "to_do",
        "toggle",
    }
)

# Longest content of a single rich text run
MAX_TEXT_LENGTH = 2000
# Most children accepted by a single create or append request
MAX_CHILDREN = 100


# ═══════════════════════════════════════════════════════════
# READERS
# ═══════════════════════════════════════════════════════════


def plain_text(rich_text: list[dict[str, Any]] | None) -> str:
    """Join the plain_text of every rich-text run."""
    if not rich_text:
        return ""
    return "".join(run.get("plain_text") or "" for run in rich_text if isinstance(run, dict))


def _property(properties: dict[str, Any] | None, name: str) -> dict[str, Any]:
    if not properties:
        return {}
    value = properties.get(name)
    return value if isinstance(value, dict) else {}


def get_title(properties: dict[str, Any] | None, name: str) -> str:
    """Text of a title property, '' when absent."""
    return plain_text(_property(properties, name).get("title"))


def get_rich_text(properties: dict[str, Any] | None, name: str) -> str:
    """Text of a rich_text property, '' when absent."""
    return plain_text(_property(properties, name).get("rich_text"))


def get_select(properties: dict[str, Any] | None, name: str) -> str | None:
    """Option name of a select property, None when unset."""
    option = _property(properties, name).get("select")
    return option.get("name") if isinstance(option, dict) else None


def get_status(properties: dict[str, Any] | None, name: str) -> str | None:
    """Option name of a status property, None when unset."""
    option = _property(properties, name).get("status")
    return option.get("name") if isinstance(option, dict) else None


def get_multi_select(properties: dict[str, Any] | None, name: str) -> list[str]:
    """Option names of a multi_select property, [] when unset."""
    options = _property(properties, name).get("multi_select") or []
    return [option.get("name", "") for option in options if isinstance(option, dict)]


def get_relation_ids(properties: dict[str, Any] | None, name: str) -> list[str]:
    """Related page ids of a relation property, [] when unset."""
    relations = _property(properties, name).get("relation") or []
    return [rel["id"] for rel in relations if isinstance(rel, dict) and rel.get("id")]


def get_created_time(properties: dict[str, Any] | None, name: str) -> str | None:
    """Value of a created_time property, None when absent."""
    return _property(properties, name).get("created_time")


def get_block_text(block: dict[str, Any]) -> str:
    """Plain text carried by a block, '' for kinds without rich text."""
    kind = block.get("type") or ""
    if kind not in RICH_TEXT_KINDS:
        return ""
    payload = block.get(kind)
    if not isinstance(payload, dict):
        return ""
    return plain_text(payload.get("rich_text"))


def get_user(comment: dict[str, Any]) -> tuple[str | None, str | None]:
    """(id, name) of a comment's author; either may be None."""
    created_by = comment.get("created_by")
    if not isinstance(created_by, dict):
        return None, None
    return created_by.get("id"), created_by.get("name")


# ═══════════════════════════════════════════════════════════
# BUILDERS
# ═══════════════════════════════════════════════════════════


def text_run(content: str, link: str | None = None) -> dict[str, Any]:
    text: dict[str, Any] = {"content": content}
    if link:
        text["link"] = {"url": link}
    return {"type": "text", "text": text}


def text_runs(content: str, link: str | None = None) -> list[dict[str, Any]]:
    """Split content into runs no longer than the API allows."""
    return [
        text_run(content[start : start + MAX_TEXT_LENGTH], link=link)
        for start in range(0, len(content), MAX_TEXT_LENGTH)
    ]


def title_value(content: str) -> dict[str, Any]:
    return {"title": text_runs(content) or [text_run("")]}


def rich_text_value(content: str) -> dict[str, Any]:
    return {"rich_text": text_runs(content) or [text_run("")]}


def relation_value(ids: list[str]) -> dict[str, Any]:
    return {"relation": [{"id": page_id} for page_id in ids]}


def select_value(name: str) -> dict[str, Any]:
    return {"select": {"name": name}}


def status_value(name: str) -> dict[str, Any]:
    return {"status": {"name": name}}


def date_value(start: str) -> dict[str, Any]:
    return {"date": {"start": start}}


def block_to_notion(block: Block) -> dict[str, Any]:
    """Serialize a Block into a Notion block object."""
    kind = block.type.value
    if block.type == BlockType.DIVIDER:
        return {"object": "block", "type": kind, kind: {}}

    runs = []
    if block.text:
        runs.extend(text_runs(block.text))
    if block.link:
        runs.extend(text_runs(block.link, link=block.link))
    if not runs:
        runs.append(text_run(""))
    return {"object": "block", "type": kind, kind: {"rich_text": runs}}
