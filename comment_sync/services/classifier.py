"""
Annotation classification by leading prefix.

Pure functions: text in, tag out. No I/O.

Recognized prefixes, anchored at the start of the trimmed text and
case-sensitive: ``Q``, ``A`` and ``→``, each optionally followed by a
half-width ``:`` or full-width ``：`` colon and whitespace.
"""

import re
from typing import NamedTuple

from comment_sync.models.thread import CommentKind

# Evaluated in this order
PREFIX_PATTERNS: tuple[tuple[CommentKind, re.Pattern[str]], ...] = (
    (CommentKind.QUESTION, re.compile(r"^Q[:：]?\s*")),
    (CommentKind.ANSWER, re.compile(r"^A[:：]?\s*")),
    (CommentKind.ARROW, re.compile(r"^→[:：]?\s*")),
)

DISPLAY_PREFIX = {
    CommentKind.QUESTION: "Q：",
    CommentKind.ANSWER: "A：",
    CommentKind.ARROW: "→：",
}


class Classification(NamedTuple):
    """Tag plus the text that follows the prefix."""

    kind: CommentKind
    content: str


def classify(text: str | None) -> Classification:
    """
    Classify an annotation text.

    Exactly one tag applies to every input. Prefixed texts return their
    content with the prefix and the whitespace after it removed; OTHER
    returns the trimmed text unchanged.

    Args:
        text: Raw annotation text

    Returns:
        Classification(kind, content)
    """
    trimmed = (text or "").strip()
    for kind, pattern in PREFIX_PATTERNS:
        match = pattern.match(trimmed)
        if match:
            return Classification(kind, trimmed[match.end() :].strip())
    return Classification(CommentKind.OTHER, trimmed)


def display_text(kind: CommentKind, content: str) -> str:
    """Re-prefix content with the canonical display form, e.g. ``Q：content``."""
    return f"{DISPLAY_PREFIX[kind]}{content}"
