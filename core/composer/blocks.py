"""SEARCH/REPLACE block parsing.

Accepts loosely formatted, model-generated instructions::

    ------- SEARCH
    old text
    =======
    new text
    +++++++ REPLACE

Markers may be glued to the content (``-------SEARCHold=======new+++++++REPLACE``)
and either line-ending convention may appear around them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

SEARCH_MARKER = r"-{3,}\s*SEARCH\s*(?:\r?\n)?"
SEPARATOR = r"(?:\r?\n)?={3,}\s*(?:\r?\n)?"
REPLACE_MARKER = r"(?:\r?\n)?\+{3,}\s*REPLACE"

_BLOCK_RE = re.compile(SEARCH_MARKER + r"([\s\S]*?)" + SEPARATOR + r"([\s\S]*?)" + REPLACE_MARKER)

GRAMMAR_HINT = (
    "Please use the correct format with ------- SEARCH, =======, and +++++++ REPLACE markers:\n"
    "------- SEARCH\n"
    "[exact content to find]\n"
    "=======\n"
    "[new content to replace with]\n"
    "+++++++ REPLACE"
)


@dataclass(frozen=True)
class EditBlock:
    """One parsed search/replace pair, both sides trimmed."""

    search_text: str
    replace_text: str


def parse_search_replace_blocks(diff: str) -> list[EditBlock]:
    """Extract blocks in document order. No blocks is a valid (empty) result."""
    return [
        EditBlock(search_text=match.group(1).strip(), replace_text=match.group(2).strip())
        for match in _BLOCK_RE.finditer(diff)
    ]


__all__ = ["EditBlock", "GRAMMAR_HINT", "parse_search_replace_blocks"]
