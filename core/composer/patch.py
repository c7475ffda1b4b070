"""Apply parsed SEARCH/REPLACE blocks to a document.

Blocks run in parse order against one working copy. Matching happens on
LF-normalized text; the original document's line-ending style is restored
once, at the end. Nothing here writes to the store: the caller persists
``PatchSuccess.final_content`` only after the whole run succeeded.

Every block replaces *all* occurrences of its search text, including ones
the author did not intend to touch. Callers should keep search text specific.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.composer import line_endings
from core.composer.blocks import GRAMMAR_HINT, EditBlock, parse_search_replace_blocks
from core.composer.results import ErrorKind, OperationError

logger = logging.getLogger(__name__)

MIN_FILE_SIZE_FOR_REPLACE = 3000


@dataclass(frozen=True)
class PatchSuccess:
    final_content: str
    blocks_applied: int


PatchResult = PatchSuccess | OperationError


class PatchEngine:
    """Search/replace engine with a minimum-document-size gate."""

    def __init__(self, min_file_size: int = MIN_FILE_SIZE_FOR_REPLACE):
        self.min_file_size = min_file_size

    def check_size(self, original: str) -> OperationError | None:
        if len(original) < self.min_file_size:
            return OperationError(
                ErrorKind.SIZE_GATE,
                f"Document has {len(original)} characters (minimum {self.min_file_size})",
            )
        return None

    def apply_diff(self, original: str, diff: str) -> PatchResult:
        """Size gate, parse, then apply."""
        too_small = self.check_size(original)
        if too_small:
            return too_small

        blocks = parse_search_replace_blocks(diff)
        if not blocks:
            return OperationError(ErrorKind.INVALID_INSTRUCTION, GRAMMAR_HINT)
        return self.apply(original, blocks)

    def apply(self, original: str, blocks: list[EditBlock]) -> PatchResult:
        style = line_endings.detect(original)
        working = line_endings.normalize(original)
        applied = 0

        for block in blocks:
            search = line_endings.normalize(block.search_text)
            replace = line_endings.normalize(block.replace_text)

            if not search or search not in working:
                # Block anchored at end of file where the live document has no trailing newline
                trimmed = search.rstrip()
                if not trimmed or trimmed not in working:
                    logger.debug("Search text not found: %.80r", block.search_text)
                    return OperationError(ErrorKind.NO_MATCH, block.search_text)
                search, replace = trimmed, replace.rstrip()

            before = working
            working = working.replace(search, replace)
            if working != before:
                applied += 1

        final_content = line_endings.restore(working, style)
        if final_content == original:
            return OperationError(ErrorKind.NO_OP, "Replacement resulted in identical content")
        return PatchSuccess(final_content=final_content, blocks_applied=applied)


__all__ = ["MIN_FILE_SIZE_FOR_REPLACE", "PatchEngine", "PatchResult", "PatchSuccess"]
