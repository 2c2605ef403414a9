"""
Search and replace over block text projections.

Each block type may define a text projection (extract_text) and a way
to write text back (apply_text). Blocks without a projection are
invisible to search; blocks without apply_text are never modified by
replace.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from ..document.document import Document

logger = logging.getLogger(__name__)


@dataclass
class BlockMatches:
    """Matches found in one block.

    Attributes:
        block_id: Id of the block
        index: Position of the block at search time
        spans: Half-open (start, end) offsets into the block's text
    """

    block_id: str
    index: int
    spans: list[tuple[int, int]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.spans)


def compile_query(query: str, *, case_sensitive: bool = False, whole_word: bool = False) -> re.Pattern[str]:
    """Compile a literal query into a regex pattern.

    Raises:
        ValueError: If the query is empty
    """
    if not query:
        raise ValueError("Search query must not be empty")
    pattern = re.escape(query)
    if whole_word:
        pattern = rf"\b{pattern}\b"
    return re.compile(pattern, 0 if case_sensitive else re.IGNORECASE)


class SearchEngine:
    """Finds and replaces literal text across a document's blocks."""

    def __init__(self, document: Document) -> None:
        self.document = document

    def find(
        self,
        query: str,
        *,
        case_sensitive: bool = False,
        whole_word: bool = False,
    ) -> list[BlockMatches]:
        """Find all matches, in document order.

        Args:
            query: Literal text to find
            case_sensitive: Match case exactly
            whole_word: Only match at word boundaries

        Returns:
            One BlockMatches per block with at least one match
        """
        pattern = compile_query(query, case_sensitive=case_sensitive, whole_word=whole_word)
        configuration = self.document.configuration
        results = []
        for index, block in enumerate(self.document.blocks()):
            text = configuration.text_of(block.type, block.raw_data)
            if not text:
                continue
            spans = [match.span() for match in pattern.finditer(text)]
            if spans:
                results.append(BlockMatches(block_id=block.id, index=index, spans=spans))
        return results

    def count(self, query: str, *, case_sensitive: bool = False, whole_word: bool = False) -> int:
        """Count matches across the document."""
        matches = self.find(query, case_sensitive=case_sensitive, whole_word=whole_word)
        return sum(block_matches.count for block_matches in matches)

    def replace(
        self,
        query: str,
        replacement: str,
        *,
        case_sensitive: bool = False,
        whole_word: bool = False,
        replace_all: bool = True,
    ) -> int:
        """Replace matches through Document.update.

        Each modified block is re-validated and recorded in history like a
        manual edit. If a substituted block fails validation the error
        propagates; blocks updated before it keep their changes.

        Args:
            query: Literal text to find
            replacement: Literal replacement text
            case_sensitive: Match case exactly
            whole_word: Only match at word boundaries
            replace_all: Replace every match; otherwise only the first in the document

        Returns:
            Number of replacements performed
        """
        pattern = compile_query(query, case_sensitive=case_sensitive, whole_word=whole_word)
        configuration = self.document.configuration
        total = 0
        for block in self.document.blocks():
            if not configuration.can_apply_text(block.type):
                continue
            text = configuration.text_of(block.type, block.raw_data)
            if not text:
                continue
            new_text, count = pattern.subn(lambda _match: replacement, text, count=0 if replace_all else 1)
            if count == 0:
                continue
            new_data = configuration.apply_text(block.type, block.raw_data, new_text)
            self.document.update(self.document.index_of(block.id), new_data)
            total += count
            if not replace_all:
                break

        logger.debug(f"Replaced {total} occurrence(s) of {query!r}")
        return total
