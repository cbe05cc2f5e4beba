"""
Content chunking for oversized documents.

Splits document text into bounded, ordered, non-overlapping segments,
preferring natural boundaries near the target size:

1. a paragraph break (blank line),
2. otherwise a sentence terminator followed by whitespace,
3. otherwise a hard cut at exactly ``max_chars``.

Concatenating ``Chunk.text`` over the result reproduces the input exactly.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Final, List

from analyzer.app.errors import ChunkingError

logger = logging.getLogger(__name__)


PARAGRAPH_BREAK_RE: Final = re.compile(r"\n\s*\n")
SENTENCE_END_RE: Final = re.compile(r"[.!?]\s")
PART_LABEL_RE: Final = re.compile(r"^\[PART \d+ OF \d+\]\n\n")

# Search window around the target boundary, as fractions of max_chars
WINDOW_START: Final = 0.8
WINDOW_END: Final = 1.2


@dataclass(frozen=True)
class Chunk:
    """
    One contiguous slice of the document.

    ``index`` is zero-based; labels are one-based.
    """

    index: int
    total_count: int
    text: str

    @property
    def label(self) -> str:
        return f"PART {self.index + 1} OF {self.total_count}"

    @property
    def labelled_text(self) -> str:
        if self.total_count <= 1:
            return self.text
        return f"[{self.label}]\n\n{self.text}"


def strip_part_label(labelled: str) -> str:
    """Remove a leading ``[PART i OF N]`` label, if present."""
    return PART_LABEL_RE.sub("", labelled, count=1)


def _find_boundary(text: str, pos: int, max_chars: int) -> int:
    search_start = pos + int(max_chars * WINDOW_START)
    search_end = min(pos + int(max_chars * WINDOW_END), len(text))
    window = text[search_start:search_end]

    paragraph = PARAGRAPH_BREAK_RE.search(window)
    if paragraph is not None:
        return search_start + paragraph.end()

    sentence = SENTENCE_END_RE.search(window)
    if sentence is not None:
        return search_start + sentence.end()

    return pos + max_chars


def chunk_document(text: str, max_chars: int) -> List[Chunk]:
    """
    Split ``text`` into chunks of roughly ``max_chars`` characters.

    Raises:
        ChunkingError: if ``max_chars`` is not positive.
    """
    if max_chars <= 0:
        raise ChunkingError(f"max_chars must be positive, got {max_chars}")

    if len(text) <= max_chars:
        return [Chunk(index=0, total_count=1, text=text)]

    pieces: List[str] = []
    pos = 0
    while pos < len(text):
        end = min(pos + max_chars, len(text))
        if end < len(text):
            end = _find_boundary(text, pos, max_chars)
        pieces.append(text[pos:end])
        pos = end

    logger.info(
        "document_chunked",
        extra={
            "document_chars": len(text),
            "max_chars": max_chars,
            "chunk_count": len(pieces),
        },
    )

    total = len(pieces)
    return [
        Chunk(index=i, total_count=total, text=piece)
        for i, piece in enumerate(pieces)
    ]
