from __future__ import annotations

from typing import List

from reportlab.pdfbase.pdfmetrics import stringWidth

HYPHEN = "-"


def text_width(text: str, font: str, size: float) -> float:
    return stringWidth(text, font, size)


def _split_long_word(word: str, font: str, size: float, max_width: float) -> List[str]:
    """Break ``word`` into hyphenated pieces that each fit ``max_width``."""
    pieces: List[str] = []
    current = ""
    for ch in word:
        if current and text_width(current + ch + HYPHEN, font, size) > max_width:
            pieces.append(current + HYPHEN)
            current = ch
        else:
            current += ch
    if current:
        pieces.append(current)
    return pieces


def _wrap_paragraph(text: str, font: str, size: float, max_width: float) -> List[str]:
    lines: List[str] = []
    line = ""
    for word in text.split():
        if text_width(word, font, size) > max_width:
            if line:
                lines.append(line)
                line = ""
            pieces = _split_long_word(word, font, size, max_width)
            lines.extend(pieces[:-1])
            line = pieces[-1]
            continue

        candidate = f"{line} {word}" if line else word
        if text_width(candidate, font, size) <= max_width:
            line = candidate
        else:
            lines.append(line)
            line = word
    if line:
        lines.append(line)
    return lines


def wrap_text(text: str, font: str, size: float, max_width: float) -> List[str]:
    """
    Greedy word wrap measured with the font's real glyph widths.

    Explicit line breaks start a new paragraph; a blank paragraph is kept
    as an empty line.
    """
    if not text:
        return []
    if "\n" not in text:
        return _wrap_paragraph(text, font, size, max_width)

    lines: List[str] = []
    for paragraph in text.split("\n"):
        if not paragraph.strip():
            lines.append("")
        else:
            lines.extend(_wrap_paragraph(paragraph, font, size, max_width))
    return lines
