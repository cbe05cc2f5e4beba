"""
Page model for the tenancy report.

Layout happens against an in-memory list of drawing operations so that
pagination can be inspected without parsing PDF output. Serialization
replays the operations onto a reportlab canvas.

Coordinates follow PDF conventions: origin at the bottom-left, ``y`` grows
upwards, and a text operation's ``y`` is its baseline.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from reportlab.pdfgen import canvas

from analyzer.app.errors import RenderError
from analyzer.app.report.sanitize import sanitize_text
from analyzer.app.report.text_layout import text_width, wrap_text

logger = logging.getLogger(__name__)

Color = Tuple[float, float, float]

BLACK: Color = (0.0, 0.0, 0.0)
GREY: Color = (0.4, 0.4, 0.4)
NAVY: Color = (0.17, 0.32, 0.51)

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

# Portion of the font size that glyph descenders reach below the baseline
DESCENT_RATIO = 0.25

DISCLAIMER = (
    "This report is for informational purposes only and does not constitute legal advice."
)


class PageGeometry(BaseModel):
    """Page size and margins in PDF points. Defaults to A4."""

    width: float = Field(595.0, gt=0)
    height: float = Field(842.0, gt=0)
    margin: float = Field(50.0, ge=0)
    safe_bottom_margin: float = Field(80.0, ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def top(self) -> float:
        return self.height - self.margin

    @property
    def content_width(self) -> float:
        return self.width - 3 * self.margin


# ----------------------------------------------------------------------
# Drawing operations
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class TextOp:
    x: float
    y: float
    text: str
    font: str = FONT_REGULAR
    size: float = 11
    color: Color = BLACK

    @property
    def bottom(self) -> float:
        return self.y - DESCENT_RATIO * self.size

    def draw(self, c: canvas.Canvas) -> None:
        c.setFont(self.font, self.size)
        c.setFillColorRGB(*self.color)
        c.drawString(self.x, self.y, self.text)


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    width: float = 1.0
    color: Color = NAVY

    @property
    def bottom(self) -> float:
        return min(self.y1, self.y2)

    def draw(self, c: canvas.Canvas) -> None:
        c.setStrokeColorRGB(*self.color)
        c.setLineWidth(self.width)
        c.line(self.x1, self.y1, self.x2, self.y2)


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill_color: Optional[Color] = None
    stroke_color: Optional[Color] = None

    @property
    def bottom(self) -> float:
        return self.y

    def draw(self, c: canvas.Canvas) -> None:
        if self.fill_color is not None:
            c.setFillColorRGB(*self.fill_color)
        if self.stroke_color is not None:
            c.setStrokeColorRGB(*self.stroke_color)
        c.rect(
            self.x,
            self.y,
            self.width,
            self.height,
            stroke=int(self.stroke_color is not None),
            fill=int(self.fill_color is not None),
        )


DrawOp = Union[TextOp, LineOp, RectOp]


@dataclass
class Page:
    ops: List[DrawOp] = field(default_factory=list)
    footer_ops: List[DrawOp] = field(default_factory=list)

    @property
    def text_ops(self) -> List[TextOp]:
        return [op for op in self.ops if isinstance(op, TextOp)]

    def texts(self) -> List[str]:
        return [op.text for op in self.text_ops]


# ----------------------------------------------------------------------
# Document
# ----------------------------------------------------------------------

class ReportDocument:
    """
    Pages plus a vertical cursor.

    ``cursor_y`` is the top of the free space on the current page. Every
    content block reserves its height through ``ensure_space`` before it
    is drawn, which keeps content above ``safe_bottom_margin``.
    """

    def __init__(self, geometry: PageGeometry) -> None:
        self.geometry = geometry
        self.pages: List[Page] = []
        self.cursor_y = geometry.top
        self.continuation_header: Optional[str] = None

    @property
    def current(self) -> Page:
        if not self.pages:
            self.new_page()
        return self.pages[-1]

    def new_page(self) -> Page:
        page = Page()
        self.pages.append(page)
        self.cursor_y = self.geometry.top
        return page

    def fits(self, height: float) -> bool:
        return self.cursor_y - height > self.geometry.safe_bottom_margin

    def ensure_space(self, height: float) -> None:
        """Start a new page (with the running header) if ``height`` does not fit."""
        if self.pages and self.fits(height):
            return
        self.new_page()
        if self.continuation_header:
            self.heading(f"{self.continuation_header} (CONTINUED)", size=14)

    def skip(self, amount: float) -> None:
        self.cursor_y -= amount

    # ------------------------------------------------------------------
    # Content primitives
    # ------------------------------------------------------------------

    def text_line(
        self,
        text: Optional[str],
        *,
        x: Optional[float] = None,
        font: str = FONT_REGULAR,
        size: float = 11,
        leading: float = 16,
        color: Color = BLACK,
    ) -> None:
        leading = max(leading, size * (1 + DESCENT_RATIO))
        self.ensure_space(leading)
        self.current.ops.append(
            TextOp(
                x=self.geometry.margin if x is None else x,
                y=self.cursor_y - size,
                text=sanitize_text(text),
                font=font,
                size=size,
                color=color,
            )
        )
        self.cursor_y -= leading

    def paragraph(
        self,
        text: Optional[str],
        *,
        x: Optional[float] = None,
        font: str = FONT_REGULAR,
        size: float = 11,
        leading: float = 16,
        max_width: Optional[float] = None,
        color: Color = BLACK,
    ) -> None:
        """Wrap ``text`` and draw it line by line, breaking pages as needed."""
        x = self.geometry.margin if x is None else x
        width = max_width or (self.geometry.width - x - self.geometry.margin)
        for line in wrap_text(sanitize_text(text), font, size, width):
            self.text_line(line, x=x, font=font, size=size, leading=leading, color=color)

    def heading(self, text: str, *, size: float = 16, color: Color = NAVY) -> None:
        self.text_line(text, font=FONT_BOLD, size=size, leading=size + 10, color=color)
        self.rule()

    def rule(self, *, gap: float = 10) -> None:
        self.ensure_space(gap)
        g = self.geometry
        y = self.cursor_y
        self.current.ops.append(LineOp(g.margin, y, g.width - g.margin, y))
        self.cursor_y -= gap

    def labelled_value(self, label: str, value: Optional[str], *, size: float = 11) -> None:
        """A bold label followed by its value on the same baseline, wrapping the value."""
        label = sanitize_text(label)
        label_x = self.geometry.margin
        value_x = label_x + text_width(label, FONT_BOLD, size) + 6
        width = self.geometry.width - value_x - self.geometry.margin
        value = sanitize_text(value).strip() or "Not specified"
        lines = wrap_text(value, FONT_REGULAR, size, width) or [value]
        leading = size + 5

        self.ensure_space(leading)
        y = self.cursor_y - size
        self.current.ops.append(TextOp(label_x, y, label, FONT_BOLD, size))
        self.current.ops.append(TextOp(value_x, y, lines[0], FONT_REGULAR, size))
        self.cursor_y -= leading
        for line in lines[1:]:
            self.text_line(line, x=value_x, size=size, leading=leading)

    def bar(
        self,
        label: str,
        percent: int,
        *,
        color: Color,
        width: float = 300,
        height: float = 12,
    ) -> None:
        """Labelled horizontal bar filled to ``percent``."""
        block = height + 24
        self.ensure_space(block)
        x = self.geometry.margin
        self.current.ops.append(
            TextOp(x, self.cursor_y - 11, sanitize_text(f"{label}: {percent}%"), FONT_REGULAR, 11)
        )
        bar_y = self.cursor_y - 16 - height
        self.current.ops.append(
            RectOp(x, bar_y, width, height, fill_color=(0.92, 0.92, 0.92))
        )
        if percent > 0:
            self.current.ops.append(
                RectOp(x, bar_y, width * min(percent, 100) / 100, height, fill_color=color)
            )
        self.cursor_y -= block

    # ------------------------------------------------------------------
    # Finishing
    # ------------------------------------------------------------------

    def stamp_footers(self, generator_label: str) -> None:
        """Write page numbers, the disclaimer and the generator label on every page."""
        g = self.geometry
        total = len(self.pages)
        disclaimer = sanitize_text(DISCLAIMER)
        label = sanitize_text(generator_label)
        for number, page in enumerate(self.pages, start=1):
            page.footer_ops = [
                TextOp(g.width - 100, 70, f"Page {number} of {total}", FONT_REGULAR, 9, GREY),
                TextOp(
                    (g.width - text_width(disclaimer, FONT_REGULAR, 8)) / 2,
                    50,
                    disclaimer,
                    FONT_REGULAR,
                    8,
                    GREY,
                ),
                TextOp(
                    (g.width - text_width(label, FONT_REGULAR, 10)) / 2,
                    30,
                    label,
                    FONT_REGULAR,
                    10,
                    GREY,
                ),
            ]

    def to_pdf_bytes(self, *, title: Optional[str] = None) -> bytes:
        buf = io.BytesIO()
        try:
            c = canvas.Canvas(buf, pagesize=(self.geometry.width, self.geometry.height))
            if title:
                c.setTitle(sanitize_text(title))
            for page in self.pages:
                for op in page.ops:
                    op.draw(c)
                for op in page.footer_ops:
                    op.draw(c)
                c.showPage()
            c.save()
        except Exception as exc:
            logger.exception("pdf_serialization_failed")
            raise RenderError(f"failed to serialize report: {exc}") from exc
        return buf.getvalue()
