# shop_accountant/report/pdf_layout.py
"""
Shared PDF layout: page templates, a millimetre canvas, paged writer and tables.

Coordinates are millimetres measured from the top-left corner of the page
(the same orientation as the printed output); the conversion to
reportlab's bottom-left point space happens in `PdfDocument`.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

FONTS = {
    "normal": "Helvetica",
    "bold": "Helvetica-Bold",
    "italic": "Helvetica-Oblique",
}

# Grey levels (0 = black, 1 = white)
TEXT_GRAY = 0.2
MUTED_GRAY = 0.55
BORDER_GRAY = 0.78
BAND_GRAY = 0.85
STRIPE_GRAY = 0.98
TOTAL_ROW_GRAY = 0.88


@dataclass(frozen=True)
class PageTemplate:
    name: str
    width: float
    height: float
    margin: float
    footer_reserve: float
    row_height: float
    font_scale: float
    header_height: float

    @property
    def pagesize(self):
        return (self.width * mm, self.height * mm)

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def max_y(self) -> float:
        """Lowest y a row may reach before a page break."""
        return self.height - self.margin - self.footer_reserve

    @property
    def is_small(self) -> bool:
        return self.width < 100

    @property
    def baseline(self) -> float:
        """Text baseline offset inside a row."""
        return self.row_height * 0.7

    def font_size(self, size: float) -> float:
        return size * self.font_scale


A4 = PageTemplate("a4", 210, 297, 10, 15, 5, 1.0, 22)
THERMAL_58 = PageTemplate("58mm", 58, 297, 2, 6, 2.2, 1 / 3, 12)

PRINTER_TEMPLATES = {
    "normal": A4,
    "small": THERMAL_58,
}


def template_for(printer: str) -> PageTemplate:
    """'normal' -> A4, 'small' -> 58 mm thermal roll."""
    try:
        return PRINTER_TEMPLATES[printer]
    except KeyError:
        raise ValueError(f"Unknown printer type: {printer!r}")


class PdfDocument:
    """Thin reportlab canvas wrapper working in top-down millimetres."""

    def __init__(self, template: PageTemplate, title: Optional[str] = None, compress: bool = True) -> None:
        self.template = template
        self._buffer = io.BytesIO()
        self.canvas = canvas.Canvas(
            self._buffer, pagesize=template.pagesize, pageCompression=1 if compress else 0
        )
        if title:
            self.canvas.setTitle(title)
        self.page_count = 1
        self._font = FONTS["normal"]
        self._size = template.font_size(9)

    def _y(self, y: float) -> float:
        return (self.template.height - y) * mm

    # ---------- text ----------
    def set_font(self, size: float, style: str = "normal") -> None:
        self._font = FONTS[style]
        self._size = self.template.font_size(size)
        self.canvas.setFont(self._font, self._size)

    def text(self, value: str, x: float, y: float, align: str = "left", gray: float = TEXT_GRAY) -> None:
        self.canvas.setFillGray(gray)
        value = str(value)
        if align == "center":
            self.canvas.drawCentredString(x * mm, self._y(y), value)
        elif align == "right":
            self.canvas.drawRightString(x * mm, self._y(y), value)
        else:
            self.canvas.drawString(x * mm, self._y(y), value)

    def text_width(self, value: str) -> float:
        return stringWidth(str(value), self._font, self._size) / mm

    def clip_text(self, value: str, width: float) -> str:
        """First line of `value` wrapped to `width` mm, hard-cut if still too wide."""
        value = str(value or "").strip()
        if not value or width <= 0:
            return ""
        lines = simpleSplit(value, self._font, self._size, width * mm)
        first = lines[0] if lines else ""
        while first and self.text_width(first) > width:
            first = first[:-1]
        return first.strip()

    def wrap_text(self, value: str, width: float) -> List[str]:
        return simpleSplit(str(value or ""), self._font, self._size, width * mm)

    # ---------- shapes ----------
    def fill_rect(self, x: float, y: float, w: float, h: float, gray: float = BAND_GRAY) -> None:
        self.canvas.setFillGray(gray)
        self.canvas.rect(x * mm, self._y(y + h), w * mm, h * mm, stroke=0, fill=1)

    def stroke_rect(self, x: float, y: float, w: float, h: float, gray: float = BORDER_GRAY, width: float = 0.1) -> None:
        self.canvas.setStrokeGray(gray)
        self.canvas.setLineWidth(width * mm)
        self.canvas.rect(x * mm, self._y(y + h), w * mm, h * mm, stroke=1, fill=0)

    def line(self, x1: float, y1: float, x2: float, y2: float, gray: float = BORDER_GRAY, width: float = 0.1) -> None:
        self.canvas.setStrokeGray(gray)
        self.canvas.setLineWidth(width * mm)
        self.canvas.line(x1 * mm, self._y(y1), x2 * mm, self._y(y2))

    def image(self, data: bytes, x: float, y: float, w: float, h: float) -> bool:
        """Embed an image; failures are logged and reported as False."""
        try:
            reader = ImageReader(io.BytesIO(data))
            self.canvas.drawImage(
                reader, x * mm, self._y(y + h), w * mm, h * mm, preserveAspectRatio=True, mask="auto"
            )
        except Exception:
            logger.warning("Could not embed image", exc_info=True)
            return False
        return True

    # ---------- pages ----------
    def add_page(self) -> None:
        self.canvas.showPage()
        self.canvas.setPageSize(self.template.pagesize)
        self.canvas.setFont(self._font, self._size)
        self.page_count += 1

    def to_bytes(self) -> bytes:
        self.canvas.save()
        return self._buffer.getvalue()


HeaderFn = Callable[[PdfDocument, float], float]


class PagedWriter:
    """
    Running cursor over a document.

    `draw_header(doc, y)` draws the page header at `y` and returns the
    cursor below it; it is called again on every new page. Every page gets
    a "Generated by {app}" footer.
    """

    def __init__(self, doc: PdfDocument, app_name: str, draw_header: Optional[HeaderFn] = None) -> None:
        self.doc = doc
        self.template = doc.template
        self.app_name = app_name
        self.draw_header = draw_header
        self.y = self.template.margin
        self.content_top = self.y

    def begin(self) -> None:
        self.y = self.template.margin
        if self.draw_header is not None:
            self.y = self.draw_header(self.doc, self.y)
        self.content_top = self.y

    @property
    def at_content_top(self) -> bool:
        return self.y <= self.content_top

    def draw_footer(self) -> None:
        t = self.template
        footer_y = t.max_y + t.footer_reserve / 3
        self.doc.line(t.margin, footer_y, t.width - t.margin, footer_y, gray=BORDER_GRAY, width=0.3)
        self.doc.set_font(7, "italic")
        self.doc.text(
            f"Generated by {self.app_name}",
            t.margin + t.content_width / 2,
            footer_y + t.footer_reserve / 3,
            align="center",
            gray=MUTED_GRAY,
        )

    def page_break(self) -> None:
        self.draw_footer()
        self.doc.add_page()
        self.begin()

    def ensure_space(self, height: float) -> bool:
        """Break the page when `height` mm do not fit; True if a break happened."""
        if self.y + height > self.template.max_y:
            self.page_break()
            return True
        return False

    def text_line(self, value: str, size: float = 9, style: str = "normal", indent: float = 2) -> None:
        t = self.template
        self.ensure_space(t.row_height)
        self.doc.set_font(size, style)
        text = self.doc.clip_text(value, t.content_width - indent)
        self.doc.text(text, t.margin + indent, self.y + t.baseline)
        self.y += t.row_height

    def gap(self, height: Optional[float] = None) -> None:
        self.y += self.template.row_height if height is None else height

    def finish(self) -> None:
        self.draw_footer()


# ==============================
# 📋 Tables
# ==============================

@dataclass(frozen=True)
class Column:
    header: str
    weight: float
    max_chars: Optional[int] = None
    max_chars_small: Optional[int] = None

    def cap(self, small: bool) -> Optional[int]:
        if small and self.max_chars_small:
            return self.max_chars_small
        return self.max_chars


@dataclass
class Table:
    columns: Sequence[Column]
    rows: List[Sequence[str]]
    title: Optional[str] = None
    highlight_last_row: bool = False
    emphasis: Optional[Callable[[int, int], bool]] = None
    headers: List[str] = field(init=False)

    def __post_init__(self) -> None:
        self.headers = [c.header for c in self.columns]
        for row in self.rows:
            if len(row) != len(self.columns):
                raise ValueError(f"Row has {len(row)} cells, expected {len(self.columns)}")


def column_widths(weights: Sequence[float], total_width: float) -> List[float]:
    """Scale weights proportionally so they add up to `total_width`."""
    total = float(sum(weights))
    if total <= 0:
        raise ValueError("Column weights must add up to a positive number")
    return [w / total * total_width for w in weights]


def _draw_title(writer: PagedWriter, title: str) -> None:
    doc, t = writer.doc, writer.template
    doc.fill_rect(t.margin, writer.y, t.content_width, t.row_height, gray=BAND_GRAY)
    doc.set_font(9, "bold")
    doc.text(doc.clip_text(title, t.content_width - 4), t.margin + 2, writer.y + t.baseline)
    writer.y += t.row_height


def _draw_cells(writer: PagedWriter, cells: Sequence[str], widths: Sequence[float],
                columns: Sequence[Column], size: float, style_for: Callable[[int], str]) -> None:
    doc, t = writer.doc, writer.template
    y = writer.y
    doc.stroke_rect(t.margin, y, t.content_width, t.row_height)
    x = t.margin
    for col, cell in enumerate(cells):
        if col > 0:
            doc.line(x, y, x, y + t.row_height)
        text = str(cell if cell is not None else "").strip()
        cap = columns[col].cap(t.is_small)
        if cap:
            text = text[:cap]
        doc.set_font(size, style_for(col))
        text = doc.clip_text(text, max(1.0, widths[col] - 2))
        if text:
            doc.text(text, x + 1, y + t.baseline)
        x += widths[col]
    writer.y += t.row_height


def _draw_header_row(writer: PagedWriter, table: Table, widths: Sequence[float]) -> None:
    t = writer.template
    writer.doc.fill_rect(t.margin, writer.y, t.content_width, t.row_height, gray=BAND_GRAY)
    _draw_cells(writer, table.headers, widths, table.columns, 8, lambda _col: "bold")


def draw_table(writer: PagedWriter, table: Table, gap: float = 5) -> float:
    """
    Draw `table` at the writer's cursor with page breaks before any row
    that would cross the footer area. Continued pages repeat the title
    (suffixed "(continued)") and the column header. Returns the new cursor.
    """
    doc, t = writer.doc, writer.template
    widths = column_widths([c.weight for c in table.columns], t.content_width)
    title_height = t.row_height if table.title else 0
    estimated = title_height + t.row_height + len(table.rows) * t.row_height

    if not writer.at_content_top:
        writer.ensure_space(estimated + gap)

    if table.title:
        _draw_title(writer, table.title)
    _draw_header_row(writer, table, widths)

    last = len(table.rows) - 1
    for index, row in enumerate(table.rows):
        if writer.y + t.row_height > t.max_y:
            writer.page_break()
            if table.title:
                _draw_title(writer, f"{table.title} (continued)")
            _draw_header_row(writer, table, widths)

        is_total = table.highlight_last_row and index == last
        if is_total:
            doc.fill_rect(t.margin, writer.y, t.content_width, t.row_height, gray=TOTAL_ROW_GRAY)
        elif index % 2 == 0:
            doc.fill_rect(t.margin, writer.y, t.content_width, t.row_height, gray=STRIPE_GRAY)

        def style_for(col: int, _index: int = index, _total: bool = is_total) -> str:
            if _total or (table.emphasis is not None and table.emphasis(_index, col)):
                return "bold"
            return "normal"

        _draw_cells(writer, row, widths, table.columns, 9, style_for)

    writer.y += gap
    return writer.y
