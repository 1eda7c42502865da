# shop_accountant/report/receipts.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence

from reportlab.graphics.barcode import code128
from reportlab.lib.units import mm

from shop_accountant.config import (
    DEFAULT_APP_NAME,
    DEFAULT_ITEMS_RECEIVED_MESSAGE,
    DEFAULT_THANK_YOU_MESSAGE,
    MAX_RECEIPT_ITEMS,
)
from shop_accountant.currency.service import format_number
from shop_accountant.records import Configuration
from shop_accountant.report.aggregation import safe_get
from shop_accountant.report.pdf_layout import (
    BAND_GRAY,
    BORDER_GRAY,
    Column,
    MUTED_GRAY,
    PagedWriter,
    PdfDocument,
    Table,
    TEXT_GRAY,
    draw_table,
    template_for,
)
from shop_accountant.report.reports import RenderedPdf
from shop_accountant.utils.dates import extract_yyyymmdd, format_long_date, get_local_date
from shop_accountant.utils.io_utils import safe_filename_part
from shop_accountant.utils.validators import to_amount, to_count

logger = logging.getLogger(__name__)

KIND_SALE = "sale"
KIND_DEBT = "debt"
KIND_REPAYMENT = "repayment"

_TITLES = {
    KIND_SALE: "SALES RECEIPT",
    KIND_DEBT: "DEBT RECEIPT",
    KIND_REPAYMENT: "REPAYMENT RECEIPT",
}
_FILE_LABELS = {
    KIND_SALE: "Sale",
    KIND_DEBT: "Debt",
    KIND_REPAYMENT: "Repayment",
}
_PREFIXES = {
    KIND_SALE: "SALE",
    KIND_DEBT: "DEBT",
    KIND_REPAYMENT: "REP",
}
_CUSTOMER_TOKEN = re.compile(r"\{customer\}", re.IGNORECASE)

ITEM_COLUMNS = (
    Column("ITEM", 45, 40, 14),
    Column("QTY", 15),
    Column("RATE", 20),
    Column("AMOUNT", 20),
)


@dataclass
class ReceiptOptions:
    app_name: str = DEFAULT_APP_NAME
    printer: str = "normal"
    location: Optional[str] = None
    items: Sequence[str] = field(default_factory=tuple)
    thank_you_message: Optional[str] = None
    items_received_message: Optional[str] = None
    logo: Optional[bytes] = None
    # repayment receipts: balance still owed after this payment
    remaining_balance: Any = None
    generated_on: Optional[str] = None
    compress: bool = True

    @classmethod
    def from_configuration(cls, config: Configuration, **overrides: Any) -> "ReceiptOptions":
        values: Dict[str, Any] = dict(
            app_name=config.app_name or DEFAULT_APP_NAME,
            location=config.location,
            items=config.items,
            thank_you_message=config.receipt_thank_you_message,
            items_received_message=config.receipt_items_received_message,
        )
        values.update(overrides)
        return cls(**values)


# ==============================
# 🔢 Numbering / text
# ==============================

def _padded_id(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    return (text or "0").zfill(6)


def receipt_number(record: Any, kind: str) -> str:
    """SALE-000123, DEBT-000045; repayments keep their stored number. A missing id pads to 000000."""
    if kind not in _PREFIXES:
        raise ValueError(f"Unknown receipt kind: {kind!r}")
    if kind == KIND_REPAYMENT:
        stored = str(safe_get(record, "receipt_number") or "").strip()
        if stored:
            return stored
    return f"{_PREFIXES[kind]}-{_padded_id(safe_get(record, 'id'))}"


def render_items_received(template: Optional[str], client_name: Optional[str]) -> str:
    """Replace every {customer} token (any case) with the client name or 'Customer'."""
    name = (client_name or "").strip() or "Customer"
    return _CUSTOMER_TOKEN.sub(lambda _m: name, template or DEFAULT_ITEMS_RECEIVED_MESSAGE)


def receipt_filename(record: Any, kind: str, app_name: str, day: Optional[str] = None) -> str:
    return f"{safe_filename_part(app_name)}-{_FILE_LABELS[kind]}-{safe_get(record, 'id')}-{day or get_local_date()}.pdf"


def _money(value: Any) -> str:
    return format_number(value, 2, 2)


# ==============================
# 🧩 Shared sections
# ==============================

def _record_date(record: Any, kind: str) -> str:
    return safe_get(record, "payment_date" if kind == KIND_REPAYMENT else "date")


def _header_a4(doc: PdfDocument, y: float, record: Any, kind: str, opts: ReceiptOptions) -> float:
    t = doc.template
    x, width, height = t.margin, t.content_width, 22
    doc.fill_rect(x, y, width, height, gray=BAND_GRAY)
    doc.fill_rect(x, y, width, 3, gray=0.45)
    doc.fill_rect(x + width - 40, y, 40, height, gray=0.35)

    text_x = x + 8
    if opts.logo and doc.image(opts.logo, x + 4, y + 4, 16, 16):
        text_x = x + 24
    doc.set_font(16, "bold")
    doc.text(doc.clip_text(opts.app_name.upper(), width - 70), text_x, y + 10)
    doc.set_font(11)
    doc.text(_TITLES[kind], text_x, y + 16)
    if opts.location:
        doc.set_font(7)
        doc.text(doc.clip_text(opts.location, width - 70), text_x, y + 20)

    info_x = x + width - 38
    doc.set_font(8, "bold")
    doc.text("Receipt No:", info_x, y + 8, gray=1.0)
    doc.set_font(7)
    doc.text(receipt_number(record, kind), info_x, y + 12, gray=1.0)
    doc.set_font(7, "bold")
    doc.text(f"Date: {format_long_date(_record_date(record, kind))}", info_x, y + 16, gray=1.0)
    return y + height + 6


def _header_small(doc: PdfDocument, y: float, record: Any, kind: str, opts: ReceiptOptions) -> float:
    t = doc.template
    center = t.margin + t.content_width / 2
    if opts.logo and doc.image(opts.logo, center - 6, y, 12, 12):
        y += 13
    doc.set_font(16, "bold")
    doc.text(doc.clip_text(opts.app_name.upper(), t.content_width), center, y + 2.5, align="center")
    y += 4
    if opts.location:
        doc.set_font(7)
        doc.text(doc.clip_text(opts.location, t.content_width), center, y + 1, align="center")
        y += 2
    doc.set_font(10, "bold")
    doc.text(_TITLES[kind], center, y + 2, align="center")
    y += 3.5
    doc.set_font(7)
    doc.text(f"No: {receipt_number(record, kind)}", center, y + 1, align="center")
    doc.text(format_long_date(_record_date(record, kind)), center, y + 2.8, align="center")
    y += 4
    doc.line(t.margin, y, t.width - t.margin, y, gray=TEXT_GRAY)
    return y + 1.5


def _client_block(writer: PagedWriter, record: Any) -> None:
    doc, t = writer.doc, writer.template
    lines = []
    if safe_get(record, "client_name"):
        lines.append(f"Name: {safe_get(record, 'client_name')}")
    if safe_get(record, "client_phone"):
        lines.append(f"Phone: {safe_get(record, 'client_phone')}")
    if not lines:
        lines.append("Walk-in Customer")

    if t.is_small:
        writer.text_line("CLIENT", size=8, style="bold", indent=0)
        for line in lines:
            writer.text_line(line, size=7, indent=0)
        return

    box_height = 8 + 4 * len(lines)
    doc.fill_rect(t.margin + 5, writer.y, t.content_width - 10, box_height, gray=0.96)
    doc.stroke_rect(t.margin + 5, writer.y, t.content_width - 10, box_height, width=0.3)
    doc.set_font(9, "bold")
    doc.text("CLIENT INFORMATION", t.margin + 8, writer.y + 5)
    doc.set_font(8)
    y = writer.y + 10
    for line in lines:
        doc.text(line, t.margin + 8, y)
        y += 4
    writer.y += box_height + 4


def _summary_lines(writer: PagedWriter, rows: Sequence[tuple], grand_total: Any) -> None:
    doc, t = writer.doc, writer.template
    writer.ensure_space(t.row_height * (len(rows) + 2))
    if t.is_small:
        label_x, value_x = t.margin, t.width - t.margin
    else:
        label_x, value_x = t.margin + 120, t.width - t.margin - 5
    doc.line(t.margin + (0 if t.is_small else 5), writer.y, t.width - t.margin - (0 if t.is_small else 5),
             writer.y, gray=BORDER_GRAY, width=0.5)
    writer.y += t.row_height * 0.4
    for label, value in rows:
        doc.set_font(9)
        doc.text(label, label_x, writer.y + t.baseline)
        doc.set_font(9, "bold")
        doc.text(_money(value), value_x, writer.y + t.baseline, align="right")
        writer.y += t.row_height
    doc.fill_rect(label_x - 2 if not t.is_small else t.margin, writer.y,
                  value_x - label_x + (2 if not t.is_small else 0), t.row_height * 1.3, gray=0.3)
    doc.set_font(10, "bold")
    doc.text("GRAND TOTAL:", label_x, writer.y + t.baseline * 1.2, gray=1.0)
    doc.text(_money(grand_total), value_x - (1 if not t.is_small else 0), writer.y + t.baseline * 1.2,
             align="right", gray=1.0)
    writer.y += t.row_height * 1.3 + t.row_height


def _acknowledgment(writer: PagedWriter, record: Any, opts: ReceiptOptions) -> None:
    doc, t = writer.doc, writer.template
    message = render_items_received(opts.items_received_message, safe_get(record, "client_name"))
    inset = 0 if t.is_small else 5
    x, width, pad = t.margin + inset, t.content_width - 2 * inset, t.row_height * 0.3
    doc.set_font(8)
    lines = doc.wrap_text(message, width - 2) or [""]
    writer.ensure_space(t.row_height + 2 * pad)
    doc.fill_rect(x, writer.y, width, pad, gray=BAND_GRAY)
    writer.y += pad
    # the band is drawn row by row so a long message can continue on the next page
    for line in lines:
        if writer.ensure_space(t.row_height + pad):
            doc.fill_rect(x, writer.y, width, pad, gray=BAND_GRAY)
            writer.y += pad
        doc.fill_rect(x, writer.y, width, t.row_height, gray=BAND_GRAY)
        doc.set_font(8)
        doc.text(line, t.margin + t.content_width / 2, writer.y + t.baseline, align="center")
        writer.y += t.row_height
    doc.fill_rect(x, writer.y, width, pad, gray=BAND_GRAY)
    writer.y += pad + t.row_height * 0.6


def _also_sells(writer: PagedWriter, opts: ReceiptOptions) -> None:
    items = [i for i in opts.items if str(i).strip()][:MAX_RECEIPT_ITEMS]
    if not items:
        return
    indent = 0 if writer.template.is_small else 8
    writer.text_line(f"{opts.app_name} also sells the following items:", size=8, style="bold", indent=indent)
    for n, item in enumerate(items, start=1):
        writer.text_line(f"{n}) {item}", size=7, indent=indent)
    writer.gap(writer.template.row_height / 2)


def _signatures(writer: PagedWriter, opts: ReceiptOptions) -> None:
    doc, t = writer.doc, writer.template
    if t.is_small:
        writer.ensure_space(t.row_height * 6)
        for label in ("Customer Sign", opts.app_name):
            writer.y += t.row_height * 1.5
            doc.line(t.margin, writer.y, t.width - t.margin, writer.y, gray=MUTED_GRAY, width=0.2)
            doc.set_font(7)
            doc.text(doc.clip_text(label, t.content_width), t.margin, writer.y + t.baseline)
            writer.y += t.row_height
        return
    writer.ensure_space(30)
    writer.y += 10
    doc.line(t.margin + 5, writer.y, t.width - t.margin - 5, writer.y, gray=BORDER_GRAY, width=0.3)
    writer.y += 12
    half = t.margin + t.content_width / 2
    doc.set_font(8)
    doc.text("Customer Sign", t.margin + 8, writer.y)
    doc.text(doc.clip_text(opts.app_name, 80), half + 8, writer.y)
    writer.y += 5
    doc.line(t.margin + 8, writer.y, t.margin + 88, writer.y, gray=MUTED_GRAY, width=0.5)
    doc.line(half + 8, writer.y, half + 88, writer.y, gray=MUTED_GRAY, width=0.5)
    writer.y += 8


def _barcode(writer: PagedWriter, value: str) -> bool:
    """CODE128 of the receipt number, centred; failures are logged and skipped."""
    doc, t = writer.doc, writer.template
    bar_height = 8 if t.is_small else 12
    writer.ensure_space(bar_height + 6)
    try:
        bar_width = 0.25 * mm if t.is_small else 0.33 * mm
        barcode = code128.Code128(value, barHeight=bar_height * mm, barWidth=bar_width, humanReadable=True, quiet=False)
        available = t.content_width * mm
        if barcode.width > available:
            barcode = code128.Code128(
                value, barHeight=bar_height * mm, barWidth=bar_width * available / barcode.width,
                humanReadable=True, quiet=False,
            )
        x = t.margin * mm + (available - barcode.width) / 2
        y = (t.height - writer.y - bar_height - 3) * mm
        barcode.drawOn(doc.canvas, x, y)
    except Exception:
        logger.warning("Could not draw barcode for %s", value, exc_info=True)
        return False
    writer.y += bar_height + 5
    return True


def _closing(writer: PagedWriter, opts: ReceiptOptions) -> None:
    doc, t = writer.doc, writer.template
    doc.set_font(8, "italic")
    for line in doc.wrap_text(opts.thank_you_message or DEFAULT_THANK_YOU_MESSAGE, t.content_width):
        if writer.ensure_space(t.row_height):
            doc.set_font(8, "italic")
        doc.text(line, t.margin + t.content_width / 2, writer.y + t.baseline, align="center", gray=MUTED_GRAY)
        writer.y += t.row_height * 0.8


def _item_table(record: Any, title: Optional[str] = None) -> Table:
    pcs = to_count(safe_get(record, "pcs")) or 1
    rate = to_amount(safe_get(record, "unit_price"))
    amount = to_amount(safe_get(record, "total_price")) or rate * pcs
    return Table(ITEM_COLUMNS, [[str(safe_get(record, "name") or "N/A"), str(pcs), _money(rate), _money(amount)]],
                 title=title)


def _line_total(record: Any) -> Any:
    pcs = to_count(safe_get(record, "pcs")) or 1
    return to_amount(safe_get(record, "total_price")) or to_amount(safe_get(record, "unit_price")) * pcs


def _repayment_table(record: Any) -> Table:
    columns = (Column("FOR ITEM", 50, 40, 16), Column("DEBT REF", 25), Column("PAID", 25))
    debt_ref = f"DEBT-{_padded_id(safe_get(record, 'debt_id'))}"
    return Table(columns, [[str(safe_get(record, "item_name") or "N/A"), debt_ref, _money(safe_get(record, "amount"))]])


# ==============================
# 🧾 Layouts
# ==============================

Layout = Callable[[PagedWriter, Any, ReceiptOptions], None]


def _sale_layout(writer: PagedWriter, record: Any, opts: ReceiptOptions) -> None:
    small = writer.template.is_small
    _client_block(writer, record)
    draw_table(writer, _item_table(record), gap=1.5 if small else 4)
    total = _line_total(record)
    _summary_lines(writer, [("Sub Total:", total)], total)
    _acknowledgment(writer, record, opts)
    _also_sells(writer, opts)
    _signatures(writer, opts)
    _barcode(writer, receipt_number(record, KIND_SALE))
    _closing(writer, opts)


def _debt_layout(writer: PagedWriter, record: Any, opts: ReceiptOptions) -> None:
    small = writer.template.is_small
    _client_block(writer, record)
    draw_table(writer, _item_table(record), gap=1.5 if small else 4)
    total = _line_total(record)
    _summary_lines(writer, [
        ("Sub Total:", total),
        ("Paid:" if small else "Amount Paid:", safe_get(record, "amount_payable_now")),
        ("Owed:" if small else "Balance Owed:", safe_get(record, "balance_owed")),
    ], total)
    _acknowledgment(writer, record, opts)
    _also_sells(writer, opts)
    _signatures(writer, opts)
    _barcode(writer, receipt_number(record, KIND_DEBT))
    _closing(writer, opts)


def _repayment_layout(writer: PagedWriter, record: Any, opts: ReceiptOptions) -> None:
    small = writer.template.is_small
    _client_block(writer, record)
    draw_table(writer, _repayment_table(record), gap=1.5 if small else 4)
    rows = [("Paid:" if small else "Amount Paid:", safe_get(record, "amount"))]
    if opts.remaining_balance is not None:
        rows.append(("Balance:" if small else "Remaining Balance:", opts.remaining_balance))
    _summary_lines(writer, rows, safe_get(record, "amount"))
    _signatures(writer, opts)
    _barcode(writer, receipt_number(record, KIND_REPAYMENT))
    _closing(writer, opts)


# one layout per kind; the page template only changes density
LAYOUTS: Dict[str, Layout] = {
    KIND_SALE: _sale_layout,
    KIND_DEBT: _debt_layout,
    KIND_REPAYMENT: _repayment_layout,
}


def generate_receipt(record: Any, kind: str = KIND_SALE, options: Optional[ReceiptOptions] = None) -> RenderedPdf:
    """Render one receipt (A4 or 58 mm roll, picked by `options.printer`)."""
    if kind not in _TITLES:
        raise ValueError(f"Unknown receipt kind: {kind!r}")
    opts = options or ReceiptOptions()
    template = template_for(opts.printer)
    doc = PdfDocument(template, title=f"{opts.app_name} {_TITLES[kind].title()}", compress=opts.compress)

    def header(d: PdfDocument, y: float) -> float:
        if d.template.is_small:
            return _header_small(d, y, record, kind, opts)
        return _header_a4(d, y, record, kind, opts)

    writer = PagedWriter(doc, opts.app_name, header)
    writer.begin()
    LAYOUTS[kind](writer, record, opts)
    writer.finish()
    day = extract_yyyymmdd(opts.generated_on) or get_local_date()
    rendered = RenderedPdf(receipt_filename(record, kind, opts.app_name, day), doc.to_bytes(), doc.page_count)
    logger.info("Rendered %s (%s)", rendered.filename, template.name)
    return rendered


def load_logo(client: Any, config: Configuration) -> Optional[bytes]:
    """Fetch the configured logo through the API client; None when absent or unreachable."""
    if not config.logo_url:
        return None
    return client.fetch_bytes(client.get_full_image_url(config.logo_url))
