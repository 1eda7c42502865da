# shop_accountant/report/reports.py
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font

from shop_accountant.config import DEFAULT_APP_NAME
from shop_accountant.currency.display import ReportAmountFormatter
from shop_accountant.report.aggregation import (
    DailySummary,
    ExecutiveSummary,
    ItemSales,
    StockLine,
    find_inventory_cost,
    format_ranking_line,
    safe_get,
    stock_grand_total,
)
from shop_accountant.report.pdf_layout import (
    BAND_GRAY,
    Column,
    HeaderFn,
    PagedWriter,
    PdfDocument,
    Table,
    TEXT_GRAY,
    draw_table,
    template_for,
)
from shop_accountant.utils.dates import format_long_date, get_local_date
from shop_accountant.utils.io_utils import atomic_write_text, safe_filename_part
from shop_accountant.utils.validators import to_count

logger = logging.getLogger(__name__)

AmountFormatter = Callable[[Any], str]


@dataclass
class RenderedPdf:
    filename: str
    data: bytes
    page_count: int = 1


@dataclass
class ReportOptions:
    app_name: str = DEFAULT_APP_NAME
    printer: str = "normal"
    formatter: AmountFormatter = field(default_factory=ReportAmountFormatter)
    generated_on: Optional[str] = None
    compress: bool = True

    @property
    def today(self) -> str:
        return self.generated_on or get_local_date()


# ==============================
# 📐 Column sets
# ==============================

EXECUTIVE_INVENTORY_COLUMNS = (
    Column("Item Name", 40, 25, 10),
    Column("Pcs", 15),
    Column("Unit Price", 22),
    Column("Total Value", 23),
)
EXECUTIVE_SALES_COLUMNS = (
    Column("Date", 25),
    Column("Item", 25, 18, 8),
    Column("Pcs", 15),
    Column("Unit Selling Price", 18),
    Column("Total", 17),
)
EXECUTIVE_DEBTS_COLUMNS = (
    Column("Date", 22),
    Column("Item", 20, 18, 8),
    Column("Pcs", 12),
    Column("Total", 15),
    Column("Paid", 15),
    Column("Owed", 16),
)
EXECUTIVE_EXPENSES_COLUMNS = (
    Column("Date", 25),
    Column("Category", 18, 15, 8),
    Column("Description", 37, 28, 12),
    Column("Amount", 20),
)
SUMMARY_COLUMNS = (
    Column("Head", 60),
    Column("Amount", 40),
)
GAIN_LOSS_COLUMNS = (
    Column("Item Name", 30, 22, 10),
    Column("Unit Cost Price", 18),
    Column("Pcs Sold", 12),
    Column("Unit Selling Price", 18),
    Column("Net Gain/Loss", 22),
)
DAILY_SALES_COLUMNS = (
    Column("Item Name", 25, 20, 8),
    Column("Pcs", 12),
    Column("Unit Cost Price", 18),
    Column("Unit Selling Price", 18),
    Column("Total Sale", 15),
    Column("Gain/Loss", 12),
)
DAILY_DEBTS_COLUMNS = (
    Column("Item Name", 25, 20, 8),
    Column("Pcs", 12),
    Column("Unit Cost Price", 18),
    Column("Unit Selling Price", 18),
    Column("Amount Paid", 15),
    Column("Amount Owed", 12),
)
STOCKS_COLUMNS = (
    Column("#", 15),
    Column("Item Name", 40, 30, 10),
    Column("Pcs Left", 15),
    Column("Unit Price", 15),
    Column("Total Price", 15),
)
RANKING_COLUMNS = (
    Column("Item Name", 50, 30, 10),
    Column("Pcs", 20),
    Column("Total", 30),
)


# ==============================
# 📋 Tables
# ==============================

def _name(record: Any) -> str:
    return str(safe_get(record, "name") or "N/A")


def executive_tables(summary: ExecutiveSummary, fmt: AmountFormatter) -> List[Table]:
    """INVENTORY, SALES, DEBTS, EXPENSES, SUMMARY, GAIN/LOSS ANALYSIS."""
    inventory_rows = [
        [_name(i), str(to_count(safe_get(i, "pcs"))), fmt(safe_get(i, "unit_price")), fmt(safe_get(i, "total_amount"))]
        for i in summary.inventory
    ]
    inventory_rows.append(["TOTAL", "", "", fmt(summary.inventory_total)])

    sales_rows = [
        [format_long_date(safe_get(s, "date")), _name(s), str(to_count(safe_get(s, "pcs"))),
         fmt(safe_get(s, "unit_price")), fmt(safe_get(s, "total_price"))]
        for s in summary.sales
    ]
    sales_rows.append(["TOTAL", "", "", "", fmt(summary.sales_total)])

    debts_rows = [
        [format_long_date(safe_get(d, "date")), _name(d), str(to_count(safe_get(d, "pcs"))),
         fmt(safe_get(d, "total_price")), fmt(safe_get(d, "amount_payable_now")), fmt(safe_get(d, "balance_owed"))]
        for d in summary.debts
    ]
    debts_rows.append(["TOTAL", "", "", fmt(summary.debts_total), fmt(summary.debts_paid),
                       fmt(summary.total_debts_owed)])

    expenses_rows = [
        [format_long_date(safe_get(e, "date")),
         str(safe_get(e, "category") or safe_get(e, "name") or "N/A"),
         str(safe_get(e, "description") or "N/A"),
         fmt(safe_get(e, "amount"))]
        for e in summary.expenses
    ]
    expenses_rows.append(["TOTAL", "", "", fmt(summary.expenses_total)])

    summary_rows = [
        ["Total Inventory", fmt(summary.inventory_total)],
        ["Total Sales", fmt(summary.sales_total)],
        ["Total Debts Owed", fmt(summary.total_debts_owed)],
        ["Total Expenses", fmt(summary.expenses_total)],
        ["Total Gain/Loss", fmt(summary.total_item_gain_loss)],
        ["Overall Total", fmt(summary.overall_total)],
    ]

    items = summary.item_gain_loss
    gain_rows = [
        [i.name or "N/A", fmt(i.cost_price), str(i.pcs_sold), fmt(i.selling_price), fmt(i.gain_loss)]
        for i in items
    ]

    return [
        Table(EXECUTIVE_INVENTORY_COLUMNS, inventory_rows, "INVENTORY", highlight_last_row=True),
        Table(EXECUTIVE_SALES_COLUMNS, sales_rows, "SALES", highlight_last_row=True),
        Table(EXECUTIVE_DEBTS_COLUMNS, debts_rows, "DEBTS", highlight_last_row=True),
        Table(EXECUTIVE_EXPENSES_COLUMNS, expenses_rows, "EXPENSES", highlight_last_row=True),
        Table(SUMMARY_COLUMNS, summary_rows, "SUMMARY", highlight_last_row=True),
        # losses are set in bold in the last column
        Table(GAIN_LOSS_COLUMNS, gain_rows, "GAIN/LOSS ANALYSIS",
              emphasis=lambda row, col: col == 4 and items[row].is_loss),
    ]


def daily_tables(summary: DailySummary, fmt: AmountFormatter) -> List[Table]:
    sales_rows = [
        [_name(line.record), str(to_count(safe_get(line.record, "pcs"))), fmt(line.cost_price),
         fmt(safe_get(line.record, "unit_price")), fmt(safe_get(line.record, "total_price")),
         fmt(line.gain_loss)]
        for line in summary.sale_lines
    ]
    sales_rows.append(["TOTAL", "", "", "", fmt(summary.sales_total), fmt(summary.gain_loss)])

    debts_rows = []
    for d in summary.debts:
        debts_rows.append([
            _name(d), str(to_count(safe_get(d, "pcs"))),
            fmt(find_inventory_cost(safe_get(d, "name"), summary.inventory)),
            fmt(safe_get(d, "unit_price")), fmt(safe_get(d, "amount_payable_now")),
            fmt(safe_get(d, "balance_owed")),
        ])
    debts_rows.append(["TOTAL", "", "", "", "", fmt(summary.debts_owed)])

    return [
        Table(DAILY_SALES_COLUMNS, sales_rows, "SALES", highlight_last_row=True,
              emphasis=lambda row, col: col == 5 and row < len(summary.sale_lines)
              and summary.sale_lines[row].gain_loss < 0),
        Table(DAILY_DEBTS_COLUMNS, debts_rows, "DEBTS", highlight_last_row=True),
    ]


def ranking_tables(summary: Any, fmt: AmountFormatter) -> List[Table]:
    """Most sold, least sold and (executive only) low-sales lists as tables; empty lists are skipped."""
    sections = [
        ("MOST SOLD ITEMS", summary.most_sold),
        ("LEAST SOLD ITEMS", summary.least_sold),
        ("LOW SALES ITEMS", getattr(summary, "low_sales", [])),
    ]
    return [
        Table(RANKING_COLUMNS, [[i.name or "N/A", str(i.count), fmt(i.total)] for i in items], title)
        for title, items in sections if items
    ]


def stocks_table(lines: Sequence[StockLine], fmt: AmountFormatter) -> Table:
    rows = [
        [str(n), line.name or "N/A", str(line.pcs_left), fmt(line.unit_price), fmt(line.total_price)]
        for n, line in enumerate(lines, start=1)
    ]
    rows.append(["", "GRAND TOTAL", "", "", fmt(stock_grand_total(lines))])
    return Table(STOCKS_COLUMNS, rows, "INVENTORY STOCK REPORT", highlight_last_row=True)


# ==============================
# 🖨️ PDF rendering
# ==============================

def report_header(app_name: str, title: str, info_lines: Sequence[str]) -> HeaderFn:
    """Page header: app name and title on the left, period/generation info on the right."""

    def draw_a4(doc: PdfDocument, y: float) -> float:
        t = doc.template
        x, width, height = t.margin, t.content_width, t.header_height
        doc.fill_rect(x, y, width, height, gray=BAND_GRAY)
        doc.fill_rect(x, y, width, 2.5, gray=0.6)
        doc.fill_rect(x + width - 35, y, 35, height, gray=0.35)
        doc.set_font(16, "bold")
        doc.text(doc.clip_text(app_name.upper(), width - 45), x + 6, y + 7)
        doc.set_font(10)
        doc.text(title, x + 6, y + 13)
        info_x = x + width - 33
        for n, line in enumerate(info_lines):
            doc.set_font(7 if n == 0 else 6, "bold")
            doc.text(line, info_x, y + 7 + 3 * n, gray=1.0)
        return y + height + 3

    def draw_small(doc: PdfDocument, y: float) -> float:
        t = doc.template
        center = t.margin + t.content_width / 2
        doc.set_font(16, "bold")
        doc.text(doc.clip_text(app_name.upper(), t.content_width), center, y + 2.5, align="center")
        doc.set_font(10)
        doc.text(title, center, y + 5, align="center")
        doc.set_font(6)
        line_y = y + 7
        for line in info_lines:
            doc.text(doc.clip_text(line, t.content_width), center, line_y, align="center")
            line_y += 1.6
        doc.line(t.margin, line_y, t.width - t.margin, line_y, gray=TEXT_GRAY, width=0.1)
        return line_y + 1.5

    def draw(doc: PdfDocument, y: float) -> float:
        return draw_small(doc, y) if doc.template.is_small else draw_a4(doc, y)

    return draw


def _draw_ranking(writer: PagedWriter, title: str, items: Sequence[ItemSales]) -> None:
    if not items:
        return
    t = writer.template
    writer.ensure_space(4 * t.row_height)
    writer.text_line(title, size=9, style="bold")
    for item in items:
        writer.text_line(format_ranking_line(item))
    writer.gap(t.row_height / 2)


def _render(options: ReportOptions, title: str, info_lines: Sequence[str],
            body: Callable[[PagedWriter], None], filename: str) -> RenderedPdf:
    template = template_for(options.printer)
    doc = PdfDocument(template, title=f"{options.app_name} {title.title()}", compress=options.compress)
    writer = PagedWriter(doc, options.app_name, report_header(options.app_name, title, info_lines))
    writer.begin()
    body(writer)
    writer.finish()
    data = doc.to_bytes()
    logger.info("Rendered %s (%d page(s), %s)", filename, doc.page_count, template.name)
    return RenderedPdf(filename=filename, data=data, page_count=doc.page_count)


def executive_report_filename(app_name: str, start: str, end: str) -> str:
    return f"{safe_filename_part(app_name)}-Executive-Report-{start}-to-{end}.pdf"


def daily_report_filename(app_name: str, day: str) -> str:
    return f"{safe_filename_part(app_name)}-Daily-Report-{day}.pdf"


def stocks_report_filename(app_name: str, day: str) -> str:
    return f"{safe_filename_part(app_name)}-Stocks-Report-{day}.pdf"


def build_executive_report(summary: ExecutiveSummary, options: Optional[ReportOptions] = None) -> RenderedPdf:
    options = options or ReportOptions()
    tables = executive_tables(summary, options.formatter)

    def body(writer: PagedWriter) -> None:
        for table in tables:
            draw_table(writer, table)
        _draw_ranking(writer, "MOST SOLD ITEMS", summary.most_sold)
        _draw_ranking(writer, "LEAST SOLD ITEMS", summary.least_sold)

    info = [
        "Period:",
        format_long_date(summary.start),
        format_long_date(summary.end),
        "Generated:",
        format_long_date(options.today),
    ]
    return _render(options, "EXECUTIVE REPORT", info, body,
                   executive_report_filename(options.app_name, summary.start, summary.end))


def build_daily_report(summary: DailySummary, options: Optional[ReportOptions] = None) -> RenderedPdf:
    options = options or ReportOptions()
    tables = daily_tables(summary, options.formatter)

    def body(writer: PagedWriter) -> None:
        for table in tables:
            draw_table(writer, table)
        _draw_ranking(writer, "MOST SOLD ITEMS", summary.most_sold)
        _draw_ranking(writer, "LEAST SOLD ITEMS", summary.least_sold)

    info = ["Date:", format_long_date(summary.day), "Generated:", format_long_date(options.today)]
    return _render(options, "DAILY REPORT", info, body, daily_report_filename(options.app_name, summary.day))


def build_stocks_report(lines: Sequence[StockLine], options: Optional[ReportOptions] = None) -> RenderedPdf:
    options = options or ReportOptions()
    table = stocks_table(lines, options.formatter)

    def body(writer: PagedWriter) -> None:
        draw_table(writer, table)

    info = ["Date:", format_long_date(options.today), f"Items: {len(lines)}"]
    return _render(options, "STOCKS REPORT", info, body, stocks_report_filename(options.app_name, options.today))


# ==============================
# 📤 Spreadsheet export
# ==============================

_SHEET_INVALID = re.compile(r"[\[\]\*\?/\\:]")


def _sheet_title(title: str, used: set) -> str:
    base = _SHEET_INVALID.sub("-", title or "Sheet")[:31] or "Sheet"
    name, n = base, 2
    while name in used:
        suffix = f" ({n})"
        name = base[:31 - len(suffix)] + suffix
        n += 1
    used.add(name)
    return name


def export_tables_xlsx(tables: Sequence[Table], out_xlsx_path: str) -> Path:
    """One sheet per table, bold header row."""
    wb = Workbook()
    used: set = set()
    bold = Font(bold=True)
    for n, table in enumerate(tables):
        ws = wb.active if n == 0 else wb.create_sheet()
        ws.title = _sheet_title(table.title or f"Table {n + 1}", used)
        ws.append(list(table.headers))
        for cell in ws[1]:
            cell.font = bold
        for row in table.rows:
            ws.append(list(row))
        if table.highlight_last_row and table.rows:
            for cell in ws[ws.max_row]:
                cell.font = bold

    path = Path(out_xlsx_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(path))
    logger.info("Wrote %s", path)
    return path


def export_table_csv(table: Table, out_csv_path: str, encoding: str = "utf-8") -> Path:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(table.headers)
    writer.writerows(table.rows)
    return atomic_write_text(out_csv_path, buffer.getvalue(), encoding=encoding)
