from decimal import Decimal

import pytest
from openpyxl import load_workbook

from shop_accountant.report.aggregation import daily_summary, executive_summary, stock_lines
from shop_accountant.report.reports import (
    ReportOptions,
    build_daily_report,
    build_executive_report,
    build_stocks_report,
    daily_tables,
    executive_tables,
    export_table_csv,
    ranking_tables,
    export_tables_xlsx,
    stocks_table,
)


def _options(**kwargs):
    return ReportOptions(app_name="Mama Shop", generated_on="2025-02-07", compress=False, **kwargs)


def _fmt(value):
    return f"{Decimal(str(value or 0)):,.0f}"


def test_executive_report(inventory, sales, debts, expenses):
    summary = executive_summary(inventory, sales, debts, expenses, "2025-02-01", "2025-02-28")
    rendered = build_executive_report(summary, _options())
    assert rendered.filename == "Mama-Shop-Executive-Report-2025-02-01-to-2025-02-28.pdf"
    assert rendered.data.startswith(b"%PDF")
    for title in (b"INVENTORY", b"EXPENSES", b"GAIN/LOSS ANALYSIS", b"MOST SOLD ITEMS"):
        assert title in rendered.data


def test_executive_tables_totals(inventory, sales, debts, expenses):
    summary = executive_summary(inventory, sales, debts, expenses, "2025-02-01", "2025-02-28")
    tables = {t.title: t for t in executive_tables(summary, _fmt)}
    assert tables["SALES"].rows[-1] == ["TOTAL", "", "", "", "6,100"]
    assert tables["DEBTS"].rows[-1][-1] == "2,600"
    # category column falls back to the expense name
    assert tables["EXPENSES"].rows[0][1] == "Logistics"
    summary_rows = dict((row[0], row[1]) for row in tables["SUMMARY"].rows)
    assert summary_rows["Overall Total"] == "46,200"
    assert summary_rows["Total Gain/Loss"] == "1,700"


def test_daily_report_on_small_printer(sales, debts, inventory):
    summary = daily_summary(sales, debts, inventory, "2025-02-05")
    rendered = build_daily_report(summary, _options(printer="small"))
    assert rendered.filename == "Mama-Shop-Daily-Report-2025-02-05.pdf"
    assert rendered.page_count >= 1
    sales_table, debts_table = daily_tables(summary, _fmt)
    assert sales_table.rows[-1] == ["TOTAL", "", "", "", "4,600", "600"]
    # debt cost comes from inventory, not from same-day sales
    assert debts_table.rows[0][2] == "1,000"


def test_stocks_report(inventory):
    lines = stock_lines(inventory)
    table = stocks_table(lines, _fmt)
    assert table.title == "INVENTORY STOCK REPORT"
    assert table.rows[-1] == ["", "GRAND TOTAL", "", "", "19,700"]
    rendered = build_stocks_report(lines, _options())
    assert rendered.filename == "Mama-Shop-Stocks-Report-2025-02-07.pdf"
    assert b"GRAND TOTAL" in rendered.data


@pytest.mark.parametrize("printer", ["normal", "small"])
def test_large_stock_report_spans_pages(printer):
    lines = stock_lines([
        {"id": n, "name": f"Item {n}", "available_stock": n, "unit_price": 100} for n in range(200)
    ])
    rendered = build_stocks_report(lines, _options(printer=printer))
    assert rendered.page_count > 1
    assert b"continued" in rendered.data


def test_export_tables_xlsx(tmp_path, inventory, sales, debts, expenses):
    summary = executive_summary(inventory, sales, debts, expenses, "2025-02-01", "2025-02-28")
    path = export_tables_xlsx(executive_tables(summary, _fmt), str(tmp_path / "out" / "exec.xlsx"))
    wb = load_workbook(path)
    assert wb.sheetnames == ["INVENTORY", "SALES", "DEBTS", "EXPENSES", "SUMMARY", "GAIN-LOSS ANALYSIS"]
    ws = wb["SALES"]
    assert ws["A1"].value == "Date"
    assert ws["A1"].font.bold
    assert ws.cell(row=ws.max_row, column=1).value == "TOTAL"


def test_export_table_csv(tmp_path, inventory):
    path = export_table_csv(stocks_table(stock_lines(inventory), _fmt), str(tmp_path / "stock.csv"))
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "#,Item Name,Pcs Left,Unit Price,Total Price"
    assert lines[-1] == ',GRAND TOTAL,,,"19,700"'


def test_ranking_tables_include_low_sales(inventory, sales, debts, expenses):
    summary = executive_summary(inventory, sales, debts, expenses, "2025-02-01", "2025-02-28")
    tables = ranking_tables(summary, _fmt)
    # every item made the top ten, so there is no separate least-sold list
    assert [t.title for t in tables] == ["MOST SOLD ITEMS", "LOW SALES ITEMS"]
    assert tables[0].rows[0] == ["Soap", "5", "1,500"]
    assert tables[1].rows == [["Oil", "2", "1,800"], ["Rice", "4", "2,800"]]


def test_daily_ranking_tables(sales, debts, inventory):
    tables = ranking_tables(daily_summary(sales, debts, inventory, "2025-02-06"), _fmt)
    assert [t.title for t in tables] == ["MOST SOLD ITEMS"]
