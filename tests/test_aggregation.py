from decimal import Decimal

import pytest

from shop_accountant.report.aggregation import (
    ItemSales,
    NEGATIVE_COLOR,
    POSITIVE_COLOR,
    STATUS_DEFICIENT,
    STATUS_NORMAL,
    STATUS_WARNING,
    daily_summary,
    dashboard_totals,
    debt_payment_status,
    executive_summary,
    format_ranking_line,
    format_stock_alerts_text,
    gain_loss_by_item,
    gain_loss_for,
    low_sales_items,
    pie_chart_svg,
    pie_segments,
    rank_items,
    stock_alerts,
    stock_grand_total,
    stock_lines,
    stock_status,
)


def test_dashboard_positive_balance():
    stats = dashboard_totals([{"total_price": 50000}], [{"amount": 10000}], [{"total_amount": 15000}])
    assert stats.net_balance == Decimal("25000")
    assert stats.tone == "positive"
    assert stats.color == POSITIVE_COLOR


def test_dashboard_negative_balance(sales, expenses, inventory):
    stats = dashboard_totals(sales, expenses, inventory)
    assert stats.total_income == Decimal("6100")
    assert stats.total_expenses == Decimal("51500")
    assert stats.total_purchases == Decimal("36000")
    assert stats.net_balance == Decimal("-81400")
    assert stats.color == NEGATIVE_COLOR


def test_pie_segments_percentages_and_order():
    segments = pie_segments(6000, 3000, 1000)
    assert [s.label for s in segments] == ["Sales", "Expenses", "Purchases"]
    assert [round(s.percentage) for s in segments] == [60, 30, 10]
    assert segments[0].start_angle == -90
    assert segments[-1].end_angle == pytest.approx(270)
    assert segments[0].percentage_label == "60.0%"


def test_pie_segments_drop_empty_slices():
    assert pie_segments(0, 0, 0) == []
    only = pie_segments(100, 0, 0)
    assert len(only) == 1 and only[0].large_arc
    small = pie_segments(96, 4, 0)
    assert not small[1].show_label


def test_pie_chart_svg_labels_large_slices():
    svg = pie_chart_svg(pie_segments(6000, 3000, 1000))
    assert svg.startswith("<svg")
    assert "60.0%" in svg and "10.0%" in svg


def test_gain_loss_per_sale_and_per_item(sales, debts, inventory):
    assert gain_loss_for(sales[0], inventory) == Decimal("800")
    # item missing from inventory: cost 0
    assert gain_loss_for({"name": "Sugar", "pcs": 2, "total_price": 900}, inventory) == Decimal("900")

    items = gain_loss_by_item(sales + debts, inventory)
    oil = next(i for i in items if i.name == "Oil")
    assert oil.pcs_sold == 5
    assert oil.gain_loss == Decimal("400")
    total = sum((i.gain_loss for i in items), Decimal("0"))
    assert total == sum((gain_loss_for(r, inventory) for r in sales + debts), Decimal("0"))


def test_rankings_are_disjoint():
    records = [{"name": f"Item{n:02d}", "pcs": n, "total_price": n * 100} for n in range(1, 16)]
    most, least = rank_items(records)
    assert [i.count for i in most] == list(range(15, 5, -1))
    assert [i.count for i in least] == [1, 2, 3, 4, 5]
    assert not {i.name for i in most} & {i.name for i in least}


def test_rankings_small_sets_have_no_least_list():
    most, least = rank_items([{"name": "A", "pcs": 1}, {"name": "B", "pcs": 2}])
    assert [i.name for i in most] == ["B", "A"]
    assert least == []


def test_low_sales_and_ranking_line():
    records = [{"name": "A", "pcs": 2}, {"name": "B", "pcs": 9}, {"name": "A", "pcs": 1}]
    assert [(i.name, i.count) for i in low_sales_items(records)] == [("A", 3)]
    assert format_ranking_line(ItemSales("Rice", 4, Decimal("2800"))) == "Rice: 4 Pcs (2,800FCFA)"


def test_stock_status_thresholds():
    assert stock_status(5, 10) == STATUS_DEFICIENT
    assert stock_status(10, 10) == STATUS_DEFICIENT
    assert stock_status(14, 10) == STATUS_WARNING
    assert stock_status(16, 10) == STATUS_NORMAL
    assert stock_status(0, None) == STATUS_NORMAL
    assert stock_status(0, 0) == STATUS_NORMAL


def test_stock_alerts(inventory):
    alerts = stock_alerts(inventory)
    assert [(a.name, a.status) for a in alerts] == [("Rice", STATUS_DEFICIENT), ("Oil", STATUS_WARNING)]
    assert [a.name for a in stock_alerts(inventory, include_warnings=False)] == ["Rice"]
    assert "[DEFICIENT] Rice: 5 left (threshold 10)" in format_stock_alerts_text(alerts)
    assert format_stock_alerts_text([]) == "No stock alerts."


def test_stock_lines_grand_total(inventory):
    lines = stock_lines(inventory)
    assert [line.total_price for line in lines] == [Decimal("2500"), Decimal("14000"), Decimal("3200")]
    assert stock_grand_total(lines) == Decimal("19700")


def test_debt_payment_status(debt_rows):
    repayments = [{"debt_id": 7, "amount": 600}, {"debt_id": 8, "amount": 100}]
    status = debt_payment_status(debt_rows[0], repayments)
    assert status.total_paid == Decimal("1600")
    assert status.remaining == Decimal("2000")


def test_daily_summary(sales, debts, inventory):
    summary = daily_summary(sales, debts, inventory, "2025-02-05")
    assert [s.name for s in summary.sales] == ["Rice", "Oil"]
    assert summary.sales_total == Decimal("4600")
    assert summary.gain_loss == Decimal("600")
    assert summary.debts_owed == Decimal("2600")


def test_executive_summary(inventory, sales, debts, expenses):
    summary = executive_summary(inventory, sales, debts, expenses, "2025-02-01", "2025-02-28")
    assert summary.inventory_total == Decimal("36000")
    assert summary.sales_total == Decimal("6100")
    assert summary.total_debts_owed == Decimal("2600")
    assert summary.expenses_total == Decimal("1500")
    assert summary.total_revenue == Decimal("7100")
    assert summary.gain_loss == Decimal("5600")
    assert summary.overall_total == Decimal("46200")
    assert summary.total_item_gain_loss == Decimal("1700")
