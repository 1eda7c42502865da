# shop_accountant/report/aggregation.py
"""
Pure financial aggregation over API records.

Every function accepts either record dataclasses or raw API dicts
(see `safe_get`) and never raises on bad numbers: missing or
non-numeric fields count as 0.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from shop_accountant.config import RANKING_SIZE, WARNING_STOCK_FACTOR
from shop_accountant.utils.dates import extract_yyyymmdd, in_date_range
from shop_accountant.utils.validators import ZERO, to_amount, to_count

logger = logging.getLogger(__name__)

PIE_COLORS = {
    "Sales": "#4CAF50",
    "Expenses": "#FF6B35",
    "Purchases": "#FF9800",
}
POSITIVE_COLOR = "#2196F3"
NEGATIVE_COLOR = "#f44336"

STATUS_DEFICIENT = "deficient"
STATUS_WARNING = "warning"
STATUS_NORMAL = "normal"


# ==============================
# 🔧 Helper Functions
# ==============================

def safe_get(obj: Any, attr: str, default: Any = None) -> Any:
    """Read `attr` from a dict or an object."""
    if obj is None:
        return default
    return obj.get(attr, default) if isinstance(obj, dict) else getattr(obj, attr, default)


def _sum(records: Iterable[Any], attr: str) -> Decimal:
    return sum((to_amount(safe_get(r, attr)) for r in records), ZERO)


# ==============================
# 📊 Dashboard
# ==============================

@dataclass(frozen=True)
class DashboardStats:
    total_income: Decimal
    total_expenses: Decimal
    total_purchases: Decimal
    net_balance: Decimal

    @property
    def tone(self) -> str:
        return "positive" if self.net_balance >= 0 else "negative"

    @property
    def color(self) -> str:
        return POSITIVE_COLOR if self.net_balance >= 0 else NEGATIVE_COLOR


def dashboard_totals(income: Iterable[Any], expenses: Iterable[Any], purchases: Iterable[Any]) -> DashboardStats:
    """income = Σ total_price, expenses = Σ amount, purchases = Σ total_amount."""
    total_income = _sum(income, "total_price")
    total_expenses = _sum(expenses, "amount")
    total_purchases = _sum(purchases, "total_amount")
    return DashboardStats(
        total_income=total_income,
        total_expenses=total_expenses,
        total_purchases=total_purchases,
        net_balance=total_income - (total_expenses + total_purchases),
    )


@dataclass(frozen=True)
class PieSegment:
    label: str
    value: float
    color: str
    percentage: float
    start_angle: float
    end_angle: float
    large_arc: bool
    path: str
    label_x: float
    label_y: float

    @property
    def show_label(self) -> bool:
        return self.percentage > 5

    @property
    def percentage_label(self) -> str:
        return f"{self.percentage:.1f}%"


def _point(cx: float, cy: float, r: float, angle_deg: float) -> Tuple[float, float]:
    rad = math.radians(angle_deg)
    return cx + r * math.cos(rad), cy + r * math.sin(rad)


def pie_segments(
    total_income: Any,
    total_expenses: Any,
    total_purchases: Any,
    center: Tuple[float, float] = (150.0, 150.0),
    radius: float = 100.0,
) -> List[PieSegment]:
    """
    SVG pie slices for Sales / Expenses / Purchases.

    Zero (or negative) slices are dropped; slices start at -90 degrees and
    go clockwise in that order. Empty list when there is nothing to draw.
    """
    data = [
        ("Sales", float(to_amount(total_income))),
        ("Expenses", float(to_amount(total_expenses))),
        ("Purchases", float(to_amount(total_purchases))),
    ]
    data = [(label, value) for label, value in data if value > 0]
    total = sum(value for _, value in data)
    if total <= 0:
        return []

    cx, cy = center
    segments: List[PieSegment] = []
    current = -90.0
    for label, value in data:
        angle = value / total * 360
        start, end = current, current + angle
        x1, y1 = _point(cx, cy, radius, start)
        x2, y2 = _point(cx, cy, radius, end)
        large_arc = angle > 180
        path = (
            f"M {cx} {cy} L {x1} {y1} "
            f"A {radius} {radius} 0 {1 if large_arc else 0} 1 {x2} {y2} Z"
        )
        lx, ly = _point(cx, cy, radius * 0.65, start + angle / 2)
        segments.append(PieSegment(
            label=label,
            value=value,
            color=PIE_COLORS[label],
            percentage=value / total * 100,
            start_angle=start,
            end_angle=end,
            large_arc=large_arc,
            path=path,
            label_x=lx,
            label_y=ly,
        ))
        current = end
    return segments


def pie_chart_svg(segments: Sequence[PieSegment], size: int = 300) -> str:
    """Render segments into a standalone <svg> string."""
    parts = [f'<svg width="{size}" height="{size}" viewBox="0 0 300 300" xmlns="http://www.w3.org/2000/svg">']
    for s in segments:
        parts.append(f'<path d="{s.path}" fill="{s.color}" stroke="#fff" stroke-width="2"/>')
        if s.show_label:
            parts.append(
                f'<text x="{s.label_x:.2f}" y="{s.label_y:.2f}" text-anchor="middle" '
                f'dominant-baseline="middle" fill="#fff" font-size="14" font-weight="bold">'
                f"{s.percentage_label}</text>"
            )
    parts.append("</svg>")
    return "".join(parts)


# ==============================
# 💰 Gain / loss
# ==============================

def find_inventory_cost(name: Any, inventory: Iterable[Any]) -> Decimal:
    """Unit cost of the first inventory row whose name equals `name` exactly; 0 if none."""
    for item in inventory:
        if safe_get(item, "name") == name:
            return to_amount(safe_get(item, "unit_price"))
    return ZERO


def gain_loss_for(sale: Any, inventory: Sequence[Any]) -> Decimal:
    """total_price - cost * pcs, with cost 0 for items missing from inventory."""
    cost = find_inventory_cost(safe_get(sale, "name"), inventory)
    return to_amount(safe_get(sale, "total_price")) - cost * to_count(safe_get(sale, "pcs"))


@dataclass
class ItemGainLoss:
    name: str
    cost_price: Decimal
    selling_price: Decimal
    pcs_sold: int = 0
    total_cost: Decimal = ZERO
    total_revenue: Decimal = ZERO

    @property
    def gain_loss(self) -> Decimal:
        return self.total_revenue - self.total_cost

    @property
    def is_loss(self) -> bool:
        return self.gain_loss < 0


def gain_loss_by_item(records: Iterable[Any], inventory: Sequence[Any]) -> List[ItemGainLoss]:
    """Group sales and debts by exact item name, in first-seen order."""
    grouped: Dict[str, ItemGainLoss] = {}
    for r in records:
        name = str(safe_get(r, "name") or "")
        cost = find_inventory_cost(safe_get(r, "name"), inventory)
        pcs = to_count(safe_get(r, "pcs"))
        entry = grouped.get(name)
        if entry is None:
            entry = grouped[name] = ItemGainLoss(
                name=name, cost_price=cost, selling_price=to_amount(safe_get(r, "unit_price"))
            )
        entry.pcs_sold += pcs
        entry.total_cost += cost * pcs
        entry.total_revenue += to_amount(safe_get(r, "total_price"))
    return list(grouped.values())


# ==============================
# 🏆 Rankings
# ==============================

@dataclass
class ItemSales:
    name: str
    count: int = 0
    total: Decimal = ZERO


def item_sales(records: Iterable[Any]) -> List[ItemSales]:
    """Per-item piece counts and revenue, keyed on the trimmed name."""
    grouped: Dict[str, ItemSales] = {}
    for r in records:
        name = str(safe_get(r, "name") or "").strip()
        if not name:
            continue
        entry = grouped.setdefault(name, ItemSales(name=name))
        pcs = to_count(safe_get(r, "pcs"))
        entry.count += pcs
        total_price = to_amount(safe_get(r, "total_price"))
        entry.total += total_price if total_price > 0 else to_amount(safe_get(r, "unit_price")) * pcs
    return list(grouped.values())


def rank_items(records: Iterable[Any], size: int = RANKING_SIZE) -> Tuple[List[ItemSales], List[ItemSales]]:
    """
    (most_sold, least_sold).

    most_sold: top `size` by count, descending.
    least_sold: bottom `size` of the same ordering, minus anything already
    in most_sold, ascending. The two lists never share a name.
    """
    ordered = sorted(item_sales(records), key=lambda i: i.count, reverse=True)
    most = ordered[:size]
    most_names = {i.name for i in most}
    least = [i for i in ordered[-size:] if i.name not in most_names] if ordered else []
    least.sort(key=lambda i: i.count)
    return most, least


def low_sales_items(records: Iterable[Any], below: int = 5) -> List[ItemSales]:
    return sorted((i for i in item_sales(records) if i.count < below), key=lambda i: i.count)


def format_ranking_line(item: ItemSales) -> str:
    return f"{item.name}: {item.count} Pcs ({int(item.total.to_integral_value()):,}FCFA)"


# ==============================
# 📦 Stock
# ==============================

def stock_status(available: Any, threshold: Any) -> str:
    """deficient <= threshold < warning <= 1.5 x threshold < normal."""
    if threshold is None or threshold == "":
        return STATUS_NORMAL
    t = to_amount(threshold)
    if t <= 0:
        return STATUS_NORMAL
    stock = to_amount(available)
    if stock <= t:
        return STATUS_DEFICIENT
    if stock <= t * Decimal(str(WARNING_STOCK_FACTOR)):
        return STATUS_WARNING
    return STATUS_NORMAL


@dataclass(frozen=True)
class StockAlert:
    id: Any
    name: str
    available_stock: int
    threshold: int
    status: str


def stock_alerts(items: Iterable[Any], include_warnings: bool = True) -> List[StockAlert]:
    """Items at or near their threshold; items without a threshold are never listed."""
    alerts: List[StockAlert] = []
    for item in items:
        threshold = safe_get(item, "stock_deficiency_threshold")
        status = stock_status(safe_get(item, "available_stock"), threshold)
        if status == STATUS_NORMAL or (status == STATUS_WARNING and not include_warnings):
            continue
        alerts.append(StockAlert(
            id=safe_get(item, "id"),
            name=str(safe_get(item, "name") or ""),
            available_stock=to_count(safe_get(item, "available_stock")),
            threshold=to_count(threshold),
            status=status,
        ))
    return alerts


def format_stock_alerts_text(alerts: Sequence[StockAlert]) -> str:
    if not alerts:
        return "No stock alerts."
    lines = [f"STOCK ALERTS ({len(alerts)})"]
    for a in alerts:
        lines.append(f"- [{a.status.upper()}] {a.name}: {a.available_stock} left (threshold {a.threshold})")
    return "\n".join(lines)


@dataclass(frozen=True)
class StockLine:
    id: Any
    name: str
    pcs_left: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.pcs_left


def stock_lines(inventory: Iterable[Any]) -> List[StockLine]:
    return [
        StockLine(
            id=safe_get(i, "id"),
            name=str(safe_get(i, "name") or ""),
            pcs_left=to_count(safe_get(i, "available_stock")),
            unit_price=to_amount(safe_get(i, "unit_price")),
        )
        for i in inventory
    ]


def stock_grand_total(lines: Iterable[StockLine]) -> Decimal:
    return sum((line.total_price for line in lines), ZERO)


# ==============================
# 🧾 Debts
# ==============================

@dataclass(frozen=True)
class DebtPaymentStatus:
    total_price: Decimal
    total_paid: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.total_price - self.total_paid


def debt_payment_status(debt: Any, repayments: Iterable[Any]) -> DebtPaymentStatus:
    """Down payment plus every repayment that references this debt."""
    debt_id = safe_get(debt, "id")
    repaid = sum(
        (to_amount(safe_get(r, "amount")) for r in repayments if str(safe_get(r, "debt_id")) == str(debt_id)),
        ZERO,
    )
    return DebtPaymentStatus(
        total_price=to_amount(safe_get(debt, "total_price")),
        total_paid=to_amount(safe_get(debt, "amount_payable_now")) + repaid,
    )


# ==============================
# 📅 Period summaries
# ==============================

@dataclass(frozen=True)
class SaleLine:
    record: Any
    cost_price: Decimal
    gain_loss: Decimal


@dataclass
class DailySummary:
    day: str
    sales: List[Any]
    debts: List[Any]
    sale_lines: List[SaleLine]
    sales_total: Decimal
    gain_loss: Decimal
    debts_owed: Decimal
    most_sold: List[ItemSales] = field(default_factory=list)
    least_sold: List[ItemSales] = field(default_factory=list)
    inventory: List[Any] = field(default_factory=list)


def daily_summary(sales: Iterable[Any], debts: Iterable[Any], inventory: Sequence[Any], day: str) -> DailySummary:
    day_sales = [s for s in sales if extract_yyyymmdd(safe_get(s, "date")) == day]
    day_debts = [d for d in debts if extract_yyyymmdd(safe_get(d, "date")) == day]
    lines = [
        SaleLine(
            record=s,
            cost_price=find_inventory_cost(safe_get(s, "name"), inventory),
            gain_loss=gain_loss_for(s, inventory),
        )
        for s in day_sales
    ]
    most, least = rank_items(day_sales)
    return DailySummary(
        day=day,
        sales=day_sales,
        debts=day_debts,
        sale_lines=lines,
        sales_total=_sum(day_sales, "total_price"),
        gain_loss=sum((line.gain_loss for line in lines), ZERO),
        debts_owed=_sum(day_debts, "balance_owed"),
        most_sold=most,
        least_sold=least,
        inventory=list(inventory),
    )


@dataclass
class ExecutiveSummary:
    start: str
    end: str
    inventory: List[Any]
    sales: List[Any]
    debts: List[Any]
    expenses: List[Any]
    inventory_total: Decimal
    sales_total: Decimal
    debts_total: Decimal
    debts_paid: Decimal
    expenses_total: Decimal
    item_gain_loss: List[ItemGainLoss]
    most_sold: List[ItemSales]
    least_sold: List[ItemSales]
    low_sales: List[ItemSales]

    @property
    def total_debts_owed(self) -> Decimal:
        return self.debts_total - self.debts_paid

    @property
    def total_revenue(self) -> Decimal:
        return self.sales_total + self.debts_paid

    @property
    def gain_loss(self) -> Decimal:
        return self.total_revenue - self.expenses_total

    @property
    def total_item_gain_loss(self) -> Decimal:
        return sum((i.gain_loss for i in self.item_gain_loss), ZERO)

    @property
    def overall_total(self) -> Decimal:
        return self.inventory_total + self.sales_total + self.total_debts_owed + self.expenses_total


def executive_summary(
    inventory: Sequence[Any],
    sales: Iterable[Any],
    debts: Iterable[Any],
    expenses: Iterable[Any],
    start: str,
    end: str,
) -> ExecutiveSummary:
    """Period view; inventory is not period-filtered."""
    period_sales = [s for s in sales if in_date_range(safe_get(s, "date"), start, end)]
    period_debts = [d for d in debts if in_date_range(safe_get(d, "date"), start, end)]
    period_expenses = [e for e in expenses if in_date_range(safe_get(e, "date"), start, end)]
    most, least = rank_items(period_sales)
    return ExecutiveSummary(
        start=start,
        end=end,
        inventory=list(inventory),
        sales=period_sales,
        debts=period_debts,
        expenses=period_expenses,
        inventory_total=_sum(inventory, "total_amount"),
        sales_total=_sum(period_sales, "total_price"),
        debts_total=_sum(period_debts, "total_price"),
        debts_paid=_sum(period_debts, "amount_payable_now"),
        expenses_total=_sum(period_expenses, "amount"),
        item_gain_loss=gain_loss_by_item(period_sales + period_debts, inventory),
        most_sold=most,
        least_sold=least,
        low_sales=low_sales_items(period_sales),
    )


def format_dashboard_text(stats: DashboardStats, fmt: Optional[Any] = None) -> str:
    """Plain-text dashboard card block; `fmt` formats amounts (default: grouped integers)."""
    fmt = fmt or (lambda v: f"{v:,.0f}")
    return "\n".join([
        f"Total income:    {fmt(stats.total_income)}",
        f"Total expenses:  {fmt(stats.total_expenses)}",
        f"Total purchases: {fmt(stats.total_purchases)}",
        f"Net balance:     {fmt(stats.net_balance)} ({stats.tone})",
    ])
