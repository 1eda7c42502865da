# shop_accountant/currency/display.py
"""Amount formatting for reports, independent of the live default currency."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Optional

from shop_accountant.config import BASE_CURRENCY_CODE, SECONDARY_REPORT_CURRENCIES
from shop_accountant.currency.service import format_number
from shop_accountant.records import Currency
from shop_accountant.utils.validators import to_amount

MODE_SINGLE = "single"
MODE_ALL = "all"


def convert_with(amount: Any, currency: Optional[Currency]) -> Decimal:
    value = to_amount(amount)
    if currency is None or currency.is_base:
        return value
    return value / currency.rate


class ReportAmountFormatter:
    """
    Formats base-currency amounts for PDF reports.

    single: selected non-base currency -> '$ 1.67'; base -> 'FCFA 1,000'
    all:    'FCFA 1,000 / USD 1.67 / EUR 1.52' (USD/EUR only when configured)
    """

    def __init__(self, mode: str = MODE_SINGLE, selected: Optional[Currency] = None,
                 currencies: Iterable[Currency] = ()) -> None:
        if mode not in (MODE_SINGLE, MODE_ALL):
            raise ValueError(f"Unknown currency display mode: {mode!r}")
        self.mode = mode
        self.selected = selected
        self.currencies: List[Currency] = list(currencies)

    def _find(self, code: str) -> Optional[Currency]:
        for c in self.currencies:
            if c.code == code:
                return c
        return None

    def __call__(self, amount: Any) -> str:
        return self.format(amount)

    def format(self, amount: Any) -> str:
        base = f"{BASE_CURRENCY_CODE} {format_number(amount, 0, 0)}"
        if self.mode == MODE_ALL:
            parts = [base]
            for code in SECONDARY_REPORT_CURRENCIES:
                currency = self._find(code)
                if currency is not None:
                    parts.append(f"{code} {format_number(convert_with(amount, currency), 2, 2)}")
            return " / ".join(parts)
        if self.selected is None or self.selected.is_base:
            return base
        converted = convert_with(amount, self.selected)
        return f"{self.selected.label} {format_number(converted, 2, 2)}"
