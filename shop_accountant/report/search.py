# shop_accountant/report/search.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz

from shop_accountant.events import SEARCH_RESULT_SELECTED, SignalBus
from shop_accountant.utils.validators import normalize_name

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 10
FUZZY_THRESHOLD = 80


@dataclass(frozen=True)
class SearchResult:
    type: str
    id: Any
    title: str
    subtitle: str
    date: str
    route: str
    data: Dict[str, Any] = field(default_factory=dict, compare=False)


def _s(record: Dict[str, Any], key: str) -> str:
    return str(record.get(key) or "")


# type, api attribute, response key, searched fields, route, result builder
Source = Tuple[str, str, str, Sequence[str], str, Callable[[Dict[str, Any]], Tuple[str, str, str]]]

SOURCES: Sequence[Source] = (
    ("Sale", "income", "income", ("name", "client_name", "client_phone", "seller_name"), "/income",
     lambda r: (_s(r, "name"), f"Client: {_s(r, 'client_name') or 'N/A'}", _s(r, "date"))),
    ("Debt", "debts", "debts", ("name", "client_name", "client_phone", "seller_name"), "/debts",
     lambda r: (_s(r, "name"), f"Client: {_s(r, 'client_name') or 'N/A'}", _s(r, "date"))),
    ("Expense", "expenses", "expenses", ("name", "description", "category"), "/expenses",
     lambda r: (_s(r, "name"), _s(r, "description") or _s(r, "category"), _s(r, "date"))),
    ("Inventory", "purchases", "purchases", ("name", "description", "supplier_name"), "/purchases",
     lambda r: (_s(r, "name"), f"Pcs: {r.get('pcs') or 0}", _s(r, "date"))),
    ("Repayment", "repayments", "repayments", ("item_name", "client_name", "receipt_number"), "/debts",
     lambda r: (_s(r, "item_name") or "N/A", f"Receipt: {_s(r, 'receipt_number') or 'N/A'}",
                _s(r, "payment_date"))),
)


class RecordSearch:
    """
    Search across sales, debts, expenses, inventory and repayments.

    Matching is a case-insensitive substring test on each record type's
    fields; with `fuzzy=True` a rapidfuzz partial ratio >= FUZZY_THRESHOLD
    also counts as a match.
    """

    def __init__(self, api: Any, bus: Optional[SignalBus] = None, fuzzy: bool = False) -> None:
        self.api = api
        self.bus = bus
        self.fuzzy = fuzzy

    def _matches(self, query: str, values: Sequence[str]) -> bool:
        for value in values:
            v = normalize_name(value)
            if not v:
                continue
            if query in v:
                return True
            if self.fuzzy and fuzz.partial_ratio(query, v) >= FUZZY_THRESHOLD:
                return True
        return False

    def search(self, query: str, limit: int = MAX_RESULTS) -> List[SearchResult]:
        q = normalize_name(query)
        if len(q) < MIN_QUERY_LENGTH:
            return []
        results: List[SearchResult] = []
        for type_, attr, key, fields, route, build in SOURCES:
            res = getattr(self.api, attr).get_all()
            if not res.get("success"):
                logger.debug("Search skipped %s: %s", type_, res.get("message"))
                continue
            for record in res.get(key) or []:
                if not isinstance(record, dict):
                    continue
                if self._matches(q, [_s(record, f) for f in fields]):
                    title, subtitle, date = build(record)
                    results.append(SearchResult(type_, record.get("id"), title, subtitle, date, route, record))
        return results[:limit]

    def select(self, result: SearchResult) -> None:
        """Announce the chosen result so the owning view can highlight it."""
        if self.bus is not None:
            self.bus.publish(SEARCH_RESULT_SELECTED, result)
