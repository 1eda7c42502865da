# shop_accountant/report/controller.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Sequence, Tuple

from shop_accountant.api.client import ApiResponse, network_error
from shop_accountant.config import DEFAULT_APP_NAME
from shop_accountant.currency.display import MODE_SINGLE, ReportAmountFormatter
from shop_accountant.events import CONFIG_UPDATED, SignalBus
from shop_accountant.records import (
    Configuration,
    Currency,
    DebtRecord,
    ExpenseRecord,
    InventoryItem,
    SaleRecord,
)
from shop_accountant.report.aggregation import (
    DailySummary,
    ExecutiveSummary,
    StockAlert,
    StockLine,
    daily_summary,
    executive_summary,
    stock_alerts,
    stock_lines,
)
from shop_accountant.report.reports import (
    RenderedPdf,
    ReportOptions,
    build_daily_report,
    build_executive_report,
    build_stocks_report,
)
from shop_accountant.utils.dates import extract_yyyymmdd
from shop_accountant.utils.validators import to_amount

logger = logging.getLogger(__name__)


class ReportState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EXPORTING = "exporting"


# record set name -> (response key, parser)
RECORD_SETS: Dict[str, Tuple[str, Callable[[Dict[str, Any]], Any]]] = {
    "purchases": ("purchases", InventoryItem.from_dict),
    "income": ("income", SaleRecord.from_dict),
    "debts": ("debts", DebtRecord.from_dict),
    "expenses": ("expenses", ExpenseRecord.from_dict),
}


class ReportController:
    """
    Fetches the record sets a report needs and renders it.

    State moves idle -> loading -> ready -> exporting -> idle. A record set
    whose request fails keeps its previous contents; there is no retry.
    """

    def __init__(self, api: Any, bus: Optional[SignalBus] = None) -> None:
        self.api = api
        self._configuration: Optional[Configuration] = None
        if bus is not None:
            bus.subscribe(CONFIG_UPDATED, lambda _payload: self.invalidate_configuration())
        self.state = ReportState.IDLE
        self.inventory: List[InventoryItem] = []
        self.sales: List[SaleRecord] = []
        self.debts: List[DebtRecord] = []
        self.expenses: List[ExpenseRecord] = []
        self.errors: List[str] = []

    # ---------- loading ----------
    def _fetchers(self) -> Dict[str, Callable[[], ApiResponse]]:
        return {
            "purchases": self.api.purchases.get_all,
            "income": self.api.income.get_all,
            "debts": self.api.debts.get_all,
            "expenses": self.api.expenses.get_all,
        }

    def _fetch_parallel(self, names: Sequence[str]) -> Dict[str, ApiResponse]:
        fetchers = self._fetchers()
        results: Dict[str, ApiResponse] = {}
        with ThreadPoolExecutor(max_workers=max(1, len(names))) as pool:
            futures = {name: pool.submit(fetchers[name]) for name in names}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception:
                    logger.exception("Fetching %s failed", name)
                    results[name] = network_error()
        return results

    def _apply(self, name: str, res: ApiResponse) -> None:
        key, parse = RECORD_SETS[name]
        if not res.get("success"):
            message = res.get("message") or f"Could not load {name}"
            logger.warning("Keeping previous %s: %s", name, message)
            self.errors.append(message)
            return
        records = [parse(r) for r in (res.get(key) or []) if isinstance(r, dict)]
        attr = {"purchases": "inventory", "income": "sales"}.get(name, name)
        setattr(self, attr, records)

    def load(self, names: Sequence[str] = ("purchases", "income", "debts", "expenses")) -> None:
        self.state = ReportState.LOADING
        self.errors = []
        try:
            for name, res in self._fetch_parallel(names).items():
                self._apply(name, res)
        finally:
            self.state = ReportState.READY

    # ---------- views ----------
    def executive(self, start: str, end: str) -> ExecutiveSummary:
        return executive_summary(self.inventory, self.sales, self.debts, self.expenses, start, end)

    def daily(self, day: str) -> DailySummary:
        return daily_summary(self.sales, self.debts, self.inventory, day)

    def stocks(self) -> List[StockLine]:
        return stock_lines(self.inventory)

    def fetch_stock_alerts(self) -> Tuple[List[StockAlert], Optional[str]]:
        """Server-flagged items classified with the local threshold rules, plus an error message."""
        res = self.api.stock.get_alerts()
        if not res.get("success"):
            return [], res.get("message") or "Could not load stock alerts"
        rows = [r for r in res.get("alerts") or [] if isinstance(r, dict)]
        return stock_alerts(InventoryItem.from_dict(r) for r in rows), None

    # ---------- export ----------
    def _export(self, build: Callable[[], RenderedPdf]) -> RenderedPdf:
        if self.state != ReportState.READY:
            self.load()
        self.state = ReportState.EXPORTING
        try:
            return build()
        finally:
            self.state = ReportState.IDLE

    def export_executive(self, start: str, end: str, options: Optional[ReportOptions] = None) -> RenderedPdf:
        if start and end and start > end:
            raise ValueError("Start date must be on or before end date")
        return self._export(lambda: build_executive_report(self.executive(start, end), options))

    def export_daily(self, day: str, options: Optional[ReportOptions] = None) -> RenderedPdf:
        return self._export(lambda: build_daily_report(self.daily(day), options))

    def export_stocks(self, options: Optional[ReportOptions] = None) -> RenderedPdf:
        return self._export(lambda: build_stocks_report(self.stocks(), options))

    # ---------- settings used by reports ----------
    def load_configuration(self) -> Configuration:
        """Shop configuration, cached until CONFIG_UPDATED; failures are not cached."""
        if self._configuration is not None:
            return self._configuration
        res = self.api.configuration.get()
        if not res.get("success"):
            return Configuration.from_dict(None, default_app_name=DEFAULT_APP_NAME)
        self._configuration = Configuration.from_dict(res.get("configuration"), default_app_name=DEFAULT_APP_NAME)
        return self._configuration

    def invalidate_configuration(self) -> None:
        self._configuration = None

    def load_currencies(self) -> List[Currency]:
        res = self.api.currencies.get_all()
        if not res.get("success"):
            return [Currency.fallback()]
        currencies = [Currency.from_dict(c) for c in res.get("currencies") or [] if isinstance(c, dict)]
        return currencies or [Currency.fallback()]

    def formatter(self, mode: str = MODE_SINGLE, code: Optional[str] = None,
                  currencies: Optional[List[Currency]] = None) -> ReportAmountFormatter:
        currencies = currencies if currencies is not None else self.load_currencies()
        selected = None
        for c in currencies:
            if (code and c.code == code) or (not code and c.is_default):
                selected = c
                break
        return ReportAmountFormatter(mode, selected, currencies)

    def report_options(self, printer: str = "normal", mode: str = MODE_SINGLE,
                       code: Optional[str] = None) -> ReportOptions:
        config = self.load_configuration()
        return ReportOptions(app_name=config.app_name, printer=printer, formatter=self.formatter(mode, code))

    # ---------- gain view ----------
    def fetch_gain(self, date: Optional[str] = None, start: Optional[str] = None,
                   end: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """Server-side gain rows with dates normalized to YYYY-MM-DD, plus totals."""
        empty_totals = {"total_cost": 0, "total_sale": 0, "total_gain_loss": 0}
        if not date and start and end and start > end:
            return [], empty_totals
        res = self.api.gain.get_gain(date=date, start_date=start, end_date=end)
        if not res.get("success"):
            return [], empty_totals
        rows = [{**r, "date": extract_yyyymmdd(r.get("date"))} for r in res.get("gain") or []]
        totals = res.get("totals") or empty_totals
        return rows, {k: to_amount(totals.get(k)) for k in empty_totals}


def session_controller(store: MutableMapping[str, Any], api: Any, bus: Optional[SignalBus] = None,
                       key: str = "reportController") -> ReportController:
    """
    One controller per user session (`store` is ``st.session_state`` in the
    web UI), so a failed refresh keeps showing the last data loaded.
    """
    controller = store.get(key)
    if controller is None:
        controller = ReportController(api, bus)
        store[key] = controller
    return controller
