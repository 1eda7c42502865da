#!/usr/bin/env python3
# shop_accountant/main/cli.py
"""
Command-line menu for the shop accountant client.

- Reads every record from the backend through ShopAPI.
- Prints the dashboard and stock-alert summaries to the console.
- Writes PDF reports, receipts and Excel exports under REPORTS_DIR.
"""
from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)


def run_cli_app(api: Any = None, reports_dir: Optional[Path] = None) -> None:
    """
    Main loop. `api` defaults to a ShopAPI on the configured backend URL;
    `reports_dir` defaults to REPORTS_DIR.
    """
    from shop_accountant.api import ShopAPI
    from shop_accountant.config import REPORTS_DIR
    from shop_accountant.currency.display import MODE_ALL, MODE_SINGLE
    from shop_accountant.records import DebtRepayment
    from shop_accountant.report.aggregation import (
        dashboard_totals,
        debt_payment_status,
        format_dashboard_text,
        format_ranking_line,
        format_stock_alerts_text,
        pie_segments,
    )
    from shop_accountant.report.controller import ReportController
    from shop_accountant.report.output import download
    from shop_accountant.report.receipts import (
        KIND_DEBT,
        KIND_REPAYMENT,
        KIND_SALE,
        ReceiptOptions,
        generate_receipt,
        load_logo,
    )
    from shop_accountant.report.reports import daily_tables, executive_tables, export_tables_xlsx
    from shop_accountant.report.search import RecordSearch
    from shop_accountant.utils.dates import get_first_of_month_local, get_local_date
    from shop_accountant.utils.io_utils import atomic_write_text, safe_filename_part

    api = api or ShopAPI()
    out_dir = Path(reports_dir or REPORTS_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)
    controller = ReportController(api)

    # ===============================================
    # === HELPERS
    # ===============================================

    def prompt_for_text(prompt: str, default: Optional[str] = None) -> str:
        display_prompt = f"{prompt} [{default}]" if default is not None else prompt
        value = input(f"{display_prompt}: ").strip()
        if not value and default is not None:
            return default
        return value

    def prompt_for_choice(prompt: str, choices: Sequence[str], default: str) -> str:
        while True:
            value = prompt_for_text(f"{prompt} ({'/'.join(choices)})", default=default).lower()
            if value in choices:
                return value
            print(f"❌ Please choose one of: {', '.join(choices)}")

    def report_options():
        printer = prompt_for_choice("Printer", ("normal", "small"), "normal")
        mode = prompt_for_choice("Currency display", (MODE_SINGLE, MODE_ALL), MODE_SINGLE)
        return controller.report_options(printer=printer, mode=mode)

    def save(rendered) -> None:
        path = download(rendered, out_dir)
        print(f"✅ Saved {path} ({rendered.page_count} page(s))")

    def find_record(res: dict, key: str, record_id: str) -> Optional[dict]:
        for r in res.get(key) or []:
            if str(r.get("id")) == record_id:
                return r
        return None

    # ===============================================
    # === ACTION HANDLERS
    # ===============================================

    def _handle_dashboard() -> None:
        print("\n--- 1. Dashboard ---")
        controller.load()
        stats = dashboard_totals(controller.sales, controller.expenses, controller.inventory)
        print(format_dashboard_text(stats))
        for seg in pie_segments(stats.total_income, stats.total_expenses, stats.total_purchases):
            print(f"  {seg.label:<10} {seg.percentage_label}")
        if controller.errors:
            print(f"❗️ Some data could not be loaded: {controller.errors[0]}")

    def _handle_executive() -> None:
        start = prompt_for_text("Start date (YYYY-MM-DD)", default=get_first_of_month_local())
        end = prompt_for_text("End date (YYYY-MM-DD)", default=get_local_date())
        if start > end:
            print("❗️ Start date must be on or before end date.")
            return
        options = report_options()
        rendered = controller.export_executive(start, end, options)
        save(rendered)
        summary = controller.executive(start, end)
        print("Most sold:")
        for item in summary.most_sold:
            print(f"  {format_ranking_line(item)}")
        if prompt_for_text("Export tables to Excel? (y/n)", default="n").lower() == "y":
            xlsx = out_dir / f"{safe_filename_part(options.app_name)}-executive-{start}-to-{end}.xlsx"
            export_tables_xlsx(executive_tables(summary, options.formatter), str(xlsx))
            print(f"✅ Saved {xlsx}")

    def _handle_daily() -> None:
        day = prompt_for_text("Day (YYYY-MM-DD)", default=get_local_date())
        options = report_options()
        save(controller.export_daily(day, options))
        if prompt_for_text("Export tables to Excel? (y/n)", default="n").lower() == "y":
            xlsx = out_dir / f"{safe_filename_part(options.app_name)}-daily-{day}.xlsx"
            export_tables_xlsx(daily_tables(controller.daily(day), options.formatter), str(xlsx))
            print(f"✅ Saved {xlsx}")

    def _handle_stocks() -> None:
        save(controller.export_stocks(report_options()))

    def menu_reports() -> None:
        while True:
            print("\n=== 2. REPORTS ===")
            print("1. Executive report")
            print("2. Daily report")
            print("3. Stocks report")
            print("0. Back")
            c = input("Choose: ").strip()
            try:
                if c == "1":
                    _handle_executive()
                elif c == "2":
                    _handle_daily()
                elif c == "3":
                    _handle_stocks()
                elif c == "0":
                    break
                else:
                    print("❗️ Invalid choice.")
            except (ValueError, OSError) as e:
                print(f"❌ Error: {e}")

    def _handle_receipt() -> None:
        print("\n--- 3. Receipts ---")
        kind = prompt_for_choice("Receipt type", (KIND_SALE, KIND_DEBT, KIND_REPAYMENT), KIND_SALE)
        record_id = prompt_for_text("Record id")
        if not record_id:
            print("❗️ Record id is required.")
            return
        sources = {
            KIND_SALE: (api.income, "income"),
            KIND_DEBT: (api.debts, "debts"),
            KIND_REPAYMENT: (api.repayments, "repayments"),
        }
        resource, key = sources[kind]
        res = resource.get_all()
        if not res.get("success"):
            print(f"❌ {res.get('message')}")
            return
        record = find_record(res, key, record_id)
        if record is None:
            print(f"❗️ No {kind} with id {record_id}.")
            return
        config = controller.load_configuration()
        overrides = {"printer": prompt_for_choice("Printer", ("normal", "small"), "normal")}
        if kind == KIND_REPAYMENT:
            rep = DebtRepayment.from_dict(record)
            debt = find_record(api.debts.get_all(), "debts", str(rep.debt_id))
            if debt is not None:
                all_reps = api.repayments.get_all().get("repayments") or []
                overrides["remaining_balance"] = debt_payment_status(debt, all_reps).remaining
        options = ReceiptOptions.from_configuration(config, logo=load_logo(api.client, config), **overrides)
        save(generate_receipt(record, kind, options))

    def _handle_stock_alerts() -> None:
        print("\n--- 4. Stock alerts ---")
        alerts, error = controller.fetch_stock_alerts()
        if error:
            print(f"❌ {error}")
            return
        text = format_stock_alerts_text(alerts)
        print(text)
        path = out_dir / f"stock_alerts_{get_local_date()}.txt"
        atomic_write_text(path, text)
        print(f"✅ Saved {path}")

    def _handle_search() -> None:
        print("\n--- 5. Search ---")
        query = prompt_for_text("Search")
        results = RecordSearch(api).search(query)
        if not results:
            print("(No results)")
            return
        for r in results:
            print(f"[{r.type}] #{r.id} {r.title} | {r.subtitle} | {r.date}")

    # ===============================================
    # === MAIN LOOP
    # ===============================================
    menu_map = {
        "1": ("Dashboard", _handle_dashboard),
        "2": ("Reports", menu_reports),
        "3": ("Receipts", _handle_receipt),
        "4": ("Stock alerts", _handle_stock_alerts),
        "5": ("Search", _handle_search),
        "6": ("Exit", None),
    }
    while True:
        print("\n========== 🧾 SHOP ACCOUNTANT ==========")
        for key, (text, _) in menu_map.items():
            print(f"{key}. {text}")
        choice = input("Choose: ").strip()
        if choice == "6":
            print("👋 Goodbye!")
            break
        action = menu_map.get(choice)
        if action and action[1]:
            action[1]()
        else:
            print("❗️ Invalid choice. Please choose 1 to 6.")


def main(argv: Optional[Sequence[str]] = None) -> int:
    from shop_accountant.config import configure_logging

    configure_logging()
    try:
        run_cli_app()
    except (KeyboardInterrupt, EOFError):
        print("\n👋 Goodbye!")
    except Exception as e:
        logger.exception("Unexpected error")
        print(f"💥 Unexpected error: {e}")
        traceback.print_exc()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
