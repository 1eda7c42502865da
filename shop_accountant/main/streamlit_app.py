# shop_accountant/main/streamlit_app.py
# Run with: streamlit run shop_accountant/main/streamlit_app.py
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List

import altair as alt
import pandas as pd
import streamlit as st
import streamlit.components.v1 as components

from shop_accountant.api import ShopAPI
from shop_accountant.config import REPORTS_DIR, STOCK_ALERT_REFRESH_SECONDS, configure_logging
from shop_accountant.currency import CurrencyService
from shop_accountant.currency.display import MODE_ALL, MODE_SINGLE
from shop_accountant.events import CONFIG_UPDATED, CURRENCY_UPDATED, SignalBus
from shop_accountant.records import Currency, DebtRepayment, InventoryItem
from shop_accountant.report.aggregation import (
    dashboard_totals,
    debt_payment_status,
    pie_chart_svg,
    pie_segments,
    rank_items,
)
from shop_accountant.report.controller import session_controller
from shop_accountant.report.output import print_page_html
from shop_accountant.report.receipts import (
    KIND_DEBT,
    KIND_REPAYMENT,
    KIND_SALE,
    ReceiptOptions,
    generate_receipt,
    load_logo,
)
from shop_accountant.report.reports import daily_tables, executive_tables, export_tables_xlsx, ranking_tables
from shop_accountant.report.search import RecordSearch
from shop_accountant.session import PinGate
from shop_accountant.utils.dates import get_first_of_month_local, get_local_date
from shop_accountant.utils.io_utils import safe_filename_part
from shop_accountant.utils.validators import validate_threshold

configure_logging()
logger = logging.getLogger(__name__)

COLUMN_LABELS = {
    "name": "Item",
    "date": "Date",
    "pcs": "Pcs",
    "unit_price": "Unit price",
    "total_price": "Total price",
    "total_cost": "Total cost",
    "total_sale": "Total sale",
    "gain_loss": "Gain/Loss",
    "available_stock": "Available",
    "stock_deficiency_threshold": "Threshold",
    "status": "Status",
}


@st.cache_resource
def get_services():
    bus = SignalBus()
    api = ShopAPI()
    currency_service = CurrencyService(api.currencies, bus)
    currency_service.fetch_default_currency()
    return bus, api, currency_service


bus, api, currency_service = get_services()
controller = session_controller(st.session_state, api, bus)
GAIN_MENU = "💹 Gain"


def show_rendered(rendered, mode: str, key: str) -> None:
    """Offer the PDF as a download, or embed it and open the print dialog."""
    if mode == "print":
        components.html(print_page_html(rendered), height=600)
    st.download_button("📥 Download PDF", rendered.data, file_name=rendered.filename,
                       mime="application/pdf", key=key)


def show_tables(tables) -> None:
    for table in tables:
        st.markdown(f"**{table.title}**")
        st.dataframe(pd.DataFrame(table.rows, columns=table.headers), use_container_width=True, hide_index=True)


# =================================================================================
# === SIDEBAR
# =================================================================================

st.set_page_config(page_title="Shop Accountant", layout="wide", initial_sidebar_state="expanded")

with st.sidebar:
    st.title(f"🧾 {controller.load_configuration().app_name}")
    menu_options = ["📊 Dashboard", "📄 Reports", "🧾 Receipts", GAIN_MENU, "⚙️ Settings"]
    captions = ["Totals and alerts", "PDF and Excel", "Sales, debts, repayments", "PIN protected", "Profile, currency and stock"]
    menu = st.radio("Menu", options=menu_options, captions=captions)
    PinGate(api.configuration, st.session_state).sync(visible=menu == GAIN_MENU)
    st.info(f"🗓️ Today: {get_local_date()}")

    query = st.text_input("🔎 Search records", placeholder="At least 2 characters")
    if query:
        results = RecordSearch(api, bus).search(query)
        if not results:
            st.caption("No results")
        for i, r in enumerate(results):
            if st.button(f"[{r.type}] {r.title}", key=f"search-{i}", help=f"{r.subtitle} · {r.date}"):
                RecordSearch(api, bus).select(r)
                st.session_state["highlight"] = {"type": r.type, "id": r.id}

# =================================================================================
# === DASHBOARD
# =================================================================================
if menu == "📊 Dashboard":
    st.title("📊 Dashboard")
    controller.load()
    if controller.errors:
        st.warning(controller.errors[0])
    stats = dashboard_totals(controller.sales, controller.expenses, controller.inventory)
    fmt = currency_service.format_currency

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total income", fmt(stats.total_income))
    c2.metric("Total expenses", fmt(stats.total_expenses))
    c3.metric("Total purchases", fmt(stats.total_purchases))
    c4.metric("Net balance", fmt(stats.net_balance),
              delta=stats.tone, delta_color="normal" if stats.tone == "positive" else "inverse")

    left, right = st.columns([1, 1])
    with left:
        st.subheader("Income / Expenses / Purchases")
        segments = pie_segments(stats.total_income, stats.total_expenses, stats.total_purchases)
        if segments:
            st.markdown(pie_chart_svg(segments), unsafe_allow_html=True)
        else:
            st.info("No data to chart yet.")
    with right:
        st.subheader("Most sold items")
        most, _least = rank_items(controller.sales)
        if most:
            df_top = pd.DataFrame([{"Item": i.name, "Pcs": i.count, "Total": float(i.total)} for i in most])
            chart = alt.Chart(df_top).mark_bar().encode(
                x=alt.X("Pcs:Q", title="Pcs sold"),
                y=alt.Y("Item:N", sort="-x", title="Item"),
                tooltip=["Item", "Pcs", "Total"],
            )
            st.altair_chart(chart, use_container_width=True)
        else:
            st.info("No sales recorded.")

    @st.fragment(run_every=STOCK_ALERT_REFRESH_SECONDS)
    def stock_alert_panel() -> None:
        with st.container(border=True):
            st.subheader("⚠️ Stock alerts")
            alerts, error = controller.fetch_stock_alerts()
            if error:
                st.error(error)
                return
            if not alerts:
                st.success("👍 Stock levels are fine.")
                return
            st.dataframe(pd.DataFrame([asdict(a) for a in alerts]).rename(columns=COLUMN_LABELS),
                         use_container_width=True, hide_index=True)

    stock_alert_panel()

# =================================================================================
# === REPORTS
# =================================================================================
elif menu == "📄 Reports":
    st.title("📄 Reports")
    currencies: List[Currency] = controller.load_currencies()
    c1, c2, c3 = st.columns(3)
    mode = c1.radio("Currency display", [MODE_SINGLE, MODE_ALL], horizontal=True,
                    captions=["Selected currency", "FCFA / USD / EUR"])
    code = c2.selectbox("Currency", [c.code for c in currencies], disabled=mode == MODE_ALL)
    printer = c3.radio("Printer", ["normal", "small"], horizontal=True, captions=["A4", "58 mm roll"])
    output_mode = st.radio("Output", ["download", "print"], horizontal=True)

    options = controller.report_options(printer=printer, mode=mode, code=code)
    tab_exec, tab_daily, tab_stock = st.tabs(["Executive", "Daily", "Stocks"])

    with tab_exec:
        with st.form("executive_form"):
            d1, d2 = st.columns(2)
            start = d1.date_input("Start date", value=date.fromisoformat(get_first_of_month_local()))
            end = d2.date_input("End date", value=date.fromisoformat(get_local_date()))
            submitted = st.form_submit_button("Show executive report")
        if submitted:
            if start > end:
                st.error("Start date must be on or before end date")
                st.session_state.pop("executive_period", None)
            else:
                controller.load()
                st.session_state["executive_period"] = (start.isoformat(), end.isoformat())
        period = st.session_state.get("executive_period")
        if period:
            if controller.errors:
                st.warning(f"Showing the last data loaded: {controller.errors[0]}")
            summary = controller.executive(*period)
            show_tables(executive_tables(summary, options.formatter) + ranking_tables(summary, options.formatter))
            b1, b2 = st.columns(2)
            export_pdf = b1.button("Export PDF", key="exec-export", type="primary")
            export_xlsx = b2.button("Export Excel", key="exec-excel")
            if export_pdf:
                try:
                    rendered = controller.export_executive(*period, options)
                    st.success(f"✅ {rendered.filename} ({rendered.page_count} pages)")
                    show_rendered(rendered, output_mode, "exec-pdf")
                except ValueError as e:
                    st.error(str(e))
            if export_xlsx:
                xlsx = f"{safe_filename_part(options.app_name)}-executive-{period[0]}-to-{period[1]}.xlsx"
                path = export_tables_xlsx(executive_tables(summary, options.formatter), str(REPORTS_DIR / xlsx))
                st.download_button("📥 Excel tables", path.read_bytes(), file_name=xlsx, key="exec-xlsx")

    with tab_daily:
        day = st.date_input("Day", value=date.fromisoformat(get_local_date()))
        if st.button("Show daily report"):
            controller.load()
            st.session_state["daily_day"] = day.isoformat()
        shown_day = st.session_state.get("daily_day")
        if shown_day:
            if controller.errors:
                st.warning(f"Showing the last data loaded: {controller.errors[0]}")
            daily = controller.daily(shown_day)
            show_tables(daily_tables(daily, options.formatter) + ranking_tables(daily, options.formatter))
            b1, b2 = st.columns(2)
            export_pdf = b1.button("Export PDF", key="daily-export", type="primary")
            export_xlsx = b2.button("Export Excel", key="daily-excel")
            if export_pdf:
                rendered = controller.export_daily(shown_day, options)
                st.success(f"✅ {rendered.filename}")
                show_rendered(rendered, output_mode, "daily-pdf")
            if export_xlsx:
                xlsx = f"{safe_filename_part(options.app_name)}-daily-{shown_day}.xlsx"
                path = export_tables_xlsx(daily_tables(daily, options.formatter), str(REPORTS_DIR / xlsx))
                st.download_button("📥 Excel tables", path.read_bytes(), file_name=xlsx, key="daily-xlsx")

    with tab_stock:
        if st.button("Generate stocks report", type="primary"):
            rendered = controller.export_stocks(options)
            st.success(f"✅ {rendered.filename}")
            show_rendered(rendered, output_mode, "stock-pdf")

# =================================================================================
# === RECEIPTS
# =================================================================================
elif menu == "🧾 Receipts":
    st.title("🧾 Receipts")
    kind = st.radio("Receipt type", [KIND_SALE, KIND_DEBT, KIND_REPAYMENT], horizontal=True)
    printer = st.radio("Printer", ["normal", "small"], horizontal=True, captions=["A4", "58 mm roll"])
    sources = {
        KIND_SALE: (api.income, "income"),
        KIND_DEBT: (api.debts, "debts"),
        KIND_REPAYMENT: (api.repayments, "repayments"),
    }
    resource, key = sources[kind]
    res = resource.get_all()
    records: List[Dict[str, Any]] = (res.get(key) or []) if res.get("success") else []
    if not res.get("success"):
        st.error(res.get("message"))
    elif not records:
        st.info("No records yet.")
    else:
        labels = {f"#{r.get('id')} {r.get('name') or r.get('item_name') or ''} ({r.get('date') or r.get('payment_date') or ''})": r
                  for r in records}
        choice = st.selectbox("Record", list(labels))
        record = labels[choice]
        if st.button("Generate receipt", type="primary"):
            config = controller.load_configuration()
            overrides: Dict[str, Any] = {"printer": printer}
            if kind == KIND_REPAYMENT:
                rep = DebtRepayment.from_dict(record)
                debts = api.debts.get_all().get("debts") or []
                debt = next((d for d in debts if str(d.get("id")) == str(rep.debt_id)), None)
                if debt is not None:
                    overrides["remaining_balance"] = debt_payment_status(debt, records).remaining
            options = ReceiptOptions.from_configuration(config, logo=load_logo(api.client, config), **overrides)
            rendered = generate_receipt(record, kind, options)
            show_rendered(rendered, "print", "receipt-pdf")

# =================================================================================
# === GAIN (PIN GATED)
# =================================================================================
elif menu == GAIN_MENU:
    st.title("💹 Gain / Loss")
    gate = PinGate(api.configuration, st.session_state)
    if not gate.check():
        with st.form("pin_form"):
            pin = st.text_input("PIN", type="password")
            if st.form_submit_button("Unlock"):
                if gate.verify(pin):
                    st.rerun()
                else:
                    st.error("Invalid PIN")
        st.stop()

    c1, c2, c3 = st.columns(3)
    single_day = c1.checkbox("Single day", value=True)
    start = c2.date_input("Date" if single_day else "Start date", value=date.fromisoformat(get_local_date()))
    end = c3.date_input("End date", value=date.fromisoformat(get_local_date()), disabled=single_day)
    if single_day:
        rows, totals = controller.fetch_gain(date=start.isoformat())
    else:
        rows, totals = controller.fetch_gain(start=start.isoformat(), end=end.isoformat())
    fmt = currency_service.format_currency
    m1, m2, m3 = st.columns(3)
    m1.metric("Total cost", fmt(totals["total_cost"]))
    m2.metric("Total sale", fmt(totals["total_sale"]))
    m3.metric("Gain / Loss", fmt(totals["total_gain_loss"]))
    if rows:
        st.dataframe(pd.DataFrame(rows).rename(columns=COLUMN_LABELS), use_container_width=True, hide_index=True)
    else:
        st.info("No sales in this period.")
    if st.button("🔒 Lock"):
        gate.lock()
        st.rerun()

# =================================================================================
# === SETTINGS
# =================================================================================
elif menu == "⚙️ Settings":
    st.title("⚙️ Settings")

    with st.container(border=True):
        st.subheader("Shop profile")
        config = controller.load_configuration()
        with st.form("profile_form"):
            app_name = st.text_input("App name", value=config.app_name)
            location = st.text_input("Location", value=config.location or "")
            saved = st.form_submit_button("Save profile")
        if saved:
            if not app_name.strip():
                st.error("App name cannot be empty")
            else:
                results = [api.configuration.update_app_name(app_name.strip()),
                           api.configuration.update_location(location.strip())]
                failed = [r for r in results if not r.get("success")]
                bus.publish(CONFIG_UPDATED)
                if failed:
                    st.error(failed[0].get("message") or "Failed to update configuration")
                else:
                    st.success("Profile saved")
                    st.rerun()

    with st.container(border=True):
        st.subheader("Default currency")
        currencies = controller.load_currencies()
        current = currency_service.get()
        codes = [c.code for c in currencies]
        picked = st.selectbox("Currency", codes, index=codes.index(current.code) if current.code in codes else 0)
        if st.button("Set as default"):
            chosen = next(c for c in currencies if c.code == picked)
            res = api.currencies.set_default(chosen.id)
            if res.get("success"):
                bus.publish(CURRENCY_UPDATED, chosen)
                st.success(f"Default currency is now {chosen.code}")
            else:
                st.error(res.get("message"))

    with st.container(border=True):
        st.subheader("Stock deficiency thresholds")
        res = api.stock.get_inventory_stock()
        items = [InventoryItem.from_dict(i) for i in res.get("items") or []] if res.get("success") else []
        if not items:
            st.info("No inventory items.")
        else:
            names = {f"#{i.id} {i.name}": i for i in items}
            label = st.selectbox("Item", list(names))
            item = names[label]
            value = st.number_input("Threshold", min_value=0, step=1, value=item.stock_deficiency_threshold or 0)
            if st.button("Save threshold"):
                try:
                    upd = api.stock.update_threshold(item.id, validate_threshold(value))
                    if upd.get("success"):
                        st.success("Threshold saved")
                        st.rerun()
                    else:
                        st.error(upd.get("message"))
                except ValueError as e:
                    st.error(str(e))

    with st.container(border=True):
        st.subheader("Backup")
        if st.button("Create backup"):
            backup = api.backup.create()
            if backup.get("success"):
                st.download_button("📥 Download backup", backup["content"], file_name=backup["filename"])
            else:
                st.error(backup.get("message"))
        uploaded = st.file_uploader("Restore from backup", type=["json"])
        if uploaded is not None and st.button("Restore", type="primary"):
            restored = api.backup.restore(uploaded.name, uploaded.getvalue())
            if restored.get("success"):
                st.success("Backup restored")
            else:
                st.error(restored.get("message"))
