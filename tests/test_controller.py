from decimal import Decimal

import pytest

from conftest import make_api
from shop_accountant.events import CONFIG_UPDATED, SignalBus
from shop_accountant.report.controller import ReportController, ReportState, session_controller
from shop_accountant.report.reports import ReportOptions


def test_load_fetches_every_record_set(api):
    controller = ReportController(api)
    assert controller.state == ReportState.IDLE
    controller.load()
    assert controller.state == ReportState.READY
    assert len(controller.inventory) == 3
    assert len(controller.sales) == 3
    assert controller.debts[0].balance_owed == Decimal("2600")
    assert controller.errors == []


def test_failed_set_keeps_previous_data(shop_routes):
    controller = ReportController(make_api(shop_routes))
    controller.load()
    broken = dict(shop_routes)
    broken["GET income"] = {"success": False, "message": "database locked"}
    broken["GET expenses"] = {"success": True, "expenses": []}
    controller.api = make_api(broken)
    controller.load()
    assert len(controller.sales) == 3
    assert controller.expenses == []
    assert controller.errors == ["database locked"]


def test_export_returns_to_idle(api):
    controller = ReportController(api)
    options = ReportOptions(app_name="Mama Shop", generated_on="2025-02-07")
    rendered = controller.export_daily("2025-02-05", options)
    assert rendered.filename == "Mama-Shop-Daily-Report-2025-02-05.pdf"
    assert controller.state == ReportState.IDLE
    assert controller.export_stocks(options).page_count == 1


def test_executive_export_rejects_inverted_period(api):
    controller = ReportController(api)
    with pytest.raises(ValueError):
        controller.export_executive("2025-03-01", "2025-02-01")


def test_report_options_from_backend(api):
    controller = ReportController(api)
    options = controller.report_options(printer="small", code="USD")
    assert options.app_name == "Mama Shop"
    assert options.printer == "small"
    assert options.formatter(6000) == "$ 10.00"
    # default currency when no code is given
    assert controller.formatter()(6000) == "FCFA 6,000"


def test_currencies_fall_back_when_unavailable():
    controller = ReportController(make_api({}))
    assert [c.code for c in controller.load_currencies()] == ["FCFA"]
    assert controller.load_configuration().app_name == "Shop Accountant"


def test_fetch_gain_normalizes_dates():
    api = make_api({"GET gain": {
        "success": True,
        "gain": [{"date": "2025-02-05T00:00:00Z", "name": "Rice", "gain_loss": 800}],
        "totals": {"total_cost": "2000", "total_sale": "2800", "total_gain_loss": "800"},
    }})
    rows, totals = ReportController(api).fetch_gain(date="2025-02-05")
    assert rows[0]["date"] == "2025-02-05"
    assert totals["total_gain_loss"] == Decimal("800")
    assert ReportController(api).fetch_gain(start="2025-03-01", end="2025-02-01") == (
        [], {"total_cost": 0, "total_sale": 0, "total_gain_loss": 0}
    )


def test_session_controller_keeps_data_across_reruns(shop_routes):
    store = {}
    first = session_controller(store, make_api(shop_routes))
    first.load()
    broken = dict(shop_routes, **{"GET income": {"success": False, "message": "Network error"}})
    rerun = session_controller(store, make_api(broken))
    assert rerun is first
    rerun.api = make_api(broken)
    rerun.load()
    assert len(rerun.sales) == 3
    assert rerun.errors == ["Network error"]


def test_configuration_cached_until_config_updated(shop_routes):
    calls = []
    bus = SignalBus()
    controller = ReportController(make_api(shop_routes, calls), bus)
    assert controller.load_configuration().app_name == "Mama Shop"
    assert controller.load_configuration().app_name == "Mama Shop"
    assert [key for key, _ in calls].count("GET configuration") == 1
    bus.publish(CONFIG_UPDATED)
    controller.load_configuration()
    assert [key for key, _ in calls].count("GET configuration") == 2


def test_fetch_stock_alerts(api):
    alerts, error = ReportController(api).fetch_stock_alerts()
    assert error is None
    assert [(a.name, a.available_stock) for a in alerts] == [("Rice", 5)]
    alerts, error = ReportController(make_api({})).fetch_stock_alerts()
    assert alerts == []
    assert error
