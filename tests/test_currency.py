from decimal import Decimal

import pytest

from shop_accountant.currency import CurrencyService, ReportAmountFormatter, format_number
from shop_accountant.currency.display import MODE_ALL, MODE_SINGLE
from shop_accountant.events import CURRENCY_UPDATED, SignalBus
from shop_accountant.records import Currency

USD = {"id": 2, "code": "USD", "name": "US Dollar", "symbol": "$", "conversion_rate_to_fcfa": 600}


class FakeCurrencyAPI:
    def __init__(self, response):
        self.response = response
        self.calls = 0

    def get_default(self):
        self.calls += 1
        return self.response


def test_format_number_grouping_and_rounding():
    assert format_number(1000) == "1,000"
    assert format_number(1234.5, 0, 2) == "1,234.5"
    assert format_number(2.005, 2, 2) == "2.01"
    assert format_number("-0.001", 0, 2) == "0"
    assert format_number(None) == "0"


def test_service_uses_backend_default_currency():
    service = CurrencyService(FakeCurrencyAPI({"success": True, "currency": USD}))
    assert service.fetch_default_currency().code == "USD"
    assert service.convert_from_fcfa(6000) == Decimal("10")
    assert service.convert_to_fcfa(10) == Decimal("6000")
    assert service.format_currency(6000) == "$ 10"
    assert service.format_currency(6000, 2, 2, show_symbol=False) == "10.00"


def test_service_falls_back_to_fcfa():
    service = CurrencyService(FakeCurrencyAPI({"success": False, "message": "down"}))
    assert service.fetch_default_currency().code == "FCFA"
    assert service.format_currency(1500) == "FCFA 1,500"


def test_currency_updated_signal_refetches():
    bus = SignalBus()
    fake = FakeCurrencyAPI({"success": True, "currency": USD})
    service = CurrencyService(fake, bus)
    bus.publish(CURRENCY_UPDATED)
    assert fake.calls == 1
    assert service.get().code == "USD"
    service.close()
    bus.publish(CURRENCY_UPDATED)
    assert fake.calls == 1


def test_subscribers_are_notified_until_unsubscribed():
    service = CurrencyService()
    seen = []
    unsubscribe = service.subscribe(lambda c: seen.append(c.code))
    service.set(Currency.from_dict(USD))
    unsubscribe()
    service.set(Currency.fallback())
    assert seen == ["USD"]


def test_report_formatter_modes(currency_rows):
    currencies = [Currency.from_dict(c) for c in currency_rows]
    usd = currencies[1]
    assert ReportAmountFormatter(MODE_SINGLE, usd, currencies)(6000) == "$ 10.00"
    assert ReportAmountFormatter(MODE_SINGLE, currencies[0], currencies)(6000) == "FCFA 6,000"
    assert ReportAmountFormatter(MODE_ALL, None, currencies)(6000) == "FCFA 6,000 / USD 10.00 / EUR 9.15"
    # secondary currencies that are not configured are left out
    assert ReportAmountFormatter(MODE_ALL, None, currencies[:2])(6000) == "FCFA 6,000 / USD 10.00"


def test_report_formatter_rejects_unknown_mode():
    with pytest.raises(ValueError):
        ReportAmountFormatter("everything")
