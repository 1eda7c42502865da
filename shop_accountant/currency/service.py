# shop_accountant/currency/service.py
from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, List, Optional

from shop_accountant.events import CURRENCY_UPDATED, SignalBus
from shop_accountant.records import Currency
from shop_accountant.utils.validators import to_amount

logger = logging.getLogger(__name__)

Subscriber = Callable[[Currency], None]


def format_number(amount: Any, minimum_fraction_digits: int = 0, maximum_fraction_digits: int = 0) -> str:
    """
    en-US style grouping: 1234.5 -> '1,234.5' (min 0 / max 2 digits).

    Rounds half away from zero to `maximum_fraction_digits`, then drops
    trailing zeros down to `minimum_fraction_digits`.
    """
    maximum_fraction_digits = max(maximum_fraction_digits, minimum_fraction_digits)
    value = to_amount(amount).quantize(Decimal(1).scaleb(-maximum_fraction_digits), rounding=ROUND_HALF_UP)
    text = f"{value:,.{maximum_fraction_digits}f}"
    if maximum_fraction_digits > minimum_fraction_digits:
        whole, _, frac = text.partition(".")
        frac = frac.rstrip("0")
        if len(frac) < minimum_fraction_digits:
            frac = frac.ljust(minimum_fraction_digits, "0")
        text = f"{whole}.{frac}" if frac else whole
    if text.startswith("-") and not text.strip("-0.,"):
        text = text[1:]
    return text


class CurrencyService:
    """
    Holds the app-wide default currency.

    The value is fetched from the backend, cached, and replaced by the FCFA
    fallback whenever nothing better is available. Re-fetches when the
    ``currencyUpdated`` signal fires on the bus.
    """

    def __init__(self, currency_api: Any = None, bus: Optional[SignalBus] = None) -> None:
        self.currency_api = currency_api
        self._current: Optional[Currency] = None
        self._subscribers: List[Subscriber] = []
        self._unsubscribe_bus: Optional[Callable[[], None]] = None
        if bus is not None:
            self._unsubscribe_bus = bus.subscribe(CURRENCY_UPDATED, lambda _payload: self.fetch_default_currency())

    # ---------- state ----------
    def fetch_default_currency(self) -> Currency:
        if self.currency_api is not None:
            try:
                res = self.currency_api.get_default()
                if res.get("success") and res.get("currency"):
                    self.set(Currency.from_dict(res["currency"]))
                    return self._current
            except Exception:
                logger.exception("Error fetching default currency")
        if self._current is None:
            self._current = Currency.fallback()
        return self._current

    def get(self) -> Currency:
        return self._current or Currency.fallback()

    def set(self, currency: Currency) -> None:
        self._current = currency
        for callback in list(self._subscribers):
            try:
                callback(currency)
            except Exception:
                logger.exception("Currency subscriber failed")

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def reset(self) -> None:
        """Forget the cached currency (tests, logout)."""
        self._current = None
        self._subscribers.clear()

    def close(self) -> None:
        if self._unsubscribe_bus is not None:
            self._unsubscribe_bus()
            self._unsubscribe_bus = None

    # ---------- conversion ----------
    def convert_from_fcfa(self, amount_in_fcfa: Any) -> Decimal:
        currency = self.get()
        amount = to_amount(amount_in_fcfa)
        if currency.is_base:
            return amount
        return amount / currency.rate

    def convert_to_fcfa(self, amount: Any) -> Decimal:
        currency = self.get()
        value = to_amount(amount)
        if currency.is_base:
            return value
        return value * currency.rate

    def format_currency(
        self,
        amount: Any,
        minimum_fraction_digits: int = 0,
        maximum_fraction_digits: int = 0,
        show_symbol: bool = True,
    ) -> str:
        """Base amount -> '<symbol> 1,234' in the current default currency."""
        formatted = format_number(
            self.convert_from_fcfa(amount), minimum_fraction_digits, maximum_fraction_digits
        )
        if show_symbol:
            return f"{self.get().label} {formatted}"
        return formatted
