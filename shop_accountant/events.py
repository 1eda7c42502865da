# shop_accountant/events.py
"""Tiny in-process publish/subscribe bus for cross-view notifications."""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

CURRENCY_UPDATED = "currencyUpdated"
CONFIG_UPDATED = "configUpdated"
SEARCH_RESULT_SELECTED = "searchResultSelected"

Callback = Callable[[Any], None]


class SignalBus:
    """
    Named signals with any number of subscribers.

    Delivery order between subscribers is not guaranteed. A failing
    subscriber is logged and does not prevent delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callback]] = defaultdict(list)

    def subscribe(self, name: str, callback: Callback) -> Callable[[], None]:
        self._subscribers[name].append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers[name].remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def publish(self, name: str, payload: Any = None) -> int:
        """Deliver `payload` to current subscribers; returns how many succeeded."""
        delivered = 0
        for callback in list(self._subscribers.get(name, ())):
            try:
                callback(payload)
                delivered += 1
            except Exception:
                logger.exception("Subscriber for %s failed", name)
        return delivered

    def subscriber_count(self, name: str) -> int:
        return len(self._subscribers.get(name, ()))
