# shop_accountant/session.py
from __future__ import annotations

import logging
from typing import Any, MutableMapping

logger = logging.getLogger(__name__)

UNLOCK_KEY = "goalPinUnlocked"


class PinGate:
    """
    Session-scoped PIN lock for the Goal and Gain views.

    `store` is any mutable mapping that lives as long as the user session
    (Streamlit's ``st.session_state`` in the web UI, a dict elsewhere).
    The PIN is asked at most once per session; `lock()` clears the flag.
    """

    def __init__(self, configuration_api: Any, store: MutableMapping[str, Any]) -> None:
        self.configuration_api = configuration_api
        self.store = store

    def is_unlocked(self) -> bool:
        return bool(self.store.get(UNLOCK_KEY))

    def check(self) -> bool:
        """True when the view may be shown without asking for a PIN."""
        if self.is_unlocked():
            return True
        res = self.configuration_api.get_goal_pin_status()
        if not res.get("success"):
            # status unavailable: show the view this time, ask again on the next check
            logger.warning("Goal PIN status unavailable: %s", res.get("message"))
            return True
        if res.get("hasPin"):
            return False
        self.store[UNLOCK_KEY] = True
        return True

    def verify(self, pin: str) -> bool:
        res = self.configuration_api.verify_goal_pin(pin)
        if res.get("success") and res.get("valid"):
            self.store[UNLOCK_KEY] = True
            return True
        logger.info("Goal PIN rejected")
        return False

    def lock(self) -> None:
        self.store.pop(UNLOCK_KEY, None)

    def sync(self, visible: bool) -> None:
        """Called on every page render: leaving the gated view locks it again."""
        if not visible and self.is_unlocked():
            self.lock()
