# shop_accountant/config.py
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

# ==============================
# 🌐 Backend
# ==============================

API_BASE_URL = os.environ.get("SHOP_ACCOUNTANT_API_URL", "http://localhost:5000/api").rstrip("/")
NETWORK_ERROR_MESSAGE = "Network error. Please check if the server is running."

# ==============================
# 💱 Currency
# ==============================

BASE_CURRENCY_CODE = "FCFA"
FALLBACK_CURRENCY: Dict[str, Any] = {
    "code": "FCFA",
    "name": "Central African CFA Franc",
    "symbol": "FCFA",
    "conversion_rate_to_fcfa": 1,
}
# Codes shown next to the base amount in "all currencies" mode
SECONDARY_REPORT_CURRENCIES = ("USD", "EUR")

# ==============================
# 📄 Reports / receipts
# ==============================

DEFAULT_APP_NAME = "Shop Accountant"
REPORTS_DIR = Path(os.environ.get("SHOP_ACCOUNTANT_REPORTS_DIR", "reports"))
RANKING_SIZE = 10
MAX_RECEIPT_ITEMS = 7
DEFAULT_THANK_YOU_MESSAGE = "thanks for doing business with us, wish you the best"
DEFAULT_ITEMS_RECEIVED_MESSAGE = "{customer} received the above goods in good conditions"
PRINT_RENDER_DELAY_SECONDS = 0.5

# ==============================
# 📊 Dashboard
# ==============================

STOCK_ALERT_REFRESH_SECONDS = 30
WARNING_STOCK_FACTOR = 1.5

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging. Called by entry points only."""
    level_name = (level or os.environ.get("SHOP_ACCOUNTANT_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
