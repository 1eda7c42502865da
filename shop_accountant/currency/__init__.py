from .service import CurrencyService, format_number
from .display import ReportAmountFormatter, MODE_ALL, MODE_SINGLE

__all__ = ["CurrencyService", "format_number", "ReportAmountFormatter", "MODE_ALL", "MODE_SINGLE"]
