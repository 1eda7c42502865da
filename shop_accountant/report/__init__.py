from .reports import RenderedPdf, ReportOptions, build_daily_report, build_executive_report, build_stocks_report
from .receipts import ReceiptOptions, generate_receipt, receipt_number
from .controller import ReportController, ReportState

__all__ = [
    "RenderedPdf",
    "ReportOptions",
    "build_daily_report",
    "build_executive_report",
    "build_stocks_report",
    "ReceiptOptions",
    "generate_receipt",
    "receipt_number",
    "ReportController",
    "ReportState",
]
