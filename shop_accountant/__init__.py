"""Shop Accountant client: dashboard figures, PDF reports and receipts."""

__version__ = "0.1.0"
