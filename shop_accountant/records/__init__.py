from .models import (
    SaleRecord,
    DebtRecord,
    DebtRepayment,
    InventoryItem,
    ExpenseRecord,
    GoalRecord,
    GoalStatus,
    Currency,
    Configuration,
)

__all__ = [
    "SaleRecord",
    "DebtRecord",
    "DebtRepayment",
    "InventoryItem",
    "ExpenseRecord",
    "GoalRecord",
    "GoalStatus",
    "Currency",
    "Configuration",
]
