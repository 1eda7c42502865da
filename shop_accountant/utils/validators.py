# shop_accountant/utils/validators.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

ZERO = Decimal("0")


def normalize_name(name: Any) -> str:
    """Lower-case, whitespace-collapsed string for comparisons and search."""
    if name is None:
        return ""
    return " ".join(str(name).strip().lower().split())


def to_decimal(value: Any) -> Decimal:
    """
    Convert value to Decimal, accepting strings with thousands separators.

    Raises:
        ValueError: if the value is not a finite number.
    """
    try:
        if isinstance(value, Decimal):
            d = value
        elif isinstance(value, bool):
            raise ValueError
        else:
            s = str(value).strip().replace(",", "")
            d = Decimal(s)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if not d.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return d


def to_amount(value: Any) -> Decimal:
    """Like :func:`to_decimal` but never raises: bad input becomes 0."""
    if value is None or value == "":
        return ZERO
    try:
        return to_decimal(value)
    except ValueError:
        return ZERO


def to_count(value: Any) -> int:
    """Integer coercion for piece counts; bad input becomes 0."""
    d = to_amount(value)
    return int(d)


def ensure_int(value: Any, field_name: str = "value", minimum: Optional[int] = None) -> int:
    """
    Ensure value is an integer (numeric strings accepted).

    Raises:
        ValueError: if it is not an integer or is below `minimum`.
    """
    try:
        if isinstance(value, bool):
            raise ValueError
        if isinstance(value, int):
            iv = value
        else:
            d = to_decimal(value)
            if d != d.to_integral_value():
                raise ValueError
            iv = int(d)
    except (ValueError, TypeError):
        raise ValueError(f"{field_name} must be a whole number")
    if minimum is not None and iv < minimum:
        raise ValueError(f"{field_name} must be at least {minimum}")
    return iv


def _required_text(data: Mapping[str, Any], key: str, label: str) -> str:
    value = str(data.get(key) or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


def _non_negative(data: Mapping[str, Any], key: str, label: str) -> Decimal:
    raw = data.get(key)
    if raw is None or str(raw).strip() == "":
        raise ValueError(f"{label} is required")
    try:
        amount = to_decimal(raw)
    except ValueError:
        raise ValueError(f"{label} must be a number")
    if amount < 0:
        raise ValueError(f"{label} cannot be negative")
    return amount


def validate_sale_form(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate a sale form and return the cleaned payload.

    total_price defaults to unit_price * pcs when left empty.
    """
    name = _required_text(data, "name", "Item name")
    date = _required_text(data, "date", "Date")
    pcs = ensure_int(data.get("pcs"), "Pieces", minimum=1)
    unit_price = _non_negative(data, "unit_price", "Unit price")
    if data.get("total_price") in (None, ""):
        total_price = unit_price * pcs
    else:
        total_price = _non_negative(data, "total_price", "Total price")
    return {
        "name": name,
        "date": date,
        "pcs": pcs,
        "unit_price": unit_price,
        "total_price": total_price,
        "client_name": str(data.get("client_name") or "").strip(),
        "client_phone": str(data.get("client_phone") or "").strip(),
    }


def compute_balance_owed(total_price: Any, amount_payable_now: Any) -> Decimal:
    """balance_owed = total_price - amount_payable_now, recomputed on every change."""
    return to_amount(total_price) - to_amount(amount_payable_now)


def validate_debt_form(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate a debt (credit sale) form.

    Required: name, date, pcs, unit_price, total_price, amount_payable_now,
    client_name. The down payment may not exceed the total.
    """
    cleaned = validate_sale_form(data)
    if not cleaned["client_name"]:
        raise ValueError("Client name is required")
    paid = _non_negative(data, "amount_payable_now", "Amount paid now")
    if paid > cleaned["total_price"]:
        raise ValueError("Amount paid now cannot exceed the total price")
    cleaned["amount_payable_now"] = paid
    cleaned["balance_owed"] = compute_balance_owed(cleaned["total_price"], paid)
    return cleaned


def validate_repayment(amount: Any, balance: Any) -> Decimal:
    """Repayment must be > 0 and not exceed the current balance."""
    try:
        value = to_decimal(amount)
    except ValueError:
        raise ValueError("Repayment amount must be a number")
    if value <= 0:
        raise ValueError("Repayment amount must be greater than 0")
    if value > to_amount(balance):
        raise ValueError("Repayment amount cannot exceed the remaining balance")
    return value


def validate_expense_form(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "name": _required_text(data, "name", "Expense name"),
        "date": _required_text(data, "date", "Date"),
        "amount": _non_negative(data, "amount", "Amount"),
        "description": str(data.get("description") or "").strip(),
    }


def validate_goal_form(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "date": _required_text(data, "date", "Date"),
        "title": _required_text(data, "title", "Goal title"),
        "content": str(data.get("content") or "").strip() or None,
        "desired_completion_date": str(data.get("desired_completion_date") or "").strip() or None,
    }


def validate_threshold(value: Any) -> int:
    return ensure_int(value, "Threshold", minimum=0)
