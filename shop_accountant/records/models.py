# shop_accountant/records/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from shop_accountant.config import BASE_CURRENCY_CODE, FALLBACK_CURRENCY, MAX_RECEIPT_ITEMS
from shop_accountant.utils.validators import to_amount, to_count, compute_balance_owed


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


def _optional_text(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or str(value).strip() == "":
        return None
    return str(value)


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None or value == "":
        return None
    return to_count(value)


# ==============================
# 🧾 Transactions
# ==============================

@dataclass(frozen=True)
class SaleRecord:
    """A cash sale as returned by the income endpoint."""
    id: Any
    date: str
    name: str
    pcs: int
    unit_price: Decimal
    total_price: Decimal
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    seller_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SaleRecord":
        return cls(
            id=data.get("id"),
            date=_text(data, "date"),
            name=_text(data, "name"),
            pcs=to_count(data.get("pcs")),
            unit_price=to_amount(data.get("unit_price")),
            total_price=to_amount(data.get("total_price")),
            client_name=_optional_text(data, "client_name"),
            client_phone=_optional_text(data, "client_phone"),
            seller_name=_optional_text(data, "seller_name"),
        )


@dataclass(frozen=True)
class DebtRecord(SaleRecord):
    """A credit sale: part paid now, the rest owed."""
    amount_payable_now: Decimal = Decimal("0")
    balance_owed: Decimal = Decimal("0")

    @staticmethod
    def compute_balance(total_price: Any, amount_payable_now: Any) -> Decimal:
        return compute_balance_owed(total_price, amount_payable_now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DebtRecord":
        base = SaleRecord.from_dict(data)
        paid = to_amount(data.get("amount_payable_now"))
        if data.get("balance_owed") in (None, ""):
            balance = cls.compute_balance(base.total_price, paid)
        else:
            balance = to_amount(data.get("balance_owed"))
        return cls(
            id=base.id,
            date=base.date,
            name=base.name,
            pcs=base.pcs,
            unit_price=base.unit_price,
            total_price=base.total_price,
            client_name=base.client_name,
            client_phone=base.client_phone,
            seller_name=base.seller_name,
            amount_payable_now=paid,
            balance_owed=balance,
        )


@dataclass(frozen=True)
class DebtRepayment:
    id: Any
    debt_id: Any
    payment_date: str
    amount: Decimal
    receipt_number: Optional[str] = None
    item_name: str = ""
    seller_name: Optional[str] = None
    client_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DebtRepayment":
        return cls(
            id=data.get("id"),
            debt_id=data.get("debt_id"),
            payment_date=_text(data, "payment_date"),
            amount=to_amount(data.get("amount")),
            receipt_number=_optional_text(data, "receipt_number"),
            item_name=_text(data, "item_name"),
            seller_name=_optional_text(data, "seller_name"),
            client_name=_optional_text(data, "client_name"),
        )


@dataclass(frozen=True)
class InventoryItem:
    """A purchase line; `name` is the join key against sales and debts."""
    id: Any
    date: str
    name: str
    pcs: int
    unit_price: Decimal
    total_amount: Decimal
    available_stock: int = 0
    pcs_sold: int = 0
    stock_deficiency_threshold: Optional[int] = None
    image_url: Optional[str] = None

    @property
    def stock_value(self) -> Decimal:
        return self.unit_price * self.available_stock

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InventoryItem":
        pcs = to_count(data.get("pcs"))
        unit_price = to_amount(data.get("unit_price"))
        if data.get("available_stock") in (None, ""):
            available = pcs - to_count(data.get("pcs_sold"))
        else:
            available = to_count(data.get("available_stock"))
        total = data.get("total_amount")
        return cls(
            id=data.get("id"),
            date=_text(data, "date"),
            name=_text(data, "name"),
            pcs=pcs,
            unit_price=unit_price,
            total_amount=to_amount(total) if total not in (None, "") else unit_price * pcs,
            available_stock=available,
            pcs_sold=to_count(data.get("pcs_sold")),
            stock_deficiency_threshold=_optional_int(data, "stock_deficiency_threshold"),
            image_url=_optional_text(data, "image_url"),
        )


@dataclass(frozen=True)
class ExpenseRecord:
    id: Any
    date: str
    name: str
    amount: Decimal
    description: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExpenseRecord":
        return cls(
            id=data.get("id"),
            date=_text(data, "date"),
            name=_text(data, "name"),
            amount=to_amount(data.get("amount")),
            description=_optional_text(data, "description"),
            category=_optional_text(data, "category"),
        )


class GoalStatus:
    ACTIVE = "active"
    ACCOMPLISHED = "accomplished"
    TRASHED = "trashed"
    ALL = (ACTIVE, ACCOMPLISHED, TRASHED)


@dataclass(frozen=True)
class GoalRecord:
    id: Any
    date: str
    title: str
    desired_completion_date: Optional[str] = None
    content: Optional[str] = None
    status: str = GoalStatus.ACTIVE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GoalRecord":
        status = _text(data, "status").lower() or GoalStatus.ACTIVE
        if status not in GoalStatus.ALL:
            status = GoalStatus.ACTIVE
        return cls(
            id=data.get("id"),
            date=_text(data, "date"),
            title=_text(data, "title"),
            desired_completion_date=_optional_text(data, "desired_completion_date"),
            content=_optional_text(data, "content"),
            status=status,
        )


# ==============================
# ⚙️ Settings
# ==============================

@dataclass(frozen=True)
class Currency:
    code: str
    name: str
    conversion_rate_to_fcfa: Decimal
    symbol: Optional[str] = None
    is_default: bool = False
    id: Any = None

    @property
    def is_base(self) -> bool:
        return self.code == BASE_CURRENCY_CODE

    @property
    def label(self) -> str:
        """Symbol when set, otherwise the code."""
        return self.symbol or self.code

    @property
    def rate(self) -> Decimal:
        """Conversion rate, with missing or zero rates treated as 1."""
        return self.conversion_rate_to_fcfa if self.conversion_rate_to_fcfa > 0 else Decimal("1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Currency":
        return cls(
            id=data.get("id"),
            code=_text(data, "code").strip().upper(),
            name=_text(data, "name"),
            symbol=_optional_text(data, "symbol"),
            conversion_rate_to_fcfa=to_amount(data.get("conversion_rate_to_fcfa")),
            is_default=bool(data.get("is_default")),
        )

    @classmethod
    def fallback(cls) -> "Currency":
        return cls.from_dict({**FALLBACK_CURRENCY, "is_default": True})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "symbol": self.symbol,
            "conversion_rate_to_fcfa": str(self.conversion_rate_to_fcfa),
            "is_default": self.is_default,
        }


@dataclass(frozen=True)
class Configuration:
    app_name: str
    logo_url: Optional[str] = None
    location: Optional[str] = None
    items: Tuple[str, ...] = field(default_factory=tuple)
    receipt_thank_you_message: Optional[str] = None
    receipt_items_received_message: Optional[str] = None
    has_goal_pin: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], default_app_name: str = "") -> "Configuration":
        data = data or {}
        raw_items: List[Any] = data.get("items") or []
        items = tuple(str(i).strip() for i in raw_items if str(i or "").strip())
        return cls(
            app_name=_text(data, "app_name").strip() or default_app_name,
            logo_url=_optional_text(data, "logo_url"),
            location=_optional_text(data, "location"),
            items=items[:MAX_RECEIPT_ITEMS],
            receipt_thank_you_message=_optional_text(data, "receipt_thank_you_message"),
            receipt_items_received_message=_optional_text(data, "receipt_items_received_message"),
            has_goal_pin=bool(data.get("has_goal_pin") or data.get("hasPin")),
        )
