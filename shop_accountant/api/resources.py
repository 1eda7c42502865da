# shop_accountant/api/resources.py
"""Typed wrappers, one per backend resource."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from shop_accountant.api.client import ApiClient, ApiResponse


def _json_safe(data: Dict[str, Any]) -> Dict[str, Any]:
    """Decimals are sent as strings."""
    return {k: (str(v) if isinstance(v, Decimal) else v) for k, v in data.items()}


class ResourceAPI:
    """Plain CRUD over ``/{path}``."""

    path = ""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def get_all(self, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self.client.get(self.path, params=params)

    def get(self, record_id: Any) -> ApiResponse:
        return self.client.get(f"{self.path}/{record_id}")

    def create(self, data: Dict[str, Any]) -> ApiResponse:
        return self.client.post(self.path, json=_json_safe(data))

    def update(self, record_id: Any, data: Dict[str, Any]) -> ApiResponse:
        return self.client.put(f"{self.path}/{record_id}", json=_json_safe(data))

    def delete(self, record_id: Any) -> ApiResponse:
        return self.client.delete(f"{self.path}/{record_id}")


class IncomeAPI(ResourceAPI):
    path = "income"


class PurchasesAPI(ResourceAPI):
    path = "purchases"

    def upload_image(self, record_id: Any, filename: str, content: bytes, content_type: str = "image/jpeg") -> ApiResponse:
        return self.client.post(
            f"{self.path}/{record_id}/image", files={"image": (filename, content, content_type)}
        )


class ExpensesAPI(ResourceAPI):
    path = "expenses"


class DebtAPI(ResourceAPI):
    path = "debts"

    def get_by_receipt(self, receipt_no: str) -> ApiResponse:
        return self.client.get(f"{self.path}/by-receipt/{receipt_no}")


class DebtRepaymentAPI(ResourceAPI):
    path = "debt-repayments"


class GoalsAPI(ResourceAPI):
    path = "goals"

    def get_all(self, params: Optional[Dict[str, Any]] = None, status: Optional[str] = None) -> ApiResponse:
        if status:
            params = {**(params or {}), "status": status}
        return super().get_all(params)

    def set_status(self, record_id: Any, status: str) -> ApiResponse:
        return self.client.put(f"{self.path}/{record_id}", json={"status": status})


class CurrencyAPI(ResourceAPI):
    path = "currencies"

    def get_default(self) -> ApiResponse:
        return self.client.get(f"{self.path}/default")

    def set_default(self, record_id: Any) -> ApiResponse:
        return self.client.put(f"{self.path}/{record_id}/set-default")


class GainAPI:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def get_gain(self, date: Optional[str] = None, start_date: Optional[str] = None, end_date: Optional[str] = None) -> ApiResponse:
        params: Dict[str, str] = {}
        if date:
            params["date"] = date
        else:
            if start_date:
                params["startDate"] = start_date
            if end_date:
                params["endDate"] = end_date
        return self.client.get("gain", params=params or None)


class ConfigurationAPI:
    path = "configuration"

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def get(self) -> ApiResponse:
        return self.client.get(self.path)

    def update_app_name(self, app_name: str) -> ApiResponse:
        return self.client.put(f"{self.path}/app-name", json={"app_name": app_name})

    def upload_logo(self, filename: str, content: bytes, content_type: str = "image/png") -> ApiResponse:
        return self.client.post(f"{self.path}/logo", files={"logo": (filename, content, content_type)})

    def delete_logo(self) -> ApiResponse:
        return self.client.delete(f"{self.path}/logo")

    def update_location(self, location: str) -> ApiResponse:
        return self.client.put(f"{self.path}/location", json={"location": location})

    def update_items(self, items: list) -> ApiResponse:
        return self.client.put(f"{self.path}/items", json={"items": items})

    def update_receipt_thank_you(self, message: str) -> ApiResponse:
        return self.client.put(f"{self.path}/receipt-thank-you", json={"receipt_thank_you_message": message})

    def update_receipt_items_received(self, message: str) -> ApiResponse:
        return self.client.put(
            f"{self.path}/receipt-items-received", json={"receipt_items_received_message": message}
        )

    def get_goal_pin_status(self) -> ApiResponse:
        res = self.client.get(f"{self.path}/pin/goal")
        res.setdefault("hasPin", False)
        return res

    def set_goal_pin(self, pin: Optional[str], username: Optional[str] = None) -> ApiResponse:
        headers = {"X-User-Username": username} if username else None
        return self.client.put(f"{self.path}/pin/goal", json={"pin": pin or None}, headers=headers)

    def verify_goal_pin(self, pin: str) -> ApiResponse:
        res = self.client.post(f"{self.path}/pin/verify-goal", json={"pin": pin})
        res.setdefault("valid", False)
        return res


class StockDeficiencyAPI:
    path = "stock-deficiency"

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def get_alerts(self) -> ApiResponse:
        return self.client.get(f"{self.path}/alerts")

    def get_inventory_stock(self) -> ApiResponse:
        return self.client.get(f"{self.path}/inventory-stock")

    def update_threshold(self, item_id: Any, threshold: int) -> ApiResponse:
        return self.client.put(f"{self.path}/threshold/{item_id}", json={"threshold": threshold})


class BackupAPI:
    DEFAULT_FILENAME = "shop-accountant-backup.json"

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    def create(self) -> ApiResponse:
        return self.client.download("backup/create", self.DEFAULT_FILENAME)

    def restore(self, filename: str, content: bytes) -> ApiResponse:
        return self.client.post(
            "backup/restore", files={"backupFile": (filename, content, "application/json")}
        )

    def info(self) -> ApiResponse:
        return self.client.get("backup/info")


class ShopAPI:
    """All resource wrappers sharing one :class:`ApiClient`."""

    def __init__(self, client: Optional[ApiClient] = None) -> None:
        self.client = client or ApiClient()
        self.income = IncomeAPI(self.client)
        self.purchases = PurchasesAPI(self.client)
        self.expenses = ExpensesAPI(self.client)
        self.debts = DebtAPI(self.client)
        self.repayments = DebtRepaymentAPI(self.client)
        self.goals = GoalsAPI(self.client)
        self.currencies = CurrencyAPI(self.client)
        self.gain = GainAPI(self.client)
        self.configuration = ConfigurationAPI(self.client)
        self.stock = StockDeficiencyAPI(self.client)
        self.backup = BackupAPI(self.client)

    def health_check(self) -> ApiResponse:
        res = self.client.get("health")
        if res.get("success") is False and "status" not in res:
            return {"status": "ERROR", "message": "Server is not reachable"}
        return res


__all__ = [
    "ResourceAPI",
    "IncomeAPI",
    "PurchasesAPI",
    "ExpensesAPI",
    "DebtAPI",
    "DebtRepaymentAPI",
    "GoalsAPI",
    "CurrencyAPI",
    "GainAPI",
    "ConfigurationAPI",
    "StockDeficiencyAPI",
    "BackupAPI",
    "ShopAPI",
]
