import json

import httpx
import pytest

from shop_accountant.api import ApiClient, ShopAPI
from shop_accountant.records import DebtRecord, ExpenseRecord, InventoryItem, SaleRecord

BASE_URL = "http://testserver/api"


def make_api(routes, calls=None):
    """
    ShopAPI over an httpx.MockTransport.

    `routes` maps "METHOD path" (path relative to /api, no leading slash) to
    either a JSON-able body or a callable(request) -> httpx.Response.
    Unknown routes answer 404 with {"success": False}.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/api/"):]
        key = f"{request.method} {path}"
        if calls is not None:
            calls.append((key, request))
        route = routes.get(key)
        if route is None:
            return httpx.Response(404, json={"success": False, "message": f"no route {key}"})
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)

    client = ApiClient(BASE_URL, http=httpx.Client(transport=httpx.MockTransport(handler)))
    return ShopAPI(client)


def request_json(request: httpx.Request):
    return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def inventory_rows():
    return [
        {"id": 1, "date": "2025-02-01", "name": "Rice", "pcs": 20, "unit_price": 500,
         "total_amount": 10000, "available_stock": 5, "stock_deficiency_threshold": 10},
        {"id": 2, "date": "2025-02-01", "name": "Oil", "pcs": 20, "unit_price": 1000,
         "total_amount": 20000, "available_stock": 14, "stock_deficiency_threshold": 10},
        {"id": 3, "date": "2025-02-02", "name": "Soap", "pcs": 30, "unit_price": 200,
         "total_amount": 6000, "available_stock": 16, "stock_deficiency_threshold": 10},
    ]


@pytest.fixture
def sale_rows():
    return [
        {"id": 1, "date": "2025-02-05", "name": "Rice", "pcs": 4, "unit_price": 700, "total_price": 2800,
         "client_name": "Awa", "client_phone": "670000000", "seller_name": "Paul"},
        {"id": 2, "date": "2025-02-05T10:15:00Z", "name": "Oil", "pcs": 2, "unit_price": 900, "total_price": 1800},
        {"id": 3, "date": "2025-02-06", "name": "Soap", "pcs": 5, "unit_price": 300, "total_price": 1500},
    ]


@pytest.fixture
def debt_rows():
    return [
        {"id": 7, "date": "2025-02-05", "name": "Oil", "pcs": 3, "unit_price": 1200, "total_price": 3600,
         "amount_payable_now": 1000, "balance_owed": 2600, "client_name": "Bello", "client_phone": "699"},
    ]


@pytest.fixture
def expense_rows():
    return [
        {"id": 1, "date": "2025-02-05", "name": "Transport", "amount": 1500, "description": "Taxi",
         "category": "Logistics"},
        {"id": 2, "date": "2025-03-01", "name": "Rent", "amount": 50000},
    ]


@pytest.fixture
def inventory(inventory_rows):
    return [InventoryItem.from_dict(r) for r in inventory_rows]


@pytest.fixture
def sales(sale_rows):
    return [SaleRecord.from_dict(r) for r in sale_rows]


@pytest.fixture
def debts(debt_rows):
    return [DebtRecord.from_dict(r) for r in debt_rows]


@pytest.fixture
def expenses(expense_rows):
    return [ExpenseRecord.from_dict(r) for r in expense_rows]


@pytest.fixture
def currency_rows():
    return [
        {"id": 1, "code": "FCFA", "name": "CFA Franc", "symbol": "FCFA", "conversion_rate_to_fcfa": 1,
         "is_default": True},
        {"id": 2, "code": "USD", "name": "US Dollar", "symbol": "$", "conversion_rate_to_fcfa": 600},
        {"id": 3, "code": "EUR", "name": "Euro", "symbol": "€", "conversion_rate_to_fcfa": 655.957},
    ]


@pytest.fixture
def shop_routes(inventory_rows, sale_rows, debt_rows, expense_rows, currency_rows):
    return {
        "GET purchases": {"success": True, "purchases": inventory_rows},
        "GET income": {"success": True, "income": sale_rows},
        "GET debts": {"success": True, "debts": debt_rows},
        "GET expenses": {"success": True, "expenses": expense_rows},
        "GET debt-repayments": {"success": True, "repayments": [
            {"id": 4, "debt_id": 7, "payment_date": "2025-02-10", "amount": 600,
             "receipt_number": "REP-2025-0004", "item_name": "Oil", "client_name": "Bello"},
        ]},
        "GET currencies": {"success": True, "currencies": currency_rows},
        "GET currencies/default": {"success": True, "currency": currency_rows[0]},
        "GET configuration": {"success": True, "configuration": {
            "app_name": "Mama Shop", "location": "Douala", "items": ["Rice", "Oil"],
        }},
        "GET stock-deficiency/inventory-stock": {"success": True, "items": inventory_rows},
        "GET stock-deficiency/alerts": {"success": True, "alerts": [inventory_rows[0]]},
    }


@pytest.fixture
def api(shop_routes):
    return make_api(shop_routes)
