from decimal import Decimal

import httpx

from conftest import BASE_URL, make_api, request_json
from shop_accountant.api import ApiClient, ShopAPI
from shop_accountant.config import NETWORK_ERROR_MESSAGE


def _unreachable_api():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    return ShopAPI(ApiClient(BASE_URL, http=httpx.Client(transport=httpx.MockTransport(handler))))


def test_transport_failure_becomes_network_error():
    api = _unreachable_api()
    res = api.income.get_all()
    assert res == {"success": False, "message": NETWORK_ERROR_MESSAGE}
    assert api.health_check() == {"status": "ERROR", "message": "Server is not reachable"}


def test_undecodable_and_non_dict_bodies():
    api = make_api({
        "GET income": lambda request: httpx.Response(200, text="<html>oops</html>"),
        "GET expenses": [1, 2],
    })
    assert api.income.get_all()["message"] == NETWORK_ERROR_MESSAGE
    assert api.expenses.get_all() == {"success": True, "data": [1, 2]}


def test_create_sends_decimals_as_strings():
    calls = []
    api = make_api({"POST expenses": {"success": True, "expense": {"id": 9}}}, calls)
    res = api.expenses.create({"name": "Taxi", "amount": Decimal("12.50")})
    assert res["success"]
    assert request_json(calls[0][1]) == {"name": "Taxi", "amount": "12.50"}


def test_gain_query_parameters():
    calls = []
    api = make_api({"GET gain": {"success": True, "gain": []}}, calls)
    api.gain.get_gain(date="2025-02-05")
    api.gain.get_gain(start_date="2025-02-01", end_date="2025-02-05")
    assert dict(calls[0][1].url.params) == {"date": "2025-02-05"}
    assert dict(calls[1][1].url.params) == {"startDate": "2025-02-01", "endDate": "2025-02-05"}


def test_goal_pin_defaults_and_headers():
    calls = []
    api = make_api({
        "GET configuration/pin/goal": {"success": True},
        "POST configuration/pin/verify-goal": {"success": True},
        "PUT configuration/pin/goal": {"success": True},
    }, calls)
    assert api.configuration.get_goal_pin_status()["hasPin"] is False
    assert api.configuration.verify_goal_pin("1234")["valid"] is False
    api.configuration.set_goal_pin("1234", username="owner")
    request = calls[-1][1]
    assert request.headers["X-User-Username"] == "owner"
    assert request_json(request) == {"pin": "1234"}


def test_backup_download_uses_content_disposition():
    api = make_api({
        "GET backup/create": lambda request: httpx.Response(
            200, content=b"{}", headers={"content-disposition": 'attachment; filename="shop-2025-02-05.json"'}
        ),
    })
    res = api.backup.create()
    assert res == {"success": True, "filename": "shop-2025-02-05.json", "content": b"{}"}


def test_backup_download_default_name_and_failure():
    api = make_api({"GET backup/create": lambda request: httpx.Response(200, content=b"[]")})
    assert api.backup.create()["filename"] == "shop-accountant-backup.json"

    failing = make_api({
        "GET backup/create": lambda request: httpx.Response(500, json={"success": False, "message": "disk full"}),
    })
    assert failing.backup.create() == {"success": False, "message": "disk full"}


def test_backup_restore_is_multipart():
    calls = []
    api = make_api({"POST backup/restore": {"success": True}}, calls)
    api.backup.restore("backup.json", b'{"income": []}')
    body = calls[0][1].content
    assert b'name="backupFile"' in body
    assert b'filename="backup.json"' in body


def test_image_urls():
    client = ApiClient(BASE_URL)
    assert client.get_full_image_url("/uploads/logo.png") == "http://testserver/uploads/logo.png"
    assert client.get_full_image_url("https://cdn.example.com/a.png") == "https://cdn.example.com/a.png"
    assert client.get_full_image_url(None) is None
    client.close()


def test_fetch_bytes_returns_none_on_error():
    api = make_api({"GET uploads/logo.png": lambda request: httpx.Response(200, content=b"PNG")})
    client = api.client
    assert client.fetch_bytes(f"{BASE_URL}/uploads/logo.png") == b"PNG"
    assert client.fetch_bytes(f"{BASE_URL}/uploads/missing.png") is None
    assert client.fetch_bytes(None) is None


def test_goals_status_filter_and_update():
    calls = []
    api = make_api({
        "GET goals": {"success": True, "goals": []},
        "PUT goals/3": {"success": True},
    }, calls)
    api.goals.get_all(status="accomplished")
    api.goals.set_status(3, "trashed")
    (_, listing), (_, update) = calls
    assert listing.url.params["status"] == "accomplished"
    assert request_json(update) == {"status": "trashed"}
