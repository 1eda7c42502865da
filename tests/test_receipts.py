import pytest

from shop_accountant.records import Configuration
from shop_accountant.report import receipts
from shop_accountant.report.pdf_layout import THERMAL_58, PagedWriter, PdfDocument
from shop_accountant.report.receipts import (
    KIND_DEBT,
    KIND_REPAYMENT,
    KIND_SALE,
    ReceiptOptions,
    generate_receipt,
    load_logo,
    receipt_filename,
    receipt_number,
    render_items_received,
)

SALE = {"id": 42, "date": "2025-02-05", "name": "Rice", "pcs": 4, "unit_price": 700, "total_price": 2800,
        "client_name": "Awa", "client_phone": "670000000"}
DEBT = {"id": 7, "date": "2025-02-05", "name": "Oil", "pcs": 3, "unit_price": 1200, "total_price": 3600,
        "amount_payable_now": 1000, "balance_owed": 2600, "client_name": "Bello"}
REPAYMENT = {"id": 4, "debt_id": 7, "payment_date": "2025-02-10", "amount": 600, "item_name": "Oil",
             "client_name": "Bello"}


def _options(**kwargs):
    values = dict(app_name="Mama Shop", location="Douala", items=["Rice", "Oil"],
                  generated_on="2025-02-05", compress=False)
    values.update(kwargs)
    return ReceiptOptions(**values)


def test_receipt_numbers():
    assert receipt_number(SALE, KIND_SALE) == "SALE-000042"
    assert receipt_number(DEBT, KIND_DEBT) == "DEBT-000007"
    assert receipt_number(REPAYMENT, KIND_REPAYMENT) == "REP-000004"
    assert receipt_number({**REPAYMENT, "receipt_number": "RCP-99"}, KIND_REPAYMENT) == "RCP-99"
    with pytest.raises(ValueError):
        receipt_number(SALE, "refund")


def test_items_received_message():
    assert render_items_received("{Customer} got it. Thanks {customer}!", "Awa") == "Awa got it. Thanks Awa!"
    assert render_items_received(None, "") == "Customer received the above goods in good conditions"


def test_receipt_filename():
    assert receipt_filename(SALE, KIND_SALE, "Mama Shop", "2025-02-05") == "Mama-Shop-Sale-42-2025-02-05.pdf"


@pytest.mark.parametrize("printer", ["normal", "small"])
@pytest.mark.parametrize("record,kind,number", [
    (SALE, KIND_SALE, b"SALE-000042"),
    (DEBT, KIND_DEBT, b"DEBT-000007"),
    (REPAYMENT, KIND_REPAYMENT, b"REP-000004"),
])
def test_generate_receipt_layouts(record, kind, number, printer):
    rendered = generate_receipt(record, kind, _options(printer=printer, remaining_balance=2000))
    assert rendered.data.startswith(b"%PDF")
    assert number in rendered.data
    assert b"Generated by Mama Shop" in rendered.data
    assert rendered.filename.endswith("-2025-02-05.pdf")


def test_sale_receipt_content():
    rendered = generate_receipt(SALE, KIND_SALE, _options())
    data = rendered.data
    assert b"SALES RECEIPT" in data
    assert b"Name: Awa" in data
    assert b"2,800.00" in data
    assert b"Awa received the above goods in good conditions" in data
    assert b"1\\) Rice" in data or b"1) Rice" in data
    assert b"Customer Sign" in data


def test_walk_in_customer_and_debt_balance():
    data = generate_receipt({**DEBT, "client_name": None}, KIND_DEBT, _options()).data
    assert b"Walk-in Customer" in data
    assert b"2,600.00" in data


def test_broken_logo_is_skipped():
    rendered = generate_receipt(SALE, KIND_SALE, _options(logo=b"not an image"))
    assert rendered.data.startswith(b"%PDF")


def test_options_from_configuration():
    config = Configuration.from_dict({"app_name": "Mama Shop", "location": "Douala", "items": ["Rice"],
                                      "receipt_thank_you_message": "Merci"})
    opts = ReceiptOptions.from_configuration(config, printer="small")
    assert opts.printer == "small"
    assert opts.thank_you_message == "Merci"
    assert tuple(opts.items) == ("Rice",)


class FakeClient:
    def __init__(self):
        self.fetched = []

    def get_full_image_url(self, path):
        return f"http://testserver{path}"

    def fetch_bytes(self, url):
        self.fetched.append(url)
        return b"PNG"


def test_load_logo():
    client = FakeClient()
    assert load_logo(client, Configuration.from_dict({"logo_url": "/uploads/logo.png"})) == b"PNG"
    assert client.fetched == ["http://testserver/uploads/logo.png"]
    assert load_logo(client, Configuration.from_dict({})) is None


def test_receipt_number_without_id():
    assert receipt_number({"name": "Rice"}, KIND_SALE) == "SALE-000000"
    assert receipt_number({"id": ""}, KIND_DEBT) == "DEBT-000000"


@pytest.mark.parametrize("printer", ["normal", "small"])
@pytest.mark.parametrize("record,kind,also_sells", [
    (SALE, KIND_SALE, True),
    (DEBT, KIND_DEBT, True),
    (REPAYMENT, KIND_REPAYMENT, False),
])
def test_both_printers_print_the_same_sections(record, kind, also_sells, printer):
    data = generate_receipt(record, kind, _options(printer=printer)).data
    assert b"Customer Sign" in data
    assert (b"also sells" in data) is also_sells
    assert b"thanks for doing business" in data


def test_barcode_failure_still_renders(monkeypatch):
    def broken_barcode(*args, **kwargs):
        raise RuntimeError("no barcode today")

    monkeypatch.setattr(receipts.code128, "Code128", broken_barcode)
    rendered = generate_receipt(SALE, KIND_SALE, _options(printer="small"))
    assert rendered.data.startswith(b"%PDF")
    assert b"SALE-000042" in rendered.data


def _writer_near_page_end():
    doc = PdfDocument(THERMAL_58, compress=False)
    writer = PagedWriter(doc, "Mama Shop")
    writer.begin()
    writer.y = THERMAL_58.max_y - 1
    return doc, writer


def test_long_thank_you_message_continues_on_next_page():
    doc, writer = _writer_near_page_end()
    receipts._closing(writer, _options(thank_you_message="Thank you for shopping with us. " * 40))
    assert doc.page_count > 1
    assert writer.y <= THERMAL_58.max_y


def test_long_acknowledgment_continues_on_next_page():
    doc, writer = _writer_near_page_end()
    message = "{customer} received the above goods in good conditions. " * 40
    receipts._acknowledgment(writer, SALE, _options(items_received_message=message))
    assert doc.page_count > 1
    assert writer.y <= THERMAL_58.max_y + THERMAL_58.row_height
