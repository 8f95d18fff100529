from decimal import Decimal
import pytest
from fastapi.testclient import TestClient
from salesrecon.main import app
from salesrecon.core.audit import audit_repo

client = TestClient(app)

pytestmark = pytest.mark.usefixtures("clean_app")

ASSAM_BUYER = {"name": "Brahmaputra Infra", "state_code": "18", "gstin": "18AABCB1234C1Z5"}
BENGAL_BUYER = {"name": "Hooghly Roads", "state_name": "West Bengal"}


def bitumen(quantity, tax_rate="5"):
    return {"description": "VG-30 Bitumen", "hsn_code": "27132000", "quantity": quantity,
            "unit": "MT", "rate": "45000", "tax_rate": tax_rate}


def post_order(order_number="SO/338/25-26", quantity="100"):
    response = client.post("/orders", json={
        "order_number": order_number, "buyer_name": "Brahmaputra Infra",
        "ordered_quantity": quantity, "rate": "45000",
    })
    assert response.status_code == 200, response.text
    return response.json()


def post_invoice(quantity, buyer=None, **extra):
    response = client.post("/invoices", json={"lines": [bitumen(quantity)], "buyer": buyer or ASSAM_BUYER, **extra})
    assert response.status_code == 200, response.text
    return response.json()


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_order_to_invoice_flow():
    order = post_order()
    assert order["status"] == "PENDING"

    invoice = post_invoice("60")
    assert invoice["invoice_number"] == "INV-0001"
    assert invoice["classification"] == "INTRA_STATE"
    assert Decimal(invoice["cgst"]) == Decimal("67500")
    assert Decimal(invoice["total_amount"]) == Decimal("2835000")

    response = client.post(f"/orders/{order['id']}/links", json={"invoice_id": invoice["id"], "quantity": "60"})
    assert response.status_code == 200
    assert response.json()["status"] == "PARTIALLY_INVOICED"
    assert Decimal(str(response.json()["pending_quantity"])) == Decimal("40")

    pending = client.get(f"/orders/{order['id']}/pending").json()
    assert Decimal(pending["invoiced_quantity"]) == Decimal("60")
    assert Decimal(pending["pending_quantity"]) == Decimal("40")

    second = post_invoice("40")
    response = client.post(f"/orders/{order['id']}/links", json={"invoice_id": second["id"], "quantity": "40"})
    assert response.json()["status"] == "FULLY_INVOICED"


def test_over_invoicing_is_a_conflict():
    order = post_order(quantity="40")
    invoice = post_invoice("41")

    response = client.post(f"/orders/{order['id']}/links", json={"invoice_id": invoice["id"], "quantity": "41"})
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "OVER_INVOICING"
    assert detail["field"] == "quantity"

    pending = client.get(f"/orders/{order['id']}/pending").json()
    assert Decimal(pending["pending_quantity"]) == Decimal("40")


def test_unlink_and_cancel():
    order = post_order()
    invoice = post_invoice("100")
    client.post(f"/orders/{order['id']}/links", json={"invoice_id": invoice["id"], "quantity": "100"})

    response = client.delete(f"/orders/{order['id']}/links/{invoice['id']}")
    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"

    response = client.post(f"/orders/{order['id']}/cancel")
    assert response.json()["status"] == "CANCELLED"

    response = client.post(f"/orders/{order['id']}/links", json={"invoice_id": invoice["id"], "quantity": "10"})
    assert response.status_code == 422


def test_unknown_order():
    response = client.get("/orders/does-not-exist/pending")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "ORDER_NOT_FOUND"


def test_inter_state_invoice_from_state_name():
    invoice = post_invoice("10", buyer=BENGAL_BUYER)
    assert invoice["classification"] == "INTER_STATE"
    assert Decimal(invoice["igst"]) == Decimal("22500")
    assert Decimal(invoice["cgst"]) == Decimal("0")


def test_invoice_without_buyer_state():
    response = client.post("/invoices", json={"lines": [bitumen("1")], "buyer": {"name": "Walk-in"}})
    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "MISSING_TAX_JURISDICTION"


def test_invoice_with_bad_line():
    response = client.post("/invoices", json={"lines": [bitumen("-3")], "buyer": ASSAM_BUYER})
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "quantity"


def test_invoice_date_format():
    response = client.post("/invoices", json={
        "lines": [bitumen("1")], "buyer": ASSAM_BUYER, "invoice_date": "19/10/2025",
    })
    assert response.status_code == 422


def test_rename_with_actor_and_stale_retry():
    invoice = post_invoice("1", invoice_number="INV-001")

    response = client.post(
        f"/invoices/{invoice['id']}/rename",
        json={"old_number": "INV-001", "new_number": "INV-001-A"},
        headers={"X-Actor": "accounts@srihm"},
    )
    assert response.status_code == 200
    assert response.json()["invoice_number"] == "INV-001-A"

    events = audit_repo.for_entity(invoice["id"], "INVOICE_RENUMBER")
    assert len(events) == 1
    assert events[0].actor == "accounts@srihm"
    assert events[0].old_value == "INV-001"

    response = client.post(
        f"/invoices/{invoice['id']}/rename",
        json={"old_number": "INV-001", "new_number": "INV-001-B"},
    )
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "STALE_INVOICE_REFERENCE"
    assert client.get(f"/invoices/{invoice['id']}").json()["invoice_number"] == "INV-001-A"


def test_series_endpoints():
    response = client.post("/series", json={"name": "SALES", "prefix": "SRIHM/", "number_length": 2})
    assert response.status_code == 200

    response = client.post("/series/SALES/next")
    assert response.json() == {"series_name": "SALES", "number": "SRIHM/01"}

    client.post("/series/SALES/deactivate")
    response = client.post("/series/SALES/next")
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "SERIES_INACTIVE"

    response = client.post("/series/NOPE/next")
    assert response.status_code == 404


def test_invoice_from_unknown_series():
    response = client.post("/invoices", json={"lines": [bitumen("1")], "buyer": ASSAM_BUYER, "series_name": "NOPE"})
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "SERIES_NOT_FOUND"


def test_cancelled_invoice_releases_order_quantity():
    order = post_order()
    invoice = post_invoice("60")
    client.post(f"/orders/{order['id']}/links", json={"invoice_id": invoice["id"], "quantity": "60"})

    response = client.post(f"/invoices/{invoice['id']}/cancel")
    assert response.json()["status"] == "CANCELLED"

    pending = client.get(f"/orders/{order['id']}/pending").json()
    assert Decimal(pending["pending_quantity"]) == Decimal("100")
    assert pending["status"] == "PENDING"


def test_tax_summary_endpoint():
    first = post_invoice("10", invoice_date="2025-04-02")
    post_invoice("20", buyer=BENGAL_BUYER, invoice_date="2025-05-02")

    response = client.get("/invoices/tax-summary", params={"invoice_id": first["id"]})
    assert response.status_code == 200
    summary = response.json()
    assert len(summary) == 1
    assert Decimal(summary[0]["taxable_value"]) == Decimal("450000")

    response = client.get("/invoices/tax-summary", params={"date_from": "2025-05-01"})
    summary = response.json()
    assert Decimal(summary[0]["igst_amount"]) == Decimal("45000")
    assert Decimal(summary[0]["cgst_amount"]) == Decimal("0")


def test_upload_orders_csv():
    csv_content = (
        "order_no,buyer_name,quantity,rate\n"
        "SO/401/25-26,Kamrup Builders,50,46000\n"
        "SO/402/25-26,Barak Valley Roads,20.5,45500\n"
    )
    files = {"file": ("orders.csv", csv_content, "text/csv")}
    response = client.post("/orders/upload", files=files)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["total_orders"] == 2
    assert data["orders"][1]["order_number"] == "SO/402/25-26"

    report = client.get("/reports/pending-orders").json()
    assert {r["order_number"] for r in report["rows"]} == {"SO/401/25-26", "SO/402/25-26"}


def test_upload_missing_columns():
    files = {"file": ("orders.csv", "order_no,quantity\nSO/1,10\n", "text/csv")}
    response = client.post("/orders/upload", files=files)
    assert response.status_code == 400
    assert "Missing required columns" in response.json()["detail"]


def test_upload_non_numeric_quantity_rejects_whole_file():
    csv_content = (
        "order_no,buyer_name,quantity,rate\n"
        "SO/501,Kamrup Builders,50,46000\n"
        "SO/502,Barak Valley Roads,twenty,45500\n"
    )
    files = {"file": ("orders.csv", csv_content, "text/csv")}
    response = client.post("/orders/upload", files=files)

    assert response.status_code == 400
    assert "Row 3" in response.json()["detail"]
    assert "strictly numeric" in response.json()["detail"]
    assert client.get("/reports/pending-orders").json()["rows"] == []


def test_upload_rejects_non_csv():
    files = {"file": ("orders.xlsx", b"binary", "application/octet-stream")}
    response = client.post("/orders/upload", files=files)
    assert response.status_code == 400


def test_pending_orders_report_filters():
    a = post_order("SO/338/25-26")
    post_order("SO/339/25-26", quantity="10")
    invoice = post_invoice("10", invoice_number="SRIHM/559/25-26")
    client.post(f"/orders/{a['id']}/links", json={"invoice_id": invoice["id"], "quantity": "10"})

    report = client.get("/reports/pending-orders", params={"invoice_number": "559"}).json()
    assert [r["order_number"] for r in report["rows"]] == ["SO/338/25-26"]
    assert report["rows"][0]["invoice_numbers"] == ["SRIHM/559/25-26"]
    assert report["rows"][0]["invoice_numbers_display"] == "SRIHM/559/25-26"
    assert report["totals"]["order_count"] == 1
    assert Decimal(report["totals"]["pending_amount"]) == Decimal(report["totals"]["ordered_amount"]) - Decimal(report["totals"]["invoiced_amount"])

    csv_response = client.get("/reports/pending-orders/csv")
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert "SO/339/25-26" in csv_response.text
