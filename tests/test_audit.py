import hashlib
import pytest
from fastapi.testclient import TestClient
from salesrecon.main import app
from salesrecon.core.audit import audit_repo
from salesrecon.core.middleware import action_type_for
from salesrecon.schemas.audit import AuditStatus

client = TestClient(app)

pytestmark = pytest.mark.usefixtures("clean_app")

EMPTY_BODY_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_health_check_is_logged_with_empty_body_hash():
    response = client.get("/health")
    assert response.status_code == 200

    log = next(l for l in audit_repo.get_all() if l.endpoint == "/health")
    assert log.action_type == "HEALTH_CHECK"
    assert log.status == AuditStatus.SUCCESS
    assert log.input_hash == EMPTY_BODY_HASH
    assert log.output_hash == hashlib.sha256(response.content).hexdigest()
    assert log.actor == "anonymous"


def test_request_body_is_hashed_and_actor_recorded():
    body = b'{"order_number":"SO/1","buyer_name":"Kamrup Builders","ordered_quantity":"5","rate":"100"}'
    response = client.post(
        "/orders", content=body,
        headers={"Content-Type": "application/json", "X-Actor": "sales@srihm"},
    )
    assert response.status_code == 200

    log = next(l for l in audit_repo.get_all() if l.endpoint == "/orders")
    assert log.action_type == "ORDER_CREATE"
    assert log.actor == "sales@srihm"
    assert log.input_hash == hashlib.sha256(body).hexdigest()


def test_rejected_request_is_logged_as_failure():
    client.get("/orders/missing/pending")
    log = next(l for l in audit_repo.get_all() if l.endpoint == "/orders/missing/pending")
    assert log.status == AuditStatus.FAILURE
    assert log.output_hash is not None


def test_entries_are_append_only_in_order():
    client.get("/health")
    client.post("/series/NOPE/next")
    endpoints = [l.endpoint for l in audit_repo.get_all()]
    assert endpoints == ["/health", "/series/NOPE/next"]


@pytest.mark.parametrize("endpoint,method,expected", [
    ("/orders/upload", "POST", "UPLOAD"),
    ("/orders/abc/links", "POST", "ORDER_LINK"),
    ("/orders/abc/links/inv", "DELETE", "ORDER_UNLINK"),
    ("/invoices/abc/rename", "POST", "INVOICE_RENAME"),
    ("/invoices/abc/cancel", "POST", "CANCEL"),
    ("/invoices", "POST", "INVOICE_CREATE"),
    ("/invoices/abc", "GET", "INVOICE_QUERY"),
    ("/reports/pending-orders/csv", "GET", "REPORT"),
    ("/series/INV/next", "POST", "SERIES"),
    ("/elsewhere", "GET", "UNKNOWN"),
])
def test_action_types(endpoint, method, expected):
    assert action_type_for(endpoint, method) == expected
