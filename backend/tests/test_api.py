# Overview: Pytest coverage for the HTTP layer: auth, status codes, and the error boundary.

"""
API Tests

Verifies:
- Token required on every ledger route
- Expected failures answer with their status and code
- Unexpected failures answer 500 with a reference id stored in error_logs
"""

from sqlalchemy.exc import OperationalError

from storeledger.models import ErrorLog, SaleInvoice
from storeledger.services import document_service, session_service


def _create_invoice(client, headers, customer, total_cents=10000):
    return client.post("/api/documents/invoice", headers=headers, json={
        "client_id": customer.id,
        "lines": [{"name": "Service", "quantity": 1, "unit_price_cents": total_cents}],
    })


class TestHealth:

    def test_degraded_without_actions(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["permissions"]["status"] == "degraded"

    def test_healthy(self, client, org_a):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"


class TestAuthentication:

    def test_missing_token(self, client, db_session):
        assert client.get("/api/documents/invoice").status_code == 401

    def test_invalid_token(self, client, db_session):
        response = client.get("/api/documents/invoice", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestDocumentRoutes:

    def test_lifecycle(self, client, owner_headers, customer_a):
        created = _create_invoice(client, owner_headers, customer_a)
        assert created.status_code == 201
        document = created.get_json()["document"]
        assert document["pending_cents"] == 10000
        assert document["internal_id"] == 1
        assert len(document["lines"]) == 1

        paid = client.post("/api/payments", headers=owner_headers, json={
            "family": "invoice", "document_id": document["id"], "amount_cents": 4000, "method": "cash",
        })
        assert paid.status_code == 201
        assert paid.get_json()["balance"]["pending_cents"] == 6000

        over = client.post("/api/payments", headers=owner_headers, json={
            "family": "invoice", "document_id": document["id"], "amount_cents": 7000, "method": "cash",
        })
        assert over.status_code == 409
        assert over.get_json()["code"] == "OVERPAYMENT"

        detail = client.get(f"/api/documents/invoice/{document['id']}", headers=owner_headers)
        assert detail.status_code == 200
        assert detail.get_json()["balance"]["payments_count"] == 1

        canceled = client.post(f"/api/documents/invoice/{document['id']}/cancel", headers=owner_headers)
        assert canceled.status_code == 200
        assert canceled.get_json()["document"]["canceled_at"] is not None

        again = client.post(f"/api/documents/invoice/{document['id']}/cancel", headers=owner_headers)
        assert again.status_code == 409
        assert again.get_json()["code"] == "ALREADY_CANCELED"

    def test_unknown_document(self, client, owner_headers):
        response = client.post("/api/documents/invoice/99999/cancel", headers=owner_headers)
        assert response.status_code == 404
        assert response.get_json()["code"] == "NOT_FOUND"

    def test_unknown_family(self, client, owner_headers):
        response = client.get("/api/documents/quote", headers=owner_headers)
        assert response.status_code == 400
        assert response.get_json()["code"] == "VALIDATION_ERROR"

    def test_invalid_payload(self, client, owner_headers, customer_a):
        response = client.post("/api/documents/invoice", headers=owner_headers, json={
            "client_id": customer_a.id, "lines": [],
        })
        assert response.status_code == 400

    def test_denied(self, client, viewer_headers, customer_a):
        response = _create_invoice(client, viewer_headers, customer_a)
        assert response.status_code == 403
        assert response.get_json()["required_action"] == "create_electronic_invoice"

    def test_list_with_filters(self, client, owner_headers, customer_a):
        _create_invoice(client, owner_headers, customer_a, total_cents=500)
        _create_invoice(client, owner_headers, customer_a, total_cents=700)

        response = client.get("/api/documents/invoice?status=pending&limit=1", headers=owner_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body["count"] == 1
        assert body["documents"][0]["internal_id"] == 2

        bad = client.get("/api/documents/invoice?limit=abc", headers=owner_headers)
        assert bad.status_code == 400

    def test_unexpected_error_is_logged(self, client, owner_headers, customer_a, db_session, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("connection reset by peer")

        monkeypatch.setattr(document_service, "create_document", explode)

        response = _create_invoice(client, owner_headers, customer_a)

        assert response.status_code == 500
        body = response.get_json()
        assert body["code"] == "UNEXPECTED"
        assert "connection reset" not in body["error"]
        log = db_session.query(ErrorLog).filter_by(reference_id=body["reference_id"]).one()
        assert "RuntimeError" in log.error
        assert log.url == "/api/documents/invoice"
        assert db_session.query(SaleInvoice).count() == 0

    def test_session_lookup_failure_is_logged(self, client, owner_headers, db_session, monkeypatch):
        def locked(token):
            raise OperationalError("SELECT session_tokens", {}, Exception("database is locked"))

        monkeypatch.setattr(session_service, "validate_session", locked)

        response = client.get("/api/documents/invoice", headers=owner_headers)

        assert response.status_code == 500
        body = response.get_json()
        assert body["code"] == "UNEXPECTED"
        log = db_session.query(ErrorLog).filter_by(reference_id=body["reference_id"]).one()
        assert "OperationalError" in log.error


class TestPaymentRoutes:

    def test_get_and_cancel(self, client, owner_headers, customer_a):
        document = _create_invoice(client, owner_headers, customer_a).get_json()["document"]
        payment = client.post("/api/payments", headers=owner_headers, json={
            "family": "invoice", "document_id": document["id"], "amount_cents": 2500, "method": "transfer",
        }).get_json()["payment"]

        fetched = client.get(f"/api/payments/invoice/{payment['id']}", headers=owner_headers)
        assert fetched.status_code == 200
        assert fetched.get_json()["payment"]["method"] == "transfer"

        canceled = client.post(f"/api/payments/invoice/{payment['id']}/cancel", headers=owner_headers)
        assert canceled.status_code == 200
        assert canceled.get_json()["pending_cents"] == 10000

        gone = client.get(f"/api/payments/invoice/{payment['id']}", headers=owner_headers)
        assert gone.status_code == 404

    def test_document_id_must_be_integer(self, client, owner_headers):
        response = client.post("/api/payments", headers=owner_headers, json={
            "family": "invoice", "document_id": "7", "amount_cents": 100, "method": "cash",
        })
        assert response.status_code == 400


class TestReportRoutes:

    def test_stock_and_negative_stock(self, client, owner_headers, branch_a, customer_a, product_a, product_a2, set_stock):
        set_stock(branch_a, product_a, 2)
        set_stock(branch_a, product_a2, 10)

        created = client.post("/api/documents/invoice", headers=owner_headers, json={
            "client_id": customer_a.id,
            "lines": [
                {"product_id": product_a.id, "quantity": 3},
                {"product_id": product_a2.id, "quantity": 1},
            ],
        })
        assert created.status_code == 201

        stock = client.get(f"/api/stock/{branch_a.id}", headers=owner_headers).get_json()
        assert {item["product_id"]: item["value"] for item in stock["items"]} == {
            product_a.id: -1,
            product_a2.id: 9,
        }

        negative = client.get(f"/api/stock/{branch_a.id}/negative", headers=owner_headers).get_json()
        assert [item["product_id"] for item in negative["items"]] == [product_a.id]

        bad = client.get(f"/api/stock/{branch_a.id}/negative?product_ids=a,b", headers=owner_headers)
        assert bad.status_code == 400

    def test_foreign_branch_not_found(self, client, owner_headers, branch_b):
        response = client.get(f"/api/stock/{branch_b.id}", headers=owner_headers)
        assert response.status_code == 404

    def test_accounts(self, client, owner_headers, customer_a):
        _create_invoice(client, owner_headers, customer_a, total_cents=1200)

        receivable = client.get("/api/accounts/receivable", headers=owner_headers)
        assert receivable.status_code == 200
        assert receivable.get_json()["total_pending_cents"] == 1200

        payable = client.get("/api/accounts/payable", headers=owner_headers)
        assert payable.get_json() == {"total_pending_cents": 0, "suppliers": []}

    def test_accounts_denied(self, client, viewer_headers):
        assert client.get("/api/accounts/receivable", headers=viewer_headers).status_code == 403
