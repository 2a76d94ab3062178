"""
Integration tests for the HTTP endpoints.

Uses FastAPI TestClient with the real app (minus lifespan).
Store, gateway and settings dependencies are overridden with an in-memory
store and the sandbox gateway.
"""
from app.dependencies import get_store
from app.store.memory import InMemoryTransactionStore
from tests.conftest import make_record


# ---------------------------------------------------------------------------
# POST /api/v1/verify-card
# ---------------------------------------------------------------------------
class TestVerifyCardEndpoint:
    def test_approved_verification_returns_200(self, client, store):
        resp = client.post(
            "/api/v1/verify-card",
            json={"payment_token": "tok_visa_4242", "address": {"postal_code": "12345"}},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Card verification successful"
        assert body["recorded"] is True
        txn = body["transaction"]
        assert txn["type"] == "verification"
        assert txn["amount"] == "VERIFY"
        assert txn["currency"] == "USD"
        assert txn["card"]["last4"] == "4242"
        assert txn["avs"]["code"] == "M"
        assert body["gateway_response"]["status"] == "VERIFIED"
        assert store.get_by_id(txn["id"]) is not None

    def test_declined_verification_returns_422(self, client):
        resp = client.post("/api/v1/verify-card", json={"payment_token": "tok_decline"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["success"] is False
        assert body["transaction"]["status"] == "declined"

    def test_gateway_error_returns_502_and_records_failure(self, client, store):
        resp = client.post(
            "/api/v1/verify-card", json={"payment_token": "tok_error", "currency": "eur"}
        )
        assert resp.status_code == 502
        body = resp.json()
        assert "503" in body["message"]
        assert body["transaction"]["id"].startswith("VERIFY_FAILED_")
        assert body["transaction"]["currency"] == "EUR"
        assert store.get_by_id(body["transaction"]["id"]) is not None

    def test_blank_token_rejected(self, client, store):
        resp = client.post("/api/v1/verify-card", json={"payment_token": "   "})
        assert resp.status_code == 422
        assert store.list(limit=None) == []

    def test_invalid_currency_rejected(self, client):
        resp = client.post(
            "/api/v1/verify-card", json={"payment_token": "tok_visa", "currency": "dollars"}
        )
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# POST /api/v1/process-payment
# ---------------------------------------------------------------------------
class TestProcessPaymentEndpoint:
    def test_approved_payment_returns_200(self, client, store):
        resp = client.post(
            "/api/v1/process-payment",
            json={"payment_token": "tok_visa", "amount": "25.5", "order_reference": "ORD-9"},
        )
        assert resp.status_code == 200
        txn = resp.json()["transaction"]
        assert txn["type"] == "payment"
        assert txn["amount"] == "25.50"
        assert txn["reference"] == "ORD-9"
        assert txn["status"] == "approved"
        assert store.get_by_id(txn["id"]) is not None

    def test_numeric_amount_accepted(self, client):
        resp = client.post("/api/v1/process-payment", json={"payment_token": "tok_visa", "amount": 12})
        assert resp.status_code == 200
        assert resp.json()["transaction"]["amount"] == "12.00"

    def test_declined_payment_returns_422(self, client):
        resp = client.post(
            "/api/v1/process-payment", json={"payment_token": "tok_decline", "amount": "5.00"}
        )
        assert resp.status_code == 422
        assert resp.json()["message"] == "Payment declined"

    def test_gateway_error_returns_502(self, client):
        resp = client.post(
            "/api/v1/process-payment", json={"payment_token": "tok_error", "amount": "5.00"}
        )
        assert resp.status_code == 502
        assert resp.json()["transaction"]["id"].startswith("PAYMENT_FAILED_")

    def test_zero_amount_rejected(self, client, store):
        resp = client.post(
            "/api/v1/process-payment", json={"payment_token": "tok_visa", "amount": "0"}
        )
        assert resp.status_code == 422
        assert store.list(limit=None) == []

    def test_non_numeric_amount_rejected(self, client):
        resp = client.post(
            "/api/v1/process-payment", json={"payment_token": "tok_visa", "amount": "ten"}
        )
        assert resp.status_code == 422

    def test_three_decimal_places_rejected(self, client):
        resp = client.post(
            "/api/v1/process-payment", json={"payment_token": "tok_visa", "amount": "1.005"}
        )
        assert resp.status_code == 422

    def test_out_of_range_amount_rejected(self, client, store):
        resp = client.post(
            "/api/v1/process-payment", json={"payment_token": "tok_visa", "amount": "1e30"}
        )
        assert resp.status_code == 422
        assert resp.json()["detail"][0]["loc"][-1] == "amount"
        assert store.list(limit=None) == []

    def test_missing_amount_rejected(self, client):
        resp = client.post("/api/v1/process-payment", json={"payment_token": "tok_visa"})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# GET /api/v1/transactions
# ---------------------------------------------------------------------------
class TestListTransactionsEndpoint:
    def test_returns_local_records_with_pagination(self, client, store):
        for i in range(3):
            store.append(make_record(f"txn_{i}", f"2025-07-29T1{i}:00:00Z"))

        resp = client.get("/api/v1/transactions")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert [t["id"] for t in body["transactions"]] == ["txn_2", "txn_1", "txn_0"]
        assert body["pagination"] == {"page": 1, "limit": 25, "total": 3, "total_pages": 1}

    def test_includes_gateway_reported_payments(self, client):
        paid = client.post(
            "/api/v1/process-payment", json={"payment_token": "tok_visa", "amount": "9.99"}
        ).json()["transaction"]
        client.post("/api/v1/verify-card", json={"payment_token": "tok_visa"})

        body = client.get("/api/v1/transactions").json()
        ids = [t["id"] for t in body["transactions"]]
        assert ids.count(paid["id"]) == 1
        assert body["pagination"]["total"] == 2

    def test_date_range_filter(self, client, store):
        store.append(make_record("jul28", "2025-07-28T10:00:00Z"))
        store.append(make_record("jul29", "2025-07-29T23:59:59Z"))
        store.append(make_record("jul30", "2025-07-30T00:00:00Z"))

        resp = client.get("/api/v1/transactions?start_date=2025-07-29&end_date=2025-07-29")
        assert [t["id"] for t in resp.json()["transactions"]] == ["jul29"]

    def test_status_filter(self, client, store):
        store.append(make_record("ok", status="approved"))
        store.append(make_record("bad", status="declined"))
        resp = client.get("/api/v1/transactions?status=declined")
        assert [t["id"] for t in resp.json()["transactions"]] == ["bad"]

    def test_unknown_status_rejected(self, client):
        assert client.get("/api/v1/transactions?status=pending").status_code == 422

    def test_transaction_id_filter(self, client, store):
        store.append(make_record("txn_abc123"))
        store.append(make_record("txn_def456"))
        resp = client.get("/api/v1/transactions?transaction_id=abc")
        assert [t["id"] for t in resp.json()["transactions"]] == ["txn_abc123"]

    def test_transaction_id_with_invalid_characters_rejected(self, client):
        assert client.get("/api/v1/transactions?transaction_id=abc;drop").status_code == 422

    def test_second_page(self, client, store):
        for i in range(5):
            store.append(make_record(f"txn_{i}", f"2025-07-29T1{i}:00:00Z"))
        body = client.get("/api/v1/transactions?page=2&limit=2").json()
        assert [t["id"] for t in body["transactions"]] == ["txn_2", "txn_1"]
        assert body["pagination"]["total_pages"] == 3

    def test_limit_above_maximum_rejected(self, client):
        assert client.get("/api/v1/transactions?limit=101").status_code == 422

    def test_page_zero_rejected(self, client):
        assert client.get("/api/v1/transactions?page=0").status_code == 422

    def test_inverted_date_range_rejected(self, client):
        resp = client.get("/api/v1/transactions?start_date=2025-07-30&end_date=2025-07-29")
        assert resp.status_code == 422
        assert resp.json()["error"] == "validation_error"
        assert resp.json()["fields"][0]["field"] == "start_date"

    def test_malformed_date_rejected(self, client):
        assert client.get("/api/v1/transactions?start_date=29-07-2025").status_code == 422


# ---------------------------------------------------------------------------
# GET /api/v1/transactions/{id}
# ---------------------------------------------------------------------------
class TestTransactionDetailEndpoint:
    def test_returns_local_record(self, client, store):
        store.append(make_record("txn_1", last4="4242"))
        resp = client.get("/api/v1/transactions/txn_1")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["transaction"]["id"] == "txn_1"
        assert body["transaction"]["card"]["last4"] == "4242"

    def test_returns_gateway_record(self, client):
        paid = client.post(
            "/api/v1/process-payment", json={"payment_token": "tok_visa", "amount": "3.00"}
        ).json()["transaction"]
        # Only the gateway still knows the payment
        empty = InMemoryTransactionStore()
        client.app.dependency_overrides[get_store] = lambda: empty

        resp = client.get(f"/api/v1/transactions/{paid['id']}")
        assert resp.status_code == 200
        assert resp.json()["transaction"]["amount"] == "3.00"

    def test_unknown_id_returns_404(self, client):
        resp = client.get("/api/v1/transactions/txn_nonexistent")
        assert resp.status_code == 404
        assert "not found" in resp.json()["detail"].lower()


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------
class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

