"""
Unit tests for app/services/recorder.py.

Runs against the sandbox gateway; store failures are simulated with a
store whose append always raises.
"""
import pytest
from unittest.mock import AsyncMock

from app.errors import GatewayError, StoreError
from app.services.recorder import record_payment, record_verification
from app.store.memory import InMemoryTransactionStore


class BrokenStore(InMemoryTransactionStore):
    def append(self, record):
        raise StoreError("disk full")


@pytest.fixture
def broken_store():
    return BrokenStore()


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------
class TestRecordVerification:
    async def test_approved_verification_recorded(self, gateway, store):
        outcome = await record_verification(gateway, store, "tok_visa_4242", "USD")

        assert outcome.succeeded
        assert outcome.recorded
        record = outcome.record
        assert record.type == "verification"
        assert record.amount == "VERIFY"
        assert record.status == "approved"
        assert record.card.last4 == "4242"
        assert store.get_by_id(record.id) == record

    async def test_address_drives_avs(self, gateway, store):
        with_address = await record_verification(
            gateway, store, "tok_visa", "USD", address={"postal_code": "12345"}
        )
        without = await record_verification(gateway, store, "tok_visa", "USD")
        assert with_address.record.avs.code == "M"
        assert without.record.avs.code == "U"

    async def test_declined_verification_recorded(self, gateway, store):
        outcome = await record_verification(gateway, store, "tok_decline_0002", "USD")
        assert not outcome.succeeded
        assert outcome.record.status == "declined"
        assert store.get_by_id(outcome.record.id) is not None

    async def test_gateway_error_recorded_as_failure(self, gateway, store):
        outcome = await record_verification(gateway, store, "tok_error", "EUR")

        assert outcome.gateway_error is not None
        assert "503" in outcome.gateway_error
        record = outcome.record
        assert record.id.startswith("VERIFY_FAILED_")
        assert record.status == "error"
        assert record.amount == "VERIFY"
        assert record.currency == "EUR"
        assert record.response.code == "91"
        assert store.list(limit=None) == [record]

    async def test_store_failure_is_not_fatal(self, gateway, broken_store):
        outcome = await record_verification(gateway, broken_store, "tok_visa", "USD")
        assert outcome.succeeded
        assert outcome.recorded is False


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------
class TestRecordPayment:
    async def test_approved_payment_recorded(self, gateway, store):
        outcome = await record_payment(gateway, store, "tok_visa_1881", "19.99", "USD", "ORD-1")

        assert outcome.succeeded
        record = outcome.record
        assert record.type == "payment"
        assert record.amount == "19.99"
        assert record.reference == "ORD-1"
        assert record.card.last4 == "1881"
        assert outcome.raw_response["amount"] == "1999"
        assert store.get_by_id(record.id) == record

    async def test_order_reference_generated(self, gateway, store):
        outcome = await record_payment(gateway, store, "tok_visa", "5.00", "USD")
        assert outcome.record.reference.startswith("ORD_")

    async def test_declined_payment(self, gateway, store):
        outcome = await record_payment(gateway, store, "tok_decline", "5.00", "USD", "ORD-2")
        assert not outcome.succeeded
        assert outcome.record.status == "declined"
        assert outcome.record.response.code == "05"

    async def test_gateway_error_keeps_amount_and_reference(self, gateway, store):
        outcome = await record_payment(gateway, store, "tok_error", "42.00", "USD", "ORD-3")
        record = outcome.record
        assert record.id.startswith("PAYMENT_FAILED_")
        assert record.amount == "42.00"
        assert record.reference == "ORD-3"
        assert record.status == "error"
        assert store.get_by_id(record.id) == record

    async def test_gateway_error_without_code_uses_generic_code(self, store):
        gw = AsyncMock()
        gw.gateway_name = "mock"
        gw.charge = AsyncMock(side_effect=GatewayError("upstream timeout"))
        outcome = await record_payment(gw, store, "tok", "1.00", "USD", "ORD-4")
        assert outcome.record.response.code == "96"

    async def test_store_failure_is_not_fatal(self, gateway, broken_store):
        outcome = await record_payment(gateway, broken_store, "tok_visa", "10.00", "USD")
        assert outcome.succeeded
        assert outcome.recorded is False

    async def test_approved_charge_visible_to_reporting(self, gateway, store):
        outcome = await record_payment(gateway, store, "tok_visa", "10.00", "USD", "ORD-5")
        row = await gateway.transaction_detail(outcome.record.id)
        assert row["referenceNumber"] == "ORD-5"
        assert row["amount"] == "10"
