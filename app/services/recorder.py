"""
Transaction recording service.

Orchestrates verify and pay attempts:
1. Call the gateway (verify or charge)
2. Normalize the gateway response into a TransactionRecord
   (a GatewayError becomes a synthetic failed record instead)
3. Append the record to the store
4. Hand the outcome back to the handler

Store failures in step 3 are logged and reported on the outcome, never
raised: the gateway's answer is what the caller sees.
"""
import uuid
from typing import Any, Dict, Optional

from app.errors import GatewayError, StoreError
from app.gateways.base import BaseGateway
from app.schemas.records import TransactionRecord
from app.services.normalizer import build_failure_record, normalize
from app.store.base import TransactionStore
from app.utils.logging import get_logger, truncate_for_log

verification_log = get_logger("app.verification")
payment_log = get_logger("app.payment")


class RecordingOutcome:
    def __init__(
        self,
        record: TransactionRecord,
        raw_response: Optional[Dict[str, Any]] = None,
        gateway_error: Optional[str] = None,
        recorded: bool = True,
    ):
        self.record = record
        self.raw_response = raw_response
        self.gateway_error = gateway_error
        self.recorded = recorded

    @property
    def succeeded(self) -> bool:
        return self.gateway_error is None and self.record.status == "approved"


def _record(store: TransactionStore, record: TransactionRecord, log) -> bool:
    try:
        store.append(record)
    except StoreError as e:
        log.error(
            "Failed to record transaction %s: %s",
            record.id,
            truncate_for_log(e),
            extra={"transaction_id": record.id},
        )
        return False
    return True


async def record_verification(
    gateway: BaseGateway,
    store: TransactionStore,
    card_token: str,
    currency: str,
    address: Optional[Dict[str, str]] = None,
) -> RecordingOutcome:
    """Verify a tokenized card and record the attempt, successful or not."""
    verification_log.info(
        "Processing card verification",
        extra={"gateway": gateway.gateway_name, "has_address": address is not None},
    )
    try:
        raw = await gateway.verify(card_token, currency, address)
    except GatewayError as e:
        verification_log.error("Gateway verification failed: %s", truncate_for_log(e))
        record = build_failure_record("verify", e, currency=currency)
        recorded = _record(store, record, verification_log)
        return RecordingOutcome(record, gateway_error=str(e), recorded=recorded)

    record = normalize(raw, source="gp_api", operation="verify")
    recorded = _record(store, record, verification_log)
    verification_log.info(
        "Card verification completed",
        extra={"transaction_id": record.id, "status": record.status},
    )
    return RecordingOutcome(record, raw_response=raw, recorded=recorded)


async def record_payment(
    gateway: BaseGateway,
    store: TransactionStore,
    card_token: str,
    amount: str,
    currency: str,
    order_ref: Optional[str] = None,
) -> RecordingOutcome:
    """Charge a tokenized card and record the attempt, successful or not."""
    order_ref = order_ref or f"ORD_{uuid.uuid4().hex[:12]}"
    payment_log.info(
        "Processing payment",
        extra={"gateway": gateway.gateway_name, "amount": amount, "currency": currency},
    )
    try:
        raw = await gateway.charge(card_token, amount, currency, order_ref)
    except GatewayError as e:
        payment_log.error("Gateway payment failed: %s", truncate_for_log(e))
        record = build_failure_record(
            "charge", e, currency=currency, amount=amount, reference=order_ref
        )
        recorded = _record(store, record, payment_log)
        return RecordingOutcome(record, gateway_error=str(e), recorded=recorded)

    record = normalize(raw, source="gp_api", operation="charge")
    recorded = _record(store, record, payment_log)
    payment_log.info(
        "Payment completed",
        extra={"transaction_id": record.id, "status": record.status},
    )
    return RecordingOutcome(record, raw_response=raw, recorded=recorded)
