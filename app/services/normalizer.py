"""
Normalizes heterogeneous gateway responses to the canonical TransactionRecord.

Two response shapes reach the ledger:
  gp_api     REST JSON from verify/charge calls (snake_case, nested
             payment_method/action objects, amounts in minor units)
  reporting  rows from the gateway reporting API (camelCase, decimal amounts)

Every field is resolved by its own extraction function with a fixed
fallback order; the first non-empty candidate wins. Missing nested objects
read as empty mappings, so a bare {} still produces a valid record.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Tuple
import time
import uuid

from app.schemas.records import (
    VERIFY_AMOUNT,
    CardInfo,
    CheckResult,
    ResponseInfo,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
    generate_id,
)
from app.utils.dates import parse_timestamp, to_iso
from app.utils.logging import get_logger, truncate_for_log

log = get_logger("app.normalizer")

SOURCES = ("gp_api", "reporting")
MINOR_UNIT_SOURCES = {"gp_api"}

# Explicit status vocabulary across both gateway shapes
NORMALIZED_STATES = {
    "approved": TransactionStatus.APPROVED,
    "APPROVED": TransactionStatus.APPROVED,
    "SUCCESS": TransactionStatus.APPROVED,
    "CAPTURED": TransactionStatus.APPROVED,
    "VERIFIED": TransactionStatus.APPROVED,
    "INITIATED": TransactionStatus.APPROVED,
    "PREAUTHORIZED": TransactionStatus.APPROVED,
    "declined": TransactionStatus.DECLINED,
    "DECLINED": TransactionStatus.DECLINED,
    "NOT_VERIFIED": TransactionStatus.DECLINED,
    "partially_approved": TransactionStatus.PARTIALLY_APPROVED,
    "PARTIAL": TransactionStatus.PARTIALLY_APPROVED,
    "PARTIALLY_APPROVED": TransactionStatus.PARTIALLY_APPROVED,
    "error": TransactionStatus.ERROR,
    "failed": TransactionStatus.ERROR,
    "ERROR": TransactionStatus.ERROR,
    "FAILED": TransactionStatus.ERROR,
    "cancelled": TransactionStatus.CANCELLED,
    "CANCELLED": TransactionStatus.CANCELLED,
    "CANCELED": TransactionStatus.CANCELLED,
    "REVERSED": TransactionStatus.CANCELLED,
    "unknown": TransactionStatus.UNKNOWN,
}

APPROVED_CODE = "00"
DECLINED_CODES = {"51", "05", "61"}

# Coarse single-letter status some reporting rows carry instead of a code
COARSE_STATUS_CODES = {"A": "00", "D": "05"}
COARSE_STATUS_MESSAGES = {"A": "Approved", "D": "Declined"}

# Keyword -> type, checked in order against the lowercased operation name
TYPE_CLASSIFICATION = (
    ("verify", TransactionType.VERIFICATION),
    ("tokenize", TransactionType.VERIFICATION),
    ("void", TransactionType.VOID),
    ("return", TransactionType.REFUND),
    ("refund", TransactionType.REFUND),
)

FAILURE_RESPONSE_CODE = "96"

CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Generic lookups
# ---------------------------------------------------------------------------
def _section(raw: Mapping[str, Any], *path: str) -> Mapping[str, Any]:
    """Walk nested mappings; anything missing or not a mapping reads as {}."""
    current: Any = raw
    for key in path:
        current = current.get(key) if isinstance(current, Mapping) else None
    return current if isinstance(current, Mapping) else {}


def _first(*candidates: Any) -> Optional[str]:
    for value in candidates:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _card(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    return _section(raw, "payment_method", "card")


# ---------------------------------------------------------------------------
# Field extractors
# ---------------------------------------------------------------------------
def _extract_id(raw: Mapping[str, Any]) -> str:
    """transactionId -> id -> referenceNumber -> synthetic txn_<hex>."""
    return _first(raw.get("transactionId"), raw.get("id"), raw.get("referenceNumber")) or generate_id()


def _extract_reference(raw: Mapping[str, Any]) -> str:
    """referenceNumber -> reference -> clientTransactionId."""
    return _first(
        raw.get("referenceNumber"), raw.get("reference"), raw.get("clientTransactionId")
    ) or ""


def _raw_response_code(raw: Mapping[str, Any]) -> Optional[str]:
    return _first(raw.get("response_code"), raw.get("responseCode"))


def _extract_status(raw: Mapping[str, Any]) -> TransactionStatus:
    """
    Explicit status word if recognized, else derived from the response code:
    00 -> approved, 51/05/61 -> declined, any other code -> error,
    no code -> unknown.
    """
    explicit = _first(raw.get("status"), raw.get("transactionStatus"))
    if explicit is not None:
        status = NORMALIZED_STATES.get(explicit) or NORMALIZED_STATES.get(explicit.upper())
        if status is not None:
            return status

    code = _raw_response_code(raw)
    if code is None:
        return TransactionStatus.UNKNOWN
    if code == APPROVED_CODE:
        return TransactionStatus.APPROVED
    if code in DECLINED_CODES:
        return TransactionStatus.DECLINED
    return TransactionStatus.ERROR


def _extract_response(raw: Mapping[str, Any]) -> ResponseInfo:
    """
    code:    response_code -> gateway_response_code -> payment_method.result
             -> auth code -> coarse status
    message: response_message -> gateway_response_message
             -> payment_method.message -> coarse status
    """
    coarse = _first(raw.get("transactionStatus"))
    code = _first(
        _raw_response_code(raw),
        raw.get("gateway_response_code"),
        raw.get("gatewayResponseCode"),
        _section(raw, "payment_method").get("result"),
        raw.get("auth_code"),
        raw.get("authCode"),
        raw.get("authorization_code"),
        COARSE_STATUS_CODES.get(coarse),
    )
    message = _first(
        raw.get("response_message"),
        raw.get("responseMessage"),
        raw.get("gateway_response_message"),
        raw.get("gatewayResponseMessage"),
        _section(raw, "payment_method").get("message"),
        COARSE_STATUS_MESSAGES.get(coarse),
    )
    defaults = ResponseInfo()
    return ResponseInfo(code=code or defaults.code, message=message or defaults.message)


def _structured_date(value: Any) -> Any:
    """A serialized date object ({"date": "...", "timezone": ...}) collapses to its date string."""
    if isinstance(value, Mapping):
        return value.get("date")
    return value


def _extract_timestamp(raw: Mapping[str, Any]) -> str:
    """
    timestamp -> time_created -> responseDate (raw gateway date)
    -> transactionLocalDate (local date) -> transactionDate (structured date)
    -> now. Unparseable candidates are skipped.
    """
    candidates = (
        raw.get("timestamp"),
        raw.get("time_created"),
        raw.get("responseDate"),
        raw.get("transactionLocalDate"),
        _structured_date(raw.get("transactionDate")),
    )
    for candidate in candidates:
        parsed = parse_timestamp(candidate)
        if parsed is not None:
            return to_iso(parsed)
    return datetime.now(timezone.utc).isoformat()


def _last4(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value[-4:]


def _extract_card(raw: Mapping[str, Any]) -> CardInfo:
    """last4: masked number -> unmasked number -> 0000."""
    card = _card(raw)
    last4 = _last4(_first(raw.get("maskedCardNumber"), card.get("masked_number_last4")))
    if last4 is None:
        last4 = _last4(_first(raw.get("cardNumber"), card.get("number")))
    defaults = CardInfo()
    return CardInfo(
        type=_first(raw.get("cardType"), card.get("brand")) or defaults.type,
        last4=last4 or defaults.last4,
        exp_month=_first(raw.get("cardExpMonth"), card.get("expiry_month")) or "",
        exp_year=_first(raw.get("cardExpYear"), card.get("expiry_year")) or "",
    )


def _extract_check(raw: Mapping[str, Any], keys: Tuple[str, ...]) -> CheckResult:
    camel_code, camel_message, action_code = keys
    action = _section(raw, "action")
    return CheckResult(
        code=_first(raw.get(camel_code), action.get(action_code)) or "",
        message=_first(raw.get(camel_message)) or "",
    )


def _operation_name(raw: Mapping[str, Any], operation: Optional[str]) -> Optional[str]:
    """Caller-supplied operation -> serviceName -> action.type -> type."""
    return _first(
        operation,
        raw.get("serviceName"),
        _section(raw, "action").get("type"),
        raw.get("type"),
    )


def classify_type(name: Optional[str], amount: Optional[Decimal] = None) -> TransactionType:
    """
    Classify by keyword in the operation/service name. Without any name,
    a zero or missing amount is a verification, anything else a payment.
    """
    if name:
        lowered = name.lower()
        for keyword, txn_type in TYPE_CLASSIFICATION:
            if keyword in lowered:
                return txn_type
        return TransactionType.PAYMENT
    if amount is None or amount == 0:
        return TransactionType.VERIFICATION
    return TransactionType.PAYMENT


def _parse_amount(raw: Mapping[str, Any], source: str) -> Optional[Decimal]:
    value = raw.get("amount")
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        log.warning("Unparseable gateway amount %r", truncate_for_log(value))
        return None
    if not amount.is_finite():
        log.warning("Unparseable gateway amount %r", truncate_for_log(value))
        return None
    if source in MINOR_UNIT_SOURCES:
        amount = amount / 100
    try:
        amount.quantize(CENT)
    except InvalidOperation:
        log.warning("Gateway amount out of range %r", truncate_for_log(value))
        return None
    return amount


def format_amount(amount: Optional[Decimal]) -> str:
    if amount is None:
        return "0.00"
    return str(amount.quantize(CENT))


def _extract_currency(raw: Mapping[str, Any]) -> str:
    currency = (_first(raw.get("currency")) or "").upper()
    if len(currency) == 3 and currency.isalpha():
        return currency
    return "USD"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def normalize(
    raw: Mapping[str, Any],
    source: str = "reporting",
    operation: Optional[str] = None,
) -> TransactionRecord:
    """
    Maps a gateway's raw response to a canonical TransactionRecord.

    Args:
        raw: The mapping returned by the gateway client
        source: Response shape, one of gp_api or reporting
        operation: Originating operation name (e.g. "verify", "charge"),
            takes precedence over any service name in the response

    Returns:
        TransactionRecord with every required field populated
    """
    if source not in SOURCES:
        raise ValueError(f"Unknown gateway source: {source}")
    raw = raw if isinstance(raw, Mapping) else {}

    amount = _parse_amount(raw, source)
    name = _operation_name(raw, operation)
    txn_type = classify_type(name, amount)
    # A named verification, or a reported zero amount, carries the sentinel
    if txn_type == TransactionType.VERIFICATION and (name or amount == 0):
        amount_text = VERIFY_AMOUNT
    else:
        amount_text = format_amount(amount)

    return TransactionRecord(
        id=_extract_id(raw),
        reference=_extract_reference(raw),
        status=_extract_status(raw),
        amount=amount_text,
        currency=_extract_currency(raw),
        type=txn_type,
        timestamp=_extract_timestamp(raw),
        card=_extract_card(raw),
        response=_extract_response(raw),
        avs=_extract_check(raw, ("avsResponseCode", "avsResponseMessage", "avs_response_code")),
        cvv=_extract_check(raw, ("cvnResponseCode", "cvnResponseMessage", "cvv_response_code")),
        gateway_response_code=_first(
            raw.get("gatewayResponseCode"),
            raw.get("gateway_response_code"),
            _section(raw, "action").get("result_code"),
        ) or "",
        gateway_response_message=_first(
            raw.get("gatewayResponseMessage"), raw.get("gateway_response_message")
        ) or "",
        batch_id=_first(raw.get("batchId"), raw.get("batch_id")) or "",
    )


def build_failure_record(
    operation: str,
    error: Exception,
    currency: str = "USD",
    amount: Optional[str] = None,
    reference: str = "",
) -> TransactionRecord:
    """
    Synthetic record for a gateway call that never produced a usable response,
    so the failed attempt still shows up in reporting.
    """
    txn_type = classify_type(operation)
    prefix = "VERIFY" if txn_type == TransactionType.VERIFICATION else txn_type.value.upper()
    response_code = getattr(error, "response_code", None) or FAILURE_RESPONSE_CODE
    return TransactionRecord(
        id=f"{prefix}_FAILED_{int(time.time())}_{uuid.uuid4().hex[:6]}",
        reference=reference,
        status=TransactionStatus.ERROR,
        amount=VERIFY_AMOUNT if txn_type == TransactionType.VERIFICATION else (amount or "0.00"),
        currency=currency,
        type=txn_type,
        response=ResponseInfo(code=response_code, message=str(error) or "Gateway error"),
    )
