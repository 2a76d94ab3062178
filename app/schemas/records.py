from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.utils.dates import parse_timestamp

VERIFY_AMOUNT = "VERIFY"


class TransactionStatus(str, Enum):
    APPROVED = "approved"
    DECLINED = "declined"
    PARTIALLY_APPROVED = "partially_approved"
    ERROR = "error"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class TransactionType(str, Enum):
    PAYMENT = "payment"
    VERIFICATION = "verification"
    VOID = "void"
    REFUND = "refund"


def generate_id() -> str:
    return f"txn_{uuid.uuid4().hex[:12]}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CardInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "Unknown"
    last4: str = "0000"
    exp_month: str = ""
    exp_year: str = ""


class ResponseInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = "Unknown"
    message: str = "Transaction processed"


class CheckResult(BaseModel):
    """AVS or CVV result, passed through from the gateway unmodified."""

    model_config = ConfigDict(frozen=True)

    code: str = ""
    message: str = ""


class TransactionRecord(BaseModel):
    """Canonical, normalized unit stored and queried by the ledger."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str = Field(default_factory=generate_id, min_length=1)
    reference: str = ""
    status: TransactionStatus = TransactionStatus.UNKNOWN
    amount: str = "0.00"
    currency: str = "USD"
    type: TransactionType = TransactionType.VERIFICATION
    timestamp: str = Field(default_factory=utc_now_iso, min_length=1)
    card: CardInfo = Field(default_factory=CardInfo)
    response: ResponseInfo = Field(default_factory=ResponseInfo)
    avs: CheckResult = Field(default_factory=CheckResult)
    cvv: CheckResult = Field(default_factory=CheckResult)
    gateway_response_code: Optional[str] = ""
    gateway_response_message: Optional[str] = ""
    batch_id: Optional[str] = ""

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v):
        if v == VERIFY_AMOUNT:
            return v
        try:
            amount = Decimal(v)
        except (InvalidOperation, TypeError):
            raise ValueError("amount must be a decimal string or 'VERIFY'")
        if not amount.is_finite():
            raise ValueError("amount must be a decimal string or 'VERIFY'")
        return v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        v = (v or "").strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("currency must be a 3-letter ISO code")
        return v

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v):
        if parse_timestamp(v) is None:
            raise ValueError("timestamp must be an ISO-8601 date-time")
        return v
