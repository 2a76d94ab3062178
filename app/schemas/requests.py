from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, field_validator


def _validate_currency(v):
    if v is None:
        return v
    v = v.strip().upper()
    if len(v) != 3 or not v.isalpha():
        raise ValueError("currency must be a 3-letter ISO code")
    return v


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class VerifyCardRequest(BaseModel):
    payment_token: str
    currency: Optional[str] = None
    address: Optional[Address] = None

    @field_validator("payment_token")
    @classmethod
    def validate_token(cls, v):
        if not v.strip():
            raise ValueError("payment_token is required")
        return v.strip()

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        return _validate_currency(v)


class ProcessPaymentRequest(BaseModel):
    payment_token: str
    amount: str
    currency: Optional[str] = None
    order_reference: Optional[str] = None

    @field_validator("payment_token")
    @classmethod
    def validate_token(cls, v):
        if not v.strip():
            raise ValueError("payment_token is required")
        return v.strip()

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        try:
            amount = Decimal(str(v).strip())
        except InvalidOperation:
            raise ValueError("amount must be numeric")
        if not amount.is_finite() or amount <= 0:
            raise ValueError("amount must be greater than zero")
        if amount.as_tuple().exponent < -2:
            raise ValueError("amount supports at most two decimal places")
        try:
            return str(amount.quantize(Decimal("0.01")))
        except InvalidOperation:
            raise ValueError("amount is too large")

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        return _validate_currency(v)
