"""
Error taxonomy for the ledger.

ValidationError  -> malformed request input, never reaches the store (4xx)
GatewayError     -> payment gateway failed or was unreachable; captured as a
                    failed TransactionRecord
StoreError       -> persistence failed; logged by the recording path, never
                    turns a successful payment into a reported failure
NotFoundError    -> lookup by id found nothing (404, not an error state)
"""
from typing import List, Dict, Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""


class ValidationError(LedgerError):
    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        fields = ", ".join(e.get("field", "?") for e in errors)
        super().__init__(f"Invalid request fields: {fields}")


class GatewayError(LedgerError):
    def __init__(self, message: str, response_code: Optional[str] = None):
        self.response_code = response_code
        super().__init__(message)


class StoreError(LedgerError):
    pass


class NotFoundError(LedgerError):
    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")
