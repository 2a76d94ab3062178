from pydantic import BaseModel
from typing import Optional, List, Dict, Any

from app.schemas.records import TransactionRecord


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TransactionListResponse(BaseModel):
    success: bool = True
    transactions: List[TransactionRecord]
    pagination: Pagination


class TransactionDetailResponse(BaseModel):
    success: bool = True
    transaction: TransactionRecord


class RecordingResponse(BaseModel):
    success: bool
    message: str
    transaction: TransactionRecord
    recorded: bool  # False when the local store could not persist the record
    gateway_response: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    fields: List[Dict[str, str]] = []
