"""
Transaction reporting service.

Merges two sources into one listing:
- records appended locally (verifications the gateway never reports,
  failed attempts, payments)
- rows fetched live from the gateway reporting API

Merge: concatenate, sort newest first, de-duplicate by id keeping the first
occurrence, then apply the request's status / id filters and paginate.
A reporting failure degrades the listing to local records only.
"""
import math
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from app.errors import GatewayError, NotFoundError
from app.gateways.base import BaseGateway
from app.schemas.records import TransactionRecord
from app.services.normalizer import normalize
from app.store.base import TransactionStore, dedupe_by_id
from app.utils.dates import EPOCH, end_of, parse_timestamp, start_of
from app.utils.logging import get_logger, truncate_for_log

log = get_logger("app.reporting")

# Identifiers carrying any of these come from sandbox fixtures, not real traffic
MOCK_INDICATORS = ("MOCK", "TEST", "DEMO", "SAMPLE", "0000000000", "1111111111")


class TransactionQuery:
    def __init__(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = None,
        transaction_id: Optional[str] = None,
        page: int = 1,
        limit: int = 25,
    ):
        self.start_date = start_date
        self.end_date = end_date
        self.status = status
        self.transaction_id = transaction_id
        self.page = page
        self.limit = limit


class TransactionPage:
    def __init__(self, transactions: List[TransactionRecord], page: int, limit: int, total: int):
        self.transactions = transactions
        self.page = page
        self.limit = limit
        self.total = total
        self.total_pages = math.ceil(total / limit) if limit else 0


def is_authentic(raw: dict) -> bool:
    """Reporting rows need an identifier, and one that is not a mock fixture."""
    identifier = raw.get("transactionId") or raw.get("referenceNumber") or raw.get("id")
    if not identifier:
        return False
    upper = str(identifier).upper()
    return not any(indicator in upper for indicator in MOCK_INDICATORS)


def _sort_key(record: TransactionRecord):
    return parse_timestamp(record.timestamp) or EPOCH


def merge_records(*sources: List[TransactionRecord], limit: Optional[int] = None) -> List[TransactionRecord]:
    """Concatenate, sort newest first (stable), de-duplicate by id keeping the first, truncate."""
    combined = [record for source in sources for record in source]
    combined.sort(key=_sort_key, reverse=True)
    merged = dedupe_by_id(combined)
    if limit is not None:
        merged = merged[:limit]
    return merged


def _reporting_window(query: TransactionQuery, lookback_days: int):
    end = query.end_date or datetime.now(timezone.utc).date()
    start = query.start_date or end - timedelta(days=lookback_days)
    return start, end


async def fetch_remote(
    gateway: BaseGateway,
    start_date: date,
    end_date: date,
) -> List[TransactionRecord]:
    try:
        rows = await gateway.find_transactions(start_date, end_date)
    except GatewayError as e:
        log.warning("Reporting API unavailable, listing local records only: %s", truncate_for_log(e))
        return []
    records = []
    for row in rows:
        if not is_authentic(row):
            log.debug("Skipping non-authentic reporting row %s", truncate_for_log(row.get("transactionId")))
            continue
        records.append(normalize(row, source="reporting"))
    return records


def _matches(record: TransactionRecord, query: TransactionQuery) -> bool:
    if query.status and record.status != query.status:
        return False
    if query.transaction_id:
        needle = query.transaction_id.lower()
        if needle not in record.id.lower() and needle not in record.reference.lower():
            return False
    return True


def _within(record: TransactionRecord, query: TransactionQuery) -> bool:
    occurred = _sort_key(record)
    start, end = start_of(query.start_date), end_of(query.end_date)
    if start is not None and occurred < start:
        return False
    if end is not None and occurred > end:
        return False
    return True


async def list_transactions(
    store: TransactionStore,
    gateway: BaseGateway,
    query: TransactionQuery,
    lookback_days: int = 3,
) -> TransactionPage:
    local = store.list(query.start_date, query.end_date, limit=None)
    window_start, window_end = _reporting_window(query, lookback_days)
    remote = [r for r in await fetch_remote(gateway, window_start, window_end) if _within(r, query)]

    merged = merge_records(local, remote)
    filtered = [r for r in merged if _matches(r, query)]

    offset = (query.page - 1) * query.limit
    page_items = filtered[offset:offset + query.limit]
    log.info(
        "Listed transactions",
        extra={"local": len(local), "remote": len(remote), "total": len(filtered)},
    )
    return TransactionPage(page_items, query.page, query.limit, len(filtered))


async def get_transaction(
    store: TransactionStore,
    gateway: BaseGateway,
    transaction_id: str,
) -> TransactionRecord:
    """
    Look up one transaction: local store first, then the gateway.

    Raises:
        NotFoundError: if neither source knows the id
    """
    record = store.get_by_id(transaction_id)
    if record is not None:
        return record
    try:
        row = await gateway.transaction_detail(transaction_id)
    except GatewayError as e:
        log.warning("Transaction detail lookup failed: %s", truncate_for_log(e))
        row = None
    if row is None:
        raise NotFoundError(transaction_id)
    return normalize(row, source="reporting")
