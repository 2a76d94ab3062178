"""
Transaction store contract plus the ordering, range and eviction rules every
backend shares.

Ordering is newest timestamp first; equal timestamps fall back to insertion
order, most recently inserted first. Duplicate ids are collapsed on read,
keeping the first occurrence after sorting.
"""
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Iterable, List, NamedTuple, Optional, Union

from app.schemas.records import TransactionRecord
from app.utils.dates import EPOCH, end_of, parse_timestamp, start_of

DEFAULT_LIMIT = 25
DEFAULT_MAX_RECORDS = 1000

DateBound = Optional[Union[date, datetime]]


class StoredEntry(NamedTuple):
    seq: int
    occurred_at: datetime
    record: TransactionRecord


def occurred_at(record: TransactionRecord) -> datetime:
    """Sortable instant for a record; unparseable timestamps sort as the epoch."""
    return parse_timestamp(record.timestamp) or EPOCH


def newest_first(entries: Iterable[StoredEntry]) -> List[StoredEntry]:
    return sorted(entries, key=lambda e: (e.occurred_at, e.seq), reverse=True)


def in_range(entry: StoredEntry, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is not None and entry.occurred_at < start:
        return False
    if end is not None and entry.occurred_at > end:
        return False
    return True


def dedupe_by_id(records: Iterable[TransactionRecord]) -> List[TransactionRecord]:
    seen = set()
    unique = []
    for record in records:
        if record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


def select(
    entries: Iterable[StoredEntry],
    start_date: DateBound = None,
    end_date: DateBound = None,
    limit: Optional[int] = DEFAULT_LIMIT,
) -> List[TransactionRecord]:
    start, end = start_of(start_date), end_of(end_date)
    matching = [e for e in entries if in_range(e, start, end)]
    records = dedupe_by_id(e.record for e in newest_first(matching))
    if limit is not None:
        records = records[:max(limit, 0)]
    return records


def evict_oldest(entries: List[StoredEntry], max_records: int) -> List[StoredEntry]:
    """Drop the oldest-by-timestamp entries beyond max_records, keeping insertion order."""
    overflow = len(entries) - max_records
    if overflow <= 0:
        return entries
    oldest = sorted(entries, key=lambda e: (e.occurred_at, e.seq))[:overflow]
    dropped = {e.seq for e in oldest}
    return [e for e in entries if e.seq not in dropped]


class TransactionStore(ABC):
    """
    Append/query structure for TransactionRecord values.

    Implementations are shared between concurrent request handlers; every
    operation runs under self._lock so readers see a record either fully
    appended or not at all.
    """

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS):
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        self.max_records = max_records
        self._lock = threading.RLock()

    @abstractmethod
    def append(self, record: TransactionRecord) -> None:
        """
        Add one record. No uniqueness check is made on record.id.

        Raises:
            StoreError: if the backing medium cannot be written
        """

    @abstractmethod
    def list(
        self,
        start_date: DateBound = None,
        end_date: DateBound = None,
        limit: Optional[int] = DEFAULT_LIMIT,
    ) -> List[TransactionRecord]:
        """
        Records with start_date <= timestamp <= end_date (either bound optional),
        newest first, truncated to limit. limit=None returns every match.
        """

    @abstractmethod
    def get_by_id(self, transaction_id: str) -> Optional[TransactionRecord]:
        """Exact-match lookup; the most recently appended record wins on duplicate ids."""
