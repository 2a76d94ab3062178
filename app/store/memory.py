from typing import List, Optional

from app.errors import StoreError
from app.schemas.records import TransactionRecord
from app.store.base import (
    DEFAULT_LIMIT,
    DEFAULT_MAX_RECORDS,
    DateBound,
    StoredEntry,
    TransactionStore,
    evict_oldest,
    occurred_at,
    select,
)


class InMemoryTransactionStore(TransactionStore):
    """
    Process-memory store.

    Entries are kept in insertion order in a list that is replaced, never
    mutated in place, so a reader holding the previous list is unaffected by
    a concurrent append. Subclasses persist the list through _persist().
    """

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS):
        super().__init__(max_records)
        self._entries: List[StoredEntry] = []
        self._next_seq = 0

    def _entry(self, record: TransactionRecord) -> StoredEntry:
        entry = StoredEntry(seq=self._next_seq, occurred_at=occurred_at(record), record=record)
        self._next_seq += 1
        return entry

    def _persist(self) -> None:
        """Hook for durable subclasses; the in-memory store keeps nothing outside the process."""

    def append(self, record: TransactionRecord) -> None:
        with self._lock:
            previous, previous_seq = self._entries, self._next_seq
            self._entries = evict_oldest(previous + [self._entry(record)], self.max_records)
            try:
                self._persist()
            except StoreError:
                # Keep memory consistent with what actually reached the medium
                self._entries, self._next_seq = previous, previous_seq
                raise

    def list(
        self,
        start_date: DateBound = None,
        end_date: DateBound = None,
        limit: Optional[int] = DEFAULT_LIMIT,
    ) -> List[TransactionRecord]:
        with self._lock:
            entries = self._entries
        return select(entries, start_date, end_date, limit)

    def get_by_id(self, transaction_id: str) -> Optional[TransactionRecord]:
        with self._lock:
            entries = self._entries
        for entry in reversed(entries):
            if entry.record.id == transaction_id:
                return entry.record
        return None
