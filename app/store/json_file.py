"""
File-backed store: a single flat JSON array of records in insertion order.

A missing file means an empty store. Every append rewrites the file through
a temp file in the same directory followed by an atomic rename, so a crash
mid-write leaves the previous file intact.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Union

from pydantic import ValidationError as PydanticValidationError

from app.errors import StoreError
from app.schemas.records import TransactionRecord
from app.store.base import DEFAULT_MAX_RECORDS, evict_oldest
from app.store.memory import InMemoryTransactionStore
from app.utils.logging import get_logger

log = get_logger("app.store")


class JsonFileTransactionStore(InMemoryTransactionStore):
    def __init__(self, path: Union[str, Path], max_records: int = DEFAULT_MAX_RECORDS):
        super().__init__(max_records)
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            log.info("Transaction log %s not found, starting empty", self.path)
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read transaction log {self.path}: {e}") from e
        if not isinstance(raw, list):
            raise StoreError(f"Transaction log {self.path} must hold a JSON array")

        try:
            records = [TransactionRecord.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise StoreError(f"Malformed record in {self.path}: {e}") from e

        entries = [self._entry(record) for record in records]
        self._entries = evict_oldest(entries, self.max_records)
        log.info("Loaded %d transactions from %s", len(self._entries), self.path)

    def _persist(self) -> None:
        payload = [entry.record.model_dump(mode="json") for entry in self._entries]
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StoreError(f"Cannot write transaction log {self.path}: {e}") from e
