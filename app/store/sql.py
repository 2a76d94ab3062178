"""
SQLAlchemy-backed store.

Rows carry the indexed columns needed for lookups and range queries; the
full record round-trips through the JSON payload column. Appends and the
eviction that follows them run in one transaction under the store lock.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app import models
from app.database import Base, make_engine, make_session_factory
from app.errors import StoreError
from app.schemas.records import TransactionRecord
from app.store.base import (
    DEFAULT_LIMIT,
    DEFAULT_MAX_RECORDS,
    DateBound,
    TransactionStore,
    dedupe_by_id,
    occurred_at,
)
from app.utils.dates import end_of, start_of


def _naive_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _to_row(record: TransactionRecord) -> models.Transaction:
    return models.Transaction(
        transaction_id=record.id,
        reference=record.reference,
        status=record.status,
        type=record.type,
        amount=record.amount,
        currency=record.currency,
        timestamp=record.timestamp,
        occurred_at=_naive_utc(occurred_at(record)),
        payload=record.model_dump_json(),
    )


def _from_row(row: models.Transaction) -> TransactionRecord:
    return TransactionRecord.model_validate_json(row.payload)


class SqlTransactionStore(TransactionStore):
    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[Engine] = None,
        max_records: int = DEFAULT_MAX_RECORDS,
    ):
        super().__init__(max_records)
        if engine is None:
            if not database_url:
                raise ValueError("database_url or engine is required")
            engine = make_engine(database_url)
        self.engine = engine
        self._session_factory = make_session_factory(engine)
        try:
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Cannot initialize transaction table: {e}") from e

    def append(self, record: TransactionRecord) -> None:
        with self._lock:
            db = self._session_factory()
            try:
                db.add(_to_row(record))
                db.flush()
                self._evict(db)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreError(f"Cannot append transaction {record.id}: {e}") from e
            finally:
                db.close()

    def _evict(self, db) -> None:
        count = db.query(func.count(models.Transaction.seq)).scalar()
        overflow = count - self.max_records
        if overflow <= 0:
            return
        stale = (
            db.query(models.Transaction.seq)
            .order_by(models.Transaction.occurred_at.asc(), models.Transaction.seq.asc())
            .limit(overflow)
            .all()
        )
        db.query(models.Transaction).filter(
            models.Transaction.seq.in_([seq for (seq,) in stale])
        ).delete(synchronize_session=False)

    def list(
        self,
        start_date: DateBound = None,
        end_date: DateBound = None,
        limit: Optional[int] = DEFAULT_LIMIT,
    ) -> List[TransactionRecord]:
        start, end = start_of(start_date), end_of(end_date)
        with self._lock:
            db = self._session_factory()
            try:
                query = db.query(models.Transaction)
                if start is not None:
                    query = query.filter(models.Transaction.occurred_at >= _naive_utc(start))
                if end is not None:
                    query = query.filter(models.Transaction.occurred_at <= _naive_utc(end))
                rows = query.order_by(
                    models.Transaction.occurred_at.desc(), models.Transaction.seq.desc()
                ).all()
                records = dedupe_by_id(_from_row(row) for row in rows)
            except SQLAlchemyError as e:
                raise StoreError(f"Cannot list transactions: {e}") from e
            finally:
                db.close()
        if limit is not None:
            records = records[:max(limit, 0)]
        return records

    def get_by_id(self, transaction_id: str) -> Optional[TransactionRecord]:
        with self._lock:
            db = self._session_factory()
            try:
                row = (
                    db.query(models.Transaction)
                    .filter(models.Transaction.transaction_id == transaction_id)
                    .order_by(models.Transaction.seq.desc())
                    .first()
                )
                return _from_row(row) if row is not None else None
            except SQLAlchemyError as e:
                raise StoreError(f"Cannot look up transaction {transaction_id}: {e}") from e
            finally:
                db.close()
