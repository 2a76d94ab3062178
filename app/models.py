from sqlalchemy import Column, DateTime, Integer, String, Text
from app.database import Base


class Transaction(Base):
    """
    One appended TransactionRecord.

    seq is the insertion order; transaction_id is not unique because the
    gateway id is not guaranteed to be. occurred_at holds the record timestamp
    as naive UTC for range queries; payload is the full record as JSON.
    """

    __tablename__ = "transactions"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String, nullable=False, index=True)
    reference = Column(String, nullable=False, default="")
    status = Column(String, nullable=False)
    type = Column(String, nullable=False)
    amount = Column(String, nullable=False)
    currency = Column(String(3), nullable=False)
    timestamp = Column(String, nullable=False)
    occurred_at = Column(DateTime, nullable=False, index=True)
    payload = Column(Text, nullable=False)
