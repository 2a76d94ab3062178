from app.config import Settings
from app.store.base import TransactionStore
from app.store.json_file import JsonFileTransactionStore
from app.store.memory import InMemoryTransactionStore
from app.store.sql import SqlTransactionStore


def build_store(settings: Settings) -> TransactionStore:
    """Construct the store backend named by settings.store_backend."""
    backend = settings.store_backend.lower()
    if backend == "memory":
        return InMemoryTransactionStore(max_records=settings.store_max_records)
    if backend == "json":
        return JsonFileTransactionStore(
            settings.store_path, max_records=settings.store_max_records
        )
    if backend == "sql":
        return SqlTransactionStore(
            database_url=settings.database_url, max_records=settings.store_max_records
        )
    raise ValueError(f"Unknown store backend: {settings.store_backend}")
