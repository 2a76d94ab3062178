"""
Shared pytest fixtures for all test modules.

The API fixtures build a fresh in-memory store and sandbox gateway per test
and inject them through dependency overrides, so no test touches the disk
store configured for the running service.
"""
import pytest
from fastapi.testclient import TestClient
from typing import Optional

from app.config import Settings
from app.dependencies import get_app_settings, get_gateway, get_store
from app.gateways.sandbox import SandboxGateway
from app.schemas.records import TransactionRecord
from app.store.json_file import JsonFileTransactionStore
from app.store.memory import InMemoryTransactionStore
from app.store.sql import SqlTransactionStore


@pytest.fixture
def settings():
    return Settings(store_backend="memory", reporting_lookback_days=3)


@pytest.fixture
def store():
    return InMemoryTransactionStore(max_records=1000)


@pytest.fixture
def gateway():
    return SandboxGateway()


@pytest.fixture(params=["memory", "json", "sql"])
def any_store(request, tmp_path):
    """Each store backend in turn, empty, with the default retention cap."""
    if request.param == "memory":
        return InMemoryTransactionStore()
    if request.param == "json":
        return JsonFileTransactionStore(tmp_path / "all-transactions.json")
    return SqlTransactionStore(database_url=f"sqlite:///{tmp_path / 'ledger.db'}")


@pytest.fixture
def client(store, gateway, settings):
    """
    FastAPI TestClient with store, gateway and settings overridden.
    The TestClient is NOT used as a context manager so the lifespan hook
    (which builds the configured on-disk store) is skipped.
    """
    from app.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_app_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helper, not a fixture, so any test file can import and call it directly.
# ---------------------------------------------------------------------------
def make_record(
    txn_id: str,
    timestamp: str = "2025-07-29T10:00:00Z",
    status: str = "approved",
    amount: str = "10.00",
    txn_type: str = "payment",
    reference: str = "",
    currency: str = "USD",
    last4: Optional[str] = None,
) -> TransactionRecord:
    data = dict(
        id=txn_id,
        reference=reference,
        status=status,
        amount=amount,
        currency=currency,
        type=txn_type,
        timestamp=timestamp,
    )
    if last4 is not None:
        data["card"] = {"type": "Visa", "last4": last4}
    return TransactionRecord(**data)
