"""
Shared test fixtures.

Engine-level tests run against InMemoryCommerceStore; Supabase adapter tests
use the chainable mock client below.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import random
import pytest
from datetime import datetime, timezone

from config.settings import Settings
from integrations.memory_store import InMemoryCommerceStore
from services.inventory_engine import InventoryEngine

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._is_single = False
        self._calls = calls if calls is not None else []

    def _log(self, method, *args):
        self._calls.append((method, args))
        return self

    def select(self, *args, **kwargs):
        return self._log("select", *args)

    def insert(self, data):
        self._log("insert", data)
        self._data = [data] if isinstance(data, dict) else data
        return self

    def update(self, data):
        # Simulate update - merge with existing data
        self._log("update", data)
        updated_data = []
        for item in self._data:
            merged = {**item, **data}
            merged["updated_at"] = datetime.now(timezone.utc).isoformat()
            updated_data.append(merged)
        self._data = updated_data if updated_data else [data]
        return self

    def delete(self):
        return self._log("delete")

    def eq(self, column, value):
        return self._log("eq", column, value)

    def neq(self, column, value):
        return self._log("neq", column, value)

    def in_(self, column, values):
        return self._log("in_", column, values)

    def gte(self, column, value):
        return self._log("gte", column, value)

    def lt(self, column, value):
        return self._log("lt", column, value)

    def lte(self, column, value):
        return self._log("lte", column, value)

    def single(self):
        self._is_single = True
        return self

    def order(self, column, **kwargs):
        return self._log("order", column)

    def range(self, start, end):
        self._log("range", start, end)
        self._data = self._data[start:end + 1]
        return self

    def limit(self, count):
        self._log("limit", count)
        self._data = self._data[:count]
        return self

    def execute(self) -> MockSupabaseResponse:
        if self._is_single:
            # Return first item or empty for single()
            data = self._data[0] if self._data else None
            return MockSupabaseResponse(
                data=data,
                count=1 if data else 0
            )
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._calls = calls if calls is not None else []

    def _query(self):
        return MockSupabaseQuery(self._data.copy(), self._count, self._calls)

    def select(self, *args, **kwargs):
        return self._query().select(*args)

    def insert(self, data):
        return self._query().insert(data)

    def update(self, data):
        # For update, pass the existing data so it can be merged
        return self._query().update(data)

    def delete(self):
        return self._query().delete()


class MockSupabaseClient:
    """Mock Supabase client that records every chained call per table."""

    def __init__(self):
        self._tables = {}
        self.calls = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(config["data"], config["count"], self.calls.setdefault(name, []))


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "name": "TEST", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def settings() -> Settings:
    """Offline settings, no .env, monitor disabled, Telegram off."""
    return Settings(
        _env_file=None,
        data_source="offline",
        supabase_url=None,
        supabase_key=None,
        telegram_bot_token=None,
        telegram_chat_id=None,
        monitor_enabled=False,
    )


@pytest.fixture
def memory_store() -> InMemoryCommerceStore:
    return InMemoryCommerceStore()


@pytest.fixture
def engine(memory_store, settings) -> InventoryEngine:
    """Engine over an empty in-memory store with a seeded rng."""
    return InventoryEngine(memory_store, settings, rng=random.Random(7))


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(engine, settings):
    """
    FastAPI test client bound to the engine fixture.

    Usage:
        def test_endpoint(test_client, memory_store):
            memory_store.add_product(...)
            response = test_client.get("/api/alerts")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import create_app

    app = create_app(settings=settings, engine=engine)
    with TestClient(app) as client:
        yield client
