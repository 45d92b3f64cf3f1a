"""
Shared test fixtures.

Provides an in-memory stand-in for the Supabase client that understands the
query-builder calls our services make (select/insert/upsert/update/delete,
eq/in_/or_ filters) and can be told to raise store errors.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time; give them something to read
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime, timezone
from typing import Callable, Generator, Optional

from postgrest.exceptions import APIError


def store_error(code: str, message: str = "store error") -> APIError:
    """Build the error supabase-py raises for a failed request."""
    return APIError({"code": code, "message": message, "details": None, "hint": None})


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data if data is not None else []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Chainable query builder backed by MockSupabaseClient rows."""

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = None
        self._payload = None
        self._on_conflict = None
        self._filters: list[Callable[[dict], bool]] = []
        self._order: list[tuple] = []
        self._range = None
        self._limit = None

    # --- operations ---

    def select(self, *columns, count: Optional[str] = None):
        self._op = self._op or "select"
        return self

    def insert(self, data):
        self._op = "insert"
        self._payload = [data] if isinstance(data, dict) else list(data)
        return self

    def upsert(self, data, on_conflict: str = "", ignore_duplicates: bool = False, **kwargs):
        self._op = "upsert"
        self._payload = [data] if isinstance(data, dict) else list(data)
        self._on_conflict = [c for c in on_conflict.split(",") if c]
        return self

    def update(self, data):
        self._op = "update"
        self._payload = data
        return self

    def delete(self):
        self._op = "delete"
        return self

    # --- filters / modifiers ---

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = set(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def or_(self, expression: str):
        clauses = []
        for part in expression.split(","):
            column, operator, pattern = part.split(".", 2)
            assert operator == "ilike", operator
            clauses.append((column, pattern.strip("%").lower()))
        self._filters.append(
            lambda row: any(term in str(row.get(col, "")).lower() for col, term in clauses)
        )
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    # --- execution ---

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        self._client.calls.append((self._table, self._op, self._payload))
        self._client.raise_if_configured(self._table, self._op, self._payload)

        rows = self._client.rows(self._table)

        if self._op == "select":
            matched = [dict(r) for r in rows if self._matches(r)]
            # Stable sorts, least significant key first
            for column, desc in reversed(self._order):
                matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
            total = len(matched)
            if self._range:
                start, end = self._range
                matched = matched[start:end + 1]
            if self._limit is not None:
                matched = matched[:self._limit]
            if self._client.max_rows is not None:
                matched = matched[:self._client.max_rows]
            return MockSupabaseResponse(data=matched, count=total)

        if self._op == "insert":
            created = [self._client.insert_row(self._table, row) for row in self._payload]
            return MockSupabaseResponse(data=created)

        if self._op == "upsert":
            written = self._client.upsert_rows(self._table, self._payload, self._on_conflict)
            return MockSupabaseResponse(data=written)

        if self._op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    row["updated_at"] = _now()
                    updated.append(dict(row))
            return MockSupabaseResponse(data=updated)

        if self._op == "delete":
            removed = [dict(r) for r in rows if self._matches(r)]
            rows[:] = [r for r in rows if not self._matches(r)]
            return MockSupabaseResponse(data=removed)

        raise AssertionError(f"unsupported operation {self._op}")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MockSupabaseClient:
    """
    In-memory Supabase client.

    Usage:
        mock_supabase.set_table_data("products", [{"sku": "PROD-001"}])
        mock_supabase.set_unique_key("channel_sku_mappings", ("channel_sku", "channel_name"))
        mock_supabase.fail_on("channel_sku_mappings", "upsert", store_error("23503"))
        mock_supabase.max_rows = 1000
    """

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self._unique_keys: dict[str, tuple] = {}
        self._failures: list[dict] = []
        self._next_id = 1
        self.calls: list[tuple] = []
        # PostgREST db-max-rows; None = uncapped
        self.max_rows: Optional[int] = None

    def set_table_data(self, table_name: str, data: list):
        """Replace a table's rows."""
        self._tables[table_name] = [dict(row) for row in data]
        ids = [row["id"] for row in data if isinstance(row.get("id"), int)]
        if ids:
            self._next_id = max(self._next_id, max(ids) + 1)

    def set_unique_key(self, table_name: str, columns: tuple):
        """Enforce a unique constraint on insert."""
        self._unique_keys[table_name] = tuple(columns)

    def fail_on(
        self,
        table_name: str,
        op: str,
        error: Exception,
        times: Optional[int] = None,
        when: Optional[Callable[[object], bool]] = None
    ):
        """
        Raise `error` for matching calls.

        Args:
            times: Stop after this many raises (None = always)
            when: Only raise when when(payload) is true
        """
        self._failures.append(
            {"table": table_name, "op": op, "error": error, "times": times, "when": when}
        )

    def raise_if_configured(self, table_name: str, op: str, payload):
        for failure in self._failures:
            if failure["table"] != table_name or failure["op"] != op:
                continue
            if failure["times"] is not None and failure["times"] <= 0:
                continue
            if failure["when"] is not None and not failure["when"](payload):
                continue
            if failure["times"] is not None:
                failure["times"] -= 1
            raise failure["error"]

    def rows(self, table_name: str) -> list[dict]:
        return self._tables.setdefault(table_name, [])

    def calls_for(self, table_name: str, op: str) -> list:
        """Payloads of every call made with this table/op."""
        return [payload for table, o, payload in self.calls if table == table_name and o == op]

    def _key(self, table_name: str, row: dict, columns) -> tuple:
        return tuple(row.get(c) for c in columns)

    def insert_row(self, table_name: str, data: dict) -> dict:
        rows = self.rows(table_name)
        unique = self._unique_keys.get(table_name)
        if unique:
            key = self._key(table_name, data, unique)
            if any(self._key(table_name, r, unique) == key for r in rows):
                raise store_error("23505", "duplicate key value violates unique constraint")

        row = dict(data)
        row.setdefault("id", self._next_id)
        self._next_id += 1
        row.setdefault("created_at", _now())
        row.setdefault("updated_at", row["created_at"])
        rows.append(row)
        return dict(row)

    def upsert_rows(self, table_name: str, payload: list[dict], conflict: list[str]) -> list[dict]:
        keys = [self._key(table_name, row, conflict) for row in payload]
        if len(set(keys)) != len(keys):
            raise store_error(
                "21000",
                "ON CONFLICT DO UPDATE command cannot affect row a second time"
            )

        rows = self.rows(table_name)
        written = []
        for row, key in zip(payload, keys):
            existing = next((r for r in rows if self._key(table_name, r, conflict) == key), None)
            if existing is not None:
                existing.update(row)
                existing["updated_at"] = _now()
                written.append(dict(existing))
            else:
                written.append(self.insert_row(table_name, row))
        return written

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client with the mappings unique key enforced.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [{"sku": "PROD-001"}])
    """
    client = MockSupabaseClient()
    client.set_unique_key("channel_sku_mappings", ("channel_sku", "channel_name"))
    return client


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Any service built without an explicit db gets the mock.
    """
    with patch("services.channel_mapping_service.get_supabase_client", return_value=mock_supabase):
        with patch("services.bulk_upload_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.master_sku_checker.get_supabase_client", return_value=mock_supabase):
                with patch("services.batch_upserter.get_supabase_client", return_value=mock_supabase):
                    yield mock_supabase


@pytest.fixture
def sample_mapping_data() -> dict:
    """Sample stored mapping row."""
    return {
        "id": 1,
        "channel_sku": "AMZ-001",
        "channel_name": "Amazon",
        "master_sku": "PROD-001",
        "status": "Active",
        "created_at": "2025-03-01T10:00:00+00:00",
        "updated_at": "2025-03-01T10:00:00+00:00"
    }


@pytest.fixture
def sample_mappings_list() -> list:
    """Sample list of stored mappings."""
    return [
        {
            "id": 1,
            "channel_sku": "AMZ-001",
            "channel_name": "Amazon",
            "master_sku": "PROD-001",
            "status": "Active",
            "created_at": "2025-03-01T10:00:00+00:00",
            "updated_at": "2025-03-01T10:00:00+00:00"
        },
        {
            "id": 2,
            "channel_sku": "FK-001",
            "channel_name": "Flipkart",
            "master_sku": "PROD-001",
            "status": "Active",
            "created_at": "2025-03-02T10:00:00+00:00",
            "updated_at": "2025-03-02T10:00:00+00:00"
        },
        {
            "id": 3,
            "channel_sku": "MYN-001",
            "channel_name": "Myntra",
            "master_sku": "PROD-002",
            "status": "Inactive",
            "created_at": "2025-03-03T10:00:00+00:00",
            "updated_at": "2025-03-03T10:00:00+00:00"
        }
    ]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_supabase):
    """
    Create FastAPI test client whose services use the mock database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("channel_sku_mappings", [...])
            response = test_client_with_mock_db.get("/api/channel-sku-mappings")
    """
    from fastapi.testclient import TestClient
    from main import app
    from services.bulk_upload_service import BulkUploadService
    from services.channel_mapping_service import ChannelMappingService

    mapping_service = ChannelMappingService(db=mock_supabase)
    upload_service = BulkUploadService(db=mock_supabase)

    with patch("routes.channel_mappings.get_channel_mapping_service", return_value=mapping_service):
        with patch("routes.channel_mappings.get_bulk_upload_service", return_value=upload_service):
            yield TestClient(app)
