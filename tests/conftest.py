# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - An in-memory stand-in for the Supabase query builder, installed as the
#   SupabaseClient singleton so services run against plain lists of dicts
# - Redis publishing is mocked for every test
# - Helpers to mint Supabase-style HS256 tokens
# =============================================================================

import os
import uuid
from datetime import datetime, timezone
from typing import Any, Callable
from unittest.mock import MagicMock, patch

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-0123456789")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_promotions")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from jose import jwt

from lib.supabase_client import SupabaseClient


# =============================================================================
# In-memory Supabase
# =============================================================================

def _same(stored: Any, wanted: Any) -> bool:
    if stored == wanted:
        return True
    if stored is None or wanted is None or isinstance(stored, bool) or isinstance(wanted, bool):
        return False
    return str(stored) == str(wanted)


class FakeResponse:
    def __init__(self, data: Any, count: int | None = None):
        self.data = data
        self.count = count


class FakeQuery:
    """Chainable query over one table of a FakeSupabase."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.operation = "select"
        self.payload: Any = None
        self.predicates: list[Callable[[dict[str, Any]], bool]] = []
        self.ordering: list[tuple[str, bool]] = []
        self.window: tuple[int, int] | None = None
        self.max_rows: int | None = None

    # Operations

    def select(self, columns: str = "*", count: str | None = None) -> "FakeQuery":
        self.operation = "select"
        return self

    def insert(self, data: dict[str, Any] | list[dict[str, Any]]) -> "FakeQuery":
        self.operation = "insert"
        self.payload = data
        return self

    def update(self, data: dict[str, Any]) -> "FakeQuery":
        self.operation = "update"
        self.payload = data
        return self

    def delete(self) -> "FakeQuery":
        self.operation = "delete"
        return self

    # Filters

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.predicates.append(lambda r: _same(r.get(column), value))
        return self

    def neq(self, column: str, value: Any) -> "FakeQuery":
        self.predicates.append(lambda r: not _same(r.get(column), value))
        return self

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        self.predicates.append(lambda r: any(_same(r.get(column), v) for v in values))
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        self.predicates.append(lambda r: r.get(column) is not None and r.get(column) >= value)
        return self

    def lte(self, column: str, value: Any) -> "FakeQuery":
        self.predicates.append(lambda r: r.get(column) is not None and r.get(column) <= value)
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.ordering.append((column, desc))
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.window = (start, end)
        return self

    def limit(self, n: int) -> "FakeQuery":
        self.max_rows = n
        return self

    # Execution

    def execute(self) -> FakeResponse:
        self.db.queries.append((self.table, self.operation))
        if self.table in self.db.failing_tables:
            raise RuntimeError(f"relation {self.table} is unavailable")

        rows = self.db.tables.setdefault(self.table, [])

        if self.operation == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        matches = [r for r in rows if all(p(r) for p in self.predicates)]

        if self.operation == "update":
            for row in matches:
                row.update(self.payload)
            return FakeResponse([dict(r) for r in matches])

        if self.operation == "delete":
            self.db.tables[self.table] = [r for r in rows if r not in matches]
            return FakeResponse([dict(r) for r in matches])

        result = [dict(r) for r in matches]
        for column, desc in reversed(self.ordering):
            result.sort(key=lambda r: (r.get(column) is None, str(r.get(column) or "")), reverse=desc)
        total = len(result)
        if self.window:
            result = result[self.window[0]:self.window[1] + 1]
        if self.max_rows is not None:
            result = result[:self.max_rows]
        return FakeResponse(result, count=total)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", function: str, params: dict[str, Any]):
        self.db = db
        self.function = function
        self.params = params

    def execute(self) -> FakeResponse:
        self.db.rpc_calls.append((self.function, self.params))
        handler = self.db.rpc_handlers.get(self.function)
        if handler is None:
            raise RuntimeError(f"function {self.function} does not exist")
        return FakeResponse(handler(self.params))


class FakeSupabase:
    """
    Minimal in-memory replacement for the supabase-py Client.

    Tables are lists of dicts. RPCs without a registered handler raise, the
    way PostgREST does for a missing function.
    """

    def __init__(self):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.rpc_handlers: dict[str, Callable[[dict[str, Any]], Any]] = {}
        self.rpc_calls: list[tuple[str, dict[str, Any]]] = []
        self.queries: list[tuple[str, str]] = []
        self.failing_tables: set[str] = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, function: str, params: dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, function, params)

    def seed(self, table: str, *rows: dict[str, Any]) -> list[dict[str, Any]]:
        stored = self.tables.setdefault(table, [])
        created = []
        for row in rows:
            row = dict(row)
            row.setdefault("id", str(uuid.uuid4()))
            stored.append(row)
            created.append(row)
        return created

    def rows(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        return [
            r for r in self.tables.get(table, [])
            if all(_same(r.get(k), v) for k, v in filters.items())
        ]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def db():
    """Install a fresh FakeSupabase as the SupabaseClient singleton."""
    fake = FakeSupabase()
    with patch.object(SupabaseClient, "_instance", fake):
        yield fake


@pytest.fixture(autouse=True)
def redis_mock():
    """Capture Redis publishes instead of connecting."""
    client = MagicMock()
    with patch("app.websocket.broadcast.get_redis_client", return_value=client):
        yield client


@pytest.fixture
def now():
    """A fixed Wednesday used as the clock in time-based tests."""
    return datetime(2025, 3, 12, 10, 0, tzinfo=timezone.utc)


def make_token(user_id: str, email: str | None = None, role: str | None = None, **claims: Any) -> str:
    """Mint a Supabase-style HS256 access token."""
    payload = {
        "sub": str(user_id),
        "aud": "authenticated",
        "email": email,
        "exp": int(datetime.now(timezone.utc).timestamp()) + 3600,
        **claims,
    }
    if role:
        payload["app_metadata"] = {"role": role}
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def auth_header():
    """Factory for Authorization headers."""
    def _header(user_id: str, email: str | None = None, role: str | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, email=email, role=role)}"}
    return _header


@pytest.fixture
def customer_id() -> str:
    return "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def braider_user_id() -> str:
    return "22222222-2222-2222-2222-222222222222"


@pytest.fixture
def admin_id() -> str:
    return "33333333-3333-3333-3333-333333333333"
