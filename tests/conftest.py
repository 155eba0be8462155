# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

The Supabase client is replaced by FakeSupabase, an in-memory stand-in
for the PostgREST query builder that supports the calls the routers make.
"""

import os
import re
from copy import deepcopy
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Generator

# Must be set before core.config is imported
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient

from main import create_app


# ============================================================
# Fake Supabase
# ============================================================
class FakeAPIError(Exception):
    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


def _same(a, b) -> bool:
    return a == b or (a is not None and b is not None and str(a) == str(b))


def _ilike(value, pattern: str) -> bool:
    if value is None:
        return False
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$"
    return re.match(regex, str(value), re.IGNORECASE) is not None


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.payload = None
        self.want_count = False
        self.predicates = []
        self.orders = []
        self.offset = None
        self.end = None
        self.max_rows = None

    # ---- operations ----
    def select(self, columns: str = "*", count=None):
        self.op = "select"
        self.want_count = count is not None
        return self

    def insert(self, data):
        self.op = "insert"
        self.payload = data
        return self

    def upsert(self, data, on_conflict: str = "id"):
        self.op = "upsert"
        self.payload = data
        self.conflict_column = on_conflict
        return self

    def update(self, data):
        self.op = "update"
        self.payload = data
        return self

    def delete(self):
        self.op = "delete"
        return self

    # ---- filters ----
    def eq(self, column, value):
        self.predicates.append(lambda row: _same(row.get(column), value))
        return self

    def neq(self, column, value):
        self.predicates.append(lambda row: not _same(row.get(column), value))
        return self

    def in_(self, column, values):
        values = list(values)
        self.predicates.append(lambda row: any(_same(row.get(column), v) for v in values))
        return self

    def ilike(self, column, pattern):
        self.predicates.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def or_(self, expression: str):
        clauses = []
        for part in expression.split(","):
            column, operator, pattern = part.split(".", 2)
            assert operator == "ilike", f"unsupported or_ operator {operator}"
            clauses.append((column, pattern))
        self.predicates.append(lambda row: any(_ilike(row.get(c), p) for c, p in clauses))
        return self

    # ---- shaping ----
    def order(self, column, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def range(self, start: int, end: int):
        self.offset, self.end = start, end
        return self

    def limit(self, n: int):
        self.max_rows = n
        return self

    # ---- execute ----
    def _matching(self):
        rows = self.db.tables.setdefault(self.table_name, [])
        return [row for row in rows if all(p(row) for p in self.predicates)]

    def execute(self):
        self.db.calls.append((self.table_name, self.op))
        failure = self.db.fail_tables.get(self.op, {}).get(self.table_name)
        if failure is not None:
            raise FakeAPIError(*failure)

        if self.op == "insert":
            return SimpleNamespace(data=self._insert(), count=None)

        if self.op == "upsert":
            return SimpleNamespace(data=self._upsert(), count=None)

        if self.op == "update":
            matched = self._matching()
            for row in matched:
                row.update(deepcopy(self.payload))
            return SimpleNamespace(data=deepcopy(matched), count=None)

        if self.op == "delete":
            matched = self._matching()
            rows = self.db.tables[self.table_name]
            self.db.tables[self.table_name] = [row for row in rows if row not in matched]
            return SimpleNamespace(data=deepcopy(matched), count=None)

        rows = self._matching()
        for column, desc in reversed(self.orders):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(rows)
        if self.offset is not None:
            rows = rows[self.offset:self.end + 1]
        if self.max_rows is not None:
            rows = rows[:self.max_rows]
        return SimpleNamespace(data=deepcopy(rows), count=total if self.want_count else None)

    def _insert(self):
        items = self.payload if isinstance(self.payload, list) else [self.payload]
        created = []
        for item in items:
            row = deepcopy(item)
            unique = self.db.unique.get(self.table_name)
            if unique and any(_same(r.get(unique), row.get(unique)) for r in self.db.tables.setdefault(self.table_name, [])):
                raise FakeAPIError(
                    f'duplicate key value violates unique constraint "{self.table_name}_{unique}_key"',
                    code="23505",
                )
            row.setdefault("id", self.db.next_id(self.table_name))
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            self.db.tables.setdefault(self.table_name, []).append(row)
            created.append(deepcopy(row))
        return created

    def _upsert(self):
        items = self.payload if isinstance(self.payload, list) else [self.payload]
        rows = self.db.tables.setdefault(self.table_name, [])
        saved = []
        for item in items:
            existing = next((r for r in rows if _same(r.get(self.conflict_column), item.get(self.conflict_column))), None)
            if existing is None:
                existing = deepcopy(item)
                rows.append(existing)
            else:
                existing.update(deepcopy(item))
            saved.append(deepcopy(existing))
        return saved


class FakeAuth:
    def __init__(self):
        self.tokens = {}
        self.signed_out = []
        self.created = []
        self.deleted = []
        self.create_error = None
        self.admin = SimpleNamespace(
            sign_out=self._sign_out,
            create_user=self._create_user,
            delete_user=self._delete_user,
        )

    def get_user(self, token):
        if token not in self.tokens:
            raise FakeAPIError("invalid JWT", code="401")
        return SimpleNamespace(user=SimpleNamespace(id=self.tokens[token]))

    def _sign_out(self, jwt, scope="global"):
        self.signed_out.append(jwt)

    def _create_user(self, attributes: dict):
        if self.create_error is not None:
            raise self.create_error
        user_id = f"new-user-{len(self.created) + 1}"
        self.created.append({**attributes, "id": user_id})
        return SimpleNamespace(user=SimpleNamespace(id=user_id, email=attributes["email"]))

    def _delete_user(self, user_id: str):
        self.deleted.append(user_id)


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.unique = {"company_cars": "license_plate"}
        self.fail_tables = {}
        self.calls = []
        self.auth = FakeAuth()
        self._ids = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def next_id(self, table: str) -> int:
        current = max([r["id"] for r in self.tables.get(table, []) if isinstance(r.get("id"), int)] or [0])
        self._ids[table] = max(self._ids.get(table, 0), current) + 1
        return self._ids[table]

    # ---- test helpers ----
    def seed(self, table: str, *rows):
        self.tables.setdefault(table, []).extend(deepcopy(list(rows)))

    def rows(self, table: str):
        return self.tables.get(table, [])

    def fail(self, table: str, op: str = "insert", message: str = None, code: str = "XX000"):
        """Make every `op` on `table` raise a PostgREST-style error."""
        self.fail_tables.setdefault(op, {})[table] = (message or f"{op} on {table} failed", code)

    def add_user(self, user_id: str, role: str, token: str = None, email: str = None):
        self.seed("users", {
            "id": user_id,
            "email": email or f"{user_id}@example.com",
            "role": role,
            "name": user_id,
            "surname": None,
        })
        self.auth.tokens[token or f"{user_id}-token"] = user_id


# ============================================================
# Fixtures
# ============================================================
@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    """
    FakeSupabase installed as the process-wide client, seeded with:
      admin, owner of company 7, owner of company 8, manager of company 7,
      a client, and an owner without a company.
    """
    from core.config import settings

    db = FakeSupabase()
    db.add_user("admin-1", "admin")
    db.add_user("owner-7", "owner")
    db.add_user("owner-8", "owner")
    db.add_user("manager-7", "manager")
    db.add_user("client-1", "client")
    db.add_user("owner-none", "owner")

    db.seed(
        "companies",
        {"id": 7, "name": "Seven Rentals", "owner_id": "owner-7", "location_id": 1},
        {"id": 8, "name": "Eight Rentals", "owner_id": "owner-8", "location_id": 1},
    )
    db.seed("managers", {"id": 1, "user_id": "manager-7", "company_id": 7, "is_active": True})

    monkeypatch.setattr("core.supabase_client._client", db)
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", None)
    return db


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {user_id}-token"}


@pytest.fixture(scope="function")
def app():
    """Create a test FastAPI application instance."""
    return create_app()


@pytest.fixture(scope="function")
def client(app, fake_db) -> Generator[TestClient, None, None]:
    """Test client with the fake database installed."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def reset_cache():
    """Reset cache before each test."""
    from core.cache import cache_clear
    cache_clear()
    yield
    cache_clear()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from core.rate_limiter import reset_rate_limits as reset
    reset()
    yield
    reset()
