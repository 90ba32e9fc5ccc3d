"""Pytest configuration and fixtures"""
import os
import pytest
from unittest.mock import Mock, AsyncMock
from types import SimpleNamespace

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from shopcart.cart import Cart, CartEvents, SessionStorage


class FakeQuery:
    """In-memory stand-in for a postgrest async request builder."""

    def __init__(self, db, table, op, payload=None, columns="*"):
        self.db = db
        self.table = table
        self.op = op
        self.payload = payload
        self.columns = columns
        self.filters = []
        self._negate = False

    def _add(self, predicate):
        self.filters.append((predicate, self._negate))
        self._negate = False
        return self

    def eq(self, column, value):
        return self._add(lambda r: r.get(column) == value)

    def in_(self, column, values):
        values = list(values)
        return self._add(lambda r: r.get(column) in values)

    @property
    def not_(self):
        self._negate = True
        return self

    def order(self, column, desc=False):
        return self

    def _matches(self, record):
        return all(predicate(record) != negate for predicate, negate in self.filters)

    async def execute(self):
        self.db.calls.append((self.table, self.op))
        records = self.db.tables.setdefault(self.table, [])

        if self.op == "select":
            data = [dict(r) for r in records if self._matches(r)]
            if self.columns != "*":
                wanted = [c.strip() for c in self.columns.split(",")]
                data = [{c: r.get(c) for c in wanted} for r in data]
            return SimpleNamespace(data=data)

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for record in payload:
                if any(r["key"] == record["key"] and r["__raw_id"] == record["__raw_id"] for r in records):
                    raise RuntimeError("duplicate key value violates unique constraint")
                self.db.next_id += 1
                row = {"id": self.db.next_id, **record}
                records.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted)

        if self.op == "update":
            updated = []
            for record in records:
                if self._matches(record):
                    record.update(self.payload)
                    updated.append(dict(record))
            return SimpleNamespace(data=updated)

        if self.op == "delete":
            deleted = [dict(r) for r in records if self._matches(r)]
            self.db.tables[self.table] = [r for r in records if not self._matches(r)]
            return SimpleNamespace(data=deleted)

        raise AssertionError(f"unsupported op {self.op}")


class FakeTable:
    def __init__(self, db, name):
        self.db = db
        self.name = name

    def select(self, columns="*"):
        return FakeQuery(self.db, self.name, "select", columns=columns)

    def insert(self, payload):
        return FakeQuery(self.db, self.name, "insert", payload=payload)

    def update(self, payload):
        return FakeQuery(self.db, self.name, "update", payload=payload)

    def delete(self):
        return FakeQuery(self.db, self.name, "delete")


class FakeSupabase:
    """Async Supabase client double backed by plain lists."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.next_id = 0

    def table(self, name):
        return FakeTable(self, name)


@pytest.fixture
def fake_supabase():
    """In-memory Supabase client"""
    return FakeSupabase()


@pytest.fixture
def mock_redis():
    """Mock Upstash Redis client with a dict behind get/set/delete"""
    store = {}
    redis = Mock()
    redis.store = store
    redis.get = AsyncMock(side_effect=lambda key: store.get(key))
    redis.set = AsyncMock(side_effect=lambda key, value, ex=None: store.__setitem__(key, value))
    redis.delete = AsyncMock(side_effect=lambda key: 1 if store.pop(key, None) is not None else 0)
    redis.xadd = AsyncMock(return_value="1-0")
    return redis


@pytest.fixture
def session():
    """Plain dict standing in for request.session"""
    return {}


@pytest.fixture
def events():
    return CartEvents()


@pytest.fixture
def cart(session, events):
    """Session-backed cart"""
    return Cart(SessionStorage(session), events)


@pytest.fixture
def sample_row():
    """Row in its stored form"""
    return {
        "__raw_id": "raw-123",
        "product_id": "product-123",
        "name": "Linen Shirt",
        "qty": 2,
        "price": "3.50",
        "total": "7.00",
        "__model": None,
        "type": None,
        "status": None,
        "parent_id": 0,
        "color": "red",
        "size": "M",
    }
