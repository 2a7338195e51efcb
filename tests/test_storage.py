"""
Tests for storage backends.

Tests cover:
- MemoryStorage copy-on-read semantics
- PostgresStorage SQL wiring against a fake asyncpg-style pool
- Unique-violation mapping to RecordConflict
"""
import pytest

from navigator_credentials.exceptions import RecordConflict
from navigator_credentials.vault import CredentialRecord, MemoryStorage, PostgresStorage

from .conftest import TENANT_A


def _record(**overrides) -> CredentialRecord:
    data = {
        "tenant_id": TENANT_A,
        "provider": "openai",
        "encrypted_key": "Y2lwaGVy",
        "iv": "bm9uY2U=",
        "auth_tag": "dGFn",
        "label": "work",
    }
    data.update(overrides)
    return CredentialRecord(**data)


class UniqueViolation(Exception):
    sqlstate = "23505"


class FakeConnection:
    def __init__(self, pool):
        self._pool = pool

    async def fetchrow(self, sql, *args):
        self._pool.calls.append(("fetchrow", sql, args))
        if self._pool.error is not None:
            raise self._pool.error
        return self._pool.row

    async def fetch(self, sql, *args):
        self._pool.calls.append(("fetch", sql, args))
        return self._pool.rows

    async def execute(self, sql, *args):
        self._pool.calls.append(("execute", sql, args))
        return "OK"


class FakeAcquire:
    def __init__(self, pool):
        self._conn = FakeConnection(pool)

    async def __aenter__(self):
        return self._conn

    async def __aexit__(self, *exc):
        return False


class FakePool:
    """Minimal asyncpg-compatible pool recording every statement."""

    def __init__(self):
        self.calls = []
        self.row = None
        self.rows = []
        self.error = None

    def acquire(self):
        return FakeAcquire(self)


class TestMemoryStorage:
    """Tests for the in-memory backend."""

    async def test_reads_are_copies(self):
        """Mutating a returned record does not change stored state."""
        storage = MemoryStorage()
        created = await storage.create_record(_record())
        fetched = await storage.get_record_by_id(created.id)
        fetched.label = "changed"
        again = await storage.get_record_by_id(created.id)
        assert again.label == "work"

    async def test_update_unknown_record(self):
        """Updating a missing record raises KeyError."""
        storage = MemoryStorage()
        with pytest.raises(KeyError):
            await storage.update_record(
                "missing", encrypted_key="a", iv="b", auth_tag="c", label=None,
            )

    async def test_delete_and_list(self):
        """Deleted records disappear from listings."""
        storage = MemoryStorage()
        record = await storage.create_record(_record())
        await storage.create_record(_record(provider="anthropic"))
        await storage.delete_record(record.id)
        remaining = await storage.list_records_by_tenant(TENANT_A)
        assert [r.provider for r in remaining] == ["anthropic"]


class TestPostgresStorage:
    """Tests for the asyncpg-backed store."""

    async def test_create_record(self):
        """Insert passes every column and maps the returned row."""
        pool = FakePool()
        record = _record()
        pool.row = record.model_dump()
        created = await PostgresStorage(pool).create_record(record)
        method, sql, args = pool.calls[0]
        assert method == "fetchrow"
        assert "INSERT INTO auth.user_credentials" in sql
        assert args[:4] == (record.id, TENANT_A, "openai", "Y2lwaGVy")
        assert created == record

    async def test_create_conflict(self):
        """Unique violations become RecordConflict."""
        pool = FakePool()
        pool.error = UniqueViolation("duplicate key")
        with pytest.raises(RecordConflict):
            await PostgresStorage(pool).create_record(_record())

    async def test_other_errors_propagate(self):
        """Other database errors are not masked."""
        pool = FakePool()
        pool.error = RuntimeError("connection lost")
        with pytest.raises(RuntimeError):
            await PostgresStorage(pool).create_record(_record())

    async def test_lookup_missing(self):
        """No row maps to None."""
        pool = FakePool()
        found = await PostgresStorage(pool).get_record_by_tenant_and_provider(TENANT_A, "openai")
        assert found is None
        assert pool.calls[0][2] == (TENANT_A, "openai")

    async def test_update_missing_raises(self):
        """Update of a vanished row raises KeyError."""
        pool = FakePool()
        with pytest.raises(KeyError):
            await PostgresStorage(pool).update_record(
                "gone", encrypted_key="a", iv="b", auth_tag="c", label=None,
            )

    async def test_list_and_touch(self):
        """Listing maps rows; touch issues an UPDATE."""
        pool = FakePool()
        pool.rows = [_record().model_dump(), _record(provider="xai").model_dump()]
        storage = PostgresStorage(pool)
        records = await storage.list_records_by_tenant(TENANT_A)
        assert [r.provider for r in records] == ["openai", "xai"]
        await storage.touch_last_used(records[0].id)
        method, sql, args = pool.calls[-1]
        assert method == "execute"
        assert "last_used_at = NOW()" in sql
        assert args == (records[0].id,)
