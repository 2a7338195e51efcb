"""
Credential Storage — Persistence backends consumed by the CredentialVault.

The storage layer is a dumb persistence collaborator: it has no business
rules beyond keeping (tenant_id, provider) unique and making each write
atomic. ``CredentialVault`` is the only writer.

Backends:
- ``MemoryStorage`` — in-process dict, for tests and single-process tools.
- ``PostgresStorage`` — asyncpg-compatible pool over ``auth.user_credentials``.

Security Note:
    Storage only ever sees ciphertext. Never log record contents.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..exceptions import RecordConflict
from .models import CredentialRecord, utcnow

logger = logging.getLogger("navigator.vault")


class CredentialStorage(ABC):
    """Interface the vault consumes from a durable record store."""

    @abstractmethod
    async def create_record(self, record: CredentialRecord) -> CredentialRecord:
        """Persist a new record.

        Raises:
            RecordConflict: If (tenant_id, provider) already has a record.
        """

    @abstractmethod
    async def get_record_by_tenant_and_provider(
        self, tenant_id: str, provider: str
    ) -> Optional[CredentialRecord]:
        ...

    @abstractmethod
    async def update_record(
        self,
        record_id: str,
        *,
        encrypted_key: str,
        iv: str,
        auth_tag: str,
        label: Optional[str],
    ) -> CredentialRecord:
        ...

    @abstractmethod
    async def get_record_by_id(self, record_id: str) -> Optional[CredentialRecord]:
        ...

    @abstractmethod
    async def delete_record(self, record_id: str) -> None:
        ...

    @abstractmethod
    async def touch_last_used(self, record_id: str) -> None:
        ...

    @abstractmethod
    async def list_records_by_tenant(self, tenant_id: str) -> list[CredentialRecord]:
        ...

    @abstractmethod
    async def list_all_records(self) -> list[CredentialRecord]:
        ...


class MemoryStorage(CredentialStorage):
    """In-memory credential store.

    Writes are serialized with an ``asyncio.Lock`` and every read returns a
    copy, so readers observe a record either before or after a write.
    """

    def __init__(self) -> None:
        self._records: dict[str, CredentialRecord] = {}
        self._lock = asyncio.Lock()

    def _find(self, tenant_id: str, provider: str) -> Optional[CredentialRecord]:
        for record in self._records.values():
            if record.tenant_id == tenant_id and record.provider == provider:
                return record
        return None

    async def create_record(self, record: CredentialRecord) -> CredentialRecord:
        async with self._lock:
            if self._find(record.tenant_id, record.provider) is not None:
                raise RecordConflict(
                    f"Credential for provider {record.provider} already exists "
                    f"for tenant {record.tenant_id}"
                )
            self._records[record.id] = record.model_copy()
        return record.model_copy()

    async def get_record_by_tenant_and_provider(
        self, tenant_id: str, provider: str
    ) -> Optional[CredentialRecord]:
        record = self._find(tenant_id, provider)
        return record.model_copy() if record else None

    async def update_record(
        self,
        record_id: str,
        *,
        encrypted_key: str,
        iv: str,
        auth_tag: str,
        label: Optional[str],
    ) -> CredentialRecord:
        async with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise KeyError(record_id)
            updated = current.model_copy(update={
                "encrypted_key": encrypted_key,
                "iv": iv,
                "auth_tag": auth_tag,
                "label": label,
                "updated_at": utcnow(),
            })
            self._records[record_id] = updated
        return updated.model_copy()

    async def get_record_by_id(self, record_id: str) -> Optional[CredentialRecord]:
        record = self._records.get(record_id)
        return record.model_copy() if record else None

    async def delete_record(self, record_id: str) -> None:
        async with self._lock:
            self._records.pop(record_id, None)

    async def touch_last_used(self, record_id: str) -> None:
        async with self._lock:
            current = self._records.get(record_id)
            if current is not None:
                self._records[record_id] = current.model_copy(
                    update={"last_used_at": utcnow()}
                )

    async def list_records_by_tenant(self, tenant_id: str) -> list[CredentialRecord]:
        return [
            r.model_copy() for r in self._records.values()
            if r.tenant_id == tenant_id
        ]

    async def list_all_records(self) -> list[CredentialRecord]:
        return [r.model_copy() for r in self._records.values()]


# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_COLUMNS = (
    "id, tenant_id, provider, encrypted_key, iv, auth_tag, label, "
    "last_used_at, created_at, updated_at"
)

_INSERT_RECORD = f"""
INSERT INTO auth.user_credentials
    (id, tenant_id, provider, encrypted_key, iv, auth_tag, label, created_at, updated_at)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
RETURNING {_COLUMNS}
"""

_SELECT_BY_TENANT_PROVIDER = f"""
SELECT {_COLUMNS}
FROM auth.user_credentials
WHERE tenant_id = $1 AND provider = $2
"""

_SELECT_BY_ID = f"""
SELECT {_COLUMNS}
FROM auth.user_credentials
WHERE id = $1
"""

_SELECT_BY_TENANT = f"""
SELECT {_COLUMNS}
FROM auth.user_credentials
WHERE tenant_id = $1
ORDER BY created_at
"""

_SELECT_ALL = f"""
SELECT {_COLUMNS}
FROM auth.user_credentials
ORDER BY id
"""

_UPDATE_RECORD = f"""
UPDATE auth.user_credentials
SET encrypted_key = $1, iv = $2, auth_tag = $3, label = $4, updated_at = NOW()
WHERE id = $5
RETURNING {_COLUMNS}
"""

_DELETE_RECORD = """
DELETE FROM auth.user_credentials
WHERE id = $1
"""

_TOUCH_LAST_USED = """
UPDATE auth.user_credentials
SET last_used_at = NOW()
WHERE id = $1
"""

# Postgres unique_violation
_UNIQUE_VIOLATION = "23505"


class PostgresStorage(CredentialStorage):
    """Credential store backed by an asyncpg-compatible connection pool.

    Expects a unique index on ``auth.user_credentials (tenant_id, provider)``;
    the database enforces the one-record-per-pair rule atomically.
    """

    def __init__(self, db_pool: Any):
        self._db = db_pool

    @staticmethod
    def _to_record(row: Any) -> Optional[CredentialRecord]:
        if row is None:
            return None
        return CredentialRecord(**dict(row))

    async def create_record(self, record: CredentialRecord) -> CredentialRecord:
        async with self._db.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    _INSERT_RECORD,
                    record.id, record.tenant_id, record.provider,
                    record.encrypted_key, record.iv, record.auth_tag,
                    record.label, record.created_at, record.updated_at,
                )
            except Exception as err:
                if getattr(err, "sqlstate", None) == _UNIQUE_VIOLATION:
                    raise RecordConflict(
                        f"Credential for provider {record.provider} already "
                        f"exists for tenant {record.tenant_id}"
                    ) from err
                raise
        return self._to_record(row)

    async def get_record_by_tenant_and_provider(
        self, tenant_id: str, provider: str
    ) -> Optional[CredentialRecord]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_BY_TENANT_PROVIDER, tenant_id, provider)
        return self._to_record(row)

    async def update_record(
        self,
        record_id: str,
        *,
        encrypted_key: str,
        iv: str,
        auth_tag: str,
        label: Optional[str],
    ) -> CredentialRecord:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(
                _UPDATE_RECORD, encrypted_key, iv, auth_tag, label, record_id,
            )
        if row is None:
            raise KeyError(record_id)
        return self._to_record(row)

    async def get_record_by_id(self, record_id: str) -> Optional[CredentialRecord]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_BY_ID, record_id)
        return self._to_record(row)

    async def delete_record(self, record_id: str) -> None:
        async with self._db.acquire() as conn:
            await conn.execute(_DELETE_RECORD, record_id)

    async def touch_last_used(self, record_id: str) -> None:
        async with self._db.acquire() as conn:
            await conn.execute(_TOUCH_LAST_USED, record_id)

    async def list_records_by_tenant(self, tenant_id: str) -> list[CredentialRecord]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_BY_TENANT, tenant_id)
        return [self._to_record(row) for row in rows]

    async def list_all_records(self) -> list[CredentialRecord]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_ALL)
        return [self._to_record(row) for row in rows]
