"""Credential record shapes shared by the vault and its storage backends."""
import uuid
from typing import Optional
from datetime import datetime, timezone

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialRecord(BaseModel):
    """Persisted credential: one per (tenant_id, provider)."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    tenant_id: str
    provider: str
    encrypted_key: str = Field(repr=False)
    iv: str = Field(repr=False)
    auth_tag: str = Field(repr=False)
    label: Optional[str] = None
    last_used_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def summary(self) -> "CredentialSummary":
        return CredentialSummary(
            id=self.id,
            provider=self.provider,
            label=self.label,
            last_used_at=self.last_used_at,
            created_at=self.created_at,
        )


class CredentialSummary(BaseModel):
    """Display-safe view of a credential record (no ciphertext)."""

    id: str
    provider: str
    label: Optional[str] = None
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ProviderInfo(BaseModel):
    """A provider a tenant can store credentials for."""

    name: str
    label: str
    key_prefix: str
