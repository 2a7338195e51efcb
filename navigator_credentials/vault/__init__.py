"""Credential Vault — Encrypted per-tenant storage of AI provider keys.

Security Note (Threat Model):
    Secrets are encrypted at rest with a key derived from one master
    secret supplied by the host environment. Anyone holding the master
    secret and the database can recover every credential; protecting the
    master secret (HSM, secret manager) is out of scope.
"""

from .config import VaultConfig, load_master_secret, generate_master_secret
from .credential_vault import (
    CredentialVault,
    SUPPORTED_PROVIDERS,
    supported_providers,
    mask_secret,
    validate_secret_format,
)
from .key_rotation import reencrypt_credentials
from .models import CredentialRecord, CredentialSummary, ProviderInfo
from .storage import CredentialStorage, MemoryStorage, PostgresStorage

__all__ = [
    "CredentialVault",
    "SUPPORTED_PROVIDERS",
    "supported_providers",
    "mask_secret",
    "validate_secret_format",
    "reencrypt_credentials",
    "VaultConfig",
    "load_master_secret",
    "generate_master_secret",
    "CredentialRecord",
    "CredentialSummary",
    "ProviderInfo",
    "CredentialStorage",
    "MemoryStorage",
    "PostgresStorage",
]
