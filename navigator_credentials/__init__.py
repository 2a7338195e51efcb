"""Navigator Credentials.

Per-tenant AI provider credentials encrypted at rest, and a dispatch
layer that calls those providers with one normalized result shape.
"""
from .version import (
    __title__,
    __description__,
    __version__,
    __author__,
    __author_email__,
)
from .exceptions import (
    VaultError,
    ConfigurationError,
    IntegrityError,
    UnsupportedProviderError,
    RecordConflict,
    RemoteProviderError,
    TransportError,
)
from .vault import CredentialVault, VaultConfig, MemoryStorage, PostgresStorage
from .providers import Dispatcher, ProviderRegistry, ProviderOk, ProviderErr

__all__ = (
    "CredentialVault",
    "VaultConfig",
    "MemoryStorage",
    "PostgresStorage",
    "Dispatcher",
    "ProviderRegistry",
    "ProviderOk",
    "ProviderErr",
    "VaultError",
    "ConfigurationError",
    "IntegrityError",
    "UnsupportedProviderError",
    "RecordConflict",
    "RemoteProviderError",
    "TransportError",
)
