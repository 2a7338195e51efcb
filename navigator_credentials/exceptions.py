"""Exception hierarchy for the credential vault and provider dispatch.

Cryptographic and configuration faults propagate to the caller.
Provider faults (``RemoteProviderError``, ``TransportError``) are raised
inside adapters only and are converted into ``ProviderErr`` results before
leaving ``call()``.
"""


class VaultError(Exception):
    """Base exception for all credential vault errors."""


class ConfigurationError(VaultError):
    """The master secret is missing or vault settings are invalid."""


class IntegrityError(VaultError):
    """Authentication tag mismatch: the encrypted record was tampered or corrupted."""


class UnsupportedProviderError(VaultError):
    """No adapter is registered for the requested provider identifier."""

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider}")
        self.provider = provider


class RecordConflict(VaultError):
    """A record for the same (tenant, provider) pair already exists."""


class RemoteProviderError(VaultError):
    """The remote provider answered with a non-2xx status or an unusable body."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class TransportError(VaultError):
    """Network-level fault while talking to a remote provider."""
