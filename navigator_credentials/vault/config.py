"""
Vault Configuration — Master secret loading and validated settings.

Reads the master secret from environment variables:
    VAULT_MASTER_SECRET = <opaque string>
    SESSION_SECRET      = <opaque string>  (fallback, legacy deployments)
    VAULT_REQUEST_TIMEOUT = <seconds for provider calls, optional>

Security Note:
    Never log the master secret. Only log which variable it was read from.
"""
import os
import secrets
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..exceptions import ConfigurationError

logger = logging.getLogger("navigator.vault")

MASTER_SECRET_ENV = "VAULT_MASTER_SECRET"
LEGACY_SECRET_ENV = "SESSION_SECRET"


def load_master_secret() -> str:
    """Load the vault master secret from the environment.

    ``VAULT_MASTER_SECRET`` takes precedence over ``SESSION_SECRET``.

    Returns:
        The master secret string.

    Raises:
        ConfigurationError: If neither variable is set or both are empty.
    """
    for name in (MASTER_SECRET_ENV, LEGACY_SECRET_ENV):
        value = os.environ.get(name)
        if value:
            logger.debug("Vault master secret loaded from %s", name)
            return value
    raise ConfigurationError(
        f"{MASTER_SECRET_ENV} (or {LEGACY_SECRET_ENV}) is required "
        "for credential encryption"
    )


def generate_master_secret() -> str:
    """Generate a random URL-safe master secret.

    This is a utility for operators provisioning a new deployment.

    Returns:
        Random secret string with 48 bytes of entropy.
    """
    return secrets.token_urlsafe(48)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    master_secret: str = Field(repr=False)
    request_timeout: float = Field(default=60.0, ge=1)
    anthropic_max_tokens: int = Field(default=4096, ge=1)
    min_secret_length: int = Field(default=10, ge=1)

    @field_validator("master_secret")
    @classmethod
    def validate_master_secret(cls, v: str) -> str:
        """Reject an empty master secret."""
        if not v:
            raise ValueError("master_secret cannot be empty")
        return v

    @classmethod
    def create(cls, **kwargs) -> "VaultConfig":
        """Build a config, reporting validation problems as ConfigurationError."""
        try:
            return cls(**kwargs)
        except ValidationError as err:
            raise ConfigurationError(str(err)) from err

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.

        Raises:
            ConfigurationError: If the master secret is missing or a value is invalid.
        """
        kwargs = {"master_secret": load_master_secret()}
        timeout = os.environ.get("VAULT_REQUEST_TIMEOUT")
        if timeout:
            kwargs["request_timeout"] = timeout
        return cls.create(**kwargs)
