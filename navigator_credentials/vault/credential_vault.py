"""
CredentialVault — Per-tenant encrypted storage of AI provider credentials.

Provides the public API for the credential lifecycle:
- ``store(tenant_id, provider, secret, label)`` — encrypt and upsert a credential
- ``fetch(tenant_id, provider)`` — decrypt a credential, ``None`` when absent
- ``list_credentials(tenant_id)`` — summaries without ciphertext
- ``delete(tenant_id, credential_id)`` — owner-checked removal
- ``mask(secret)`` / ``validate_format(provider, secret)`` — display and input helpers

Security Note:
    Never log plaintext or ciphertext values. Only log tenant ids, providers
    and record ids. Decrypted secrets are returned to the caller and never
    cached here: every fetch decrypts again, so a rotated or deleted
    credential is never used after the change.
"""
import logging
from typing import Optional

from ..exceptions import RecordConflict, UnsupportedProviderError
from .config import VaultConfig
from .crypto import encrypt_credential, decrypt_credential
from .models import CredentialRecord, CredentialSummary, ProviderInfo
from .storage import CredentialStorage

logger = logging.getLogger("navigator.vault")

MASK = "****"

SUPPORTED_PROVIDERS: dict[str, ProviderInfo] = {
    p.name: p for p in (
        ProviderInfo(name="openai", label="OpenAI", key_prefix="sk-"),
        ProviderInfo(name="anthropic", label="Anthropic", key_prefix="sk-ant-"),
        ProviderInfo(name="perplexity", label="Perplexity", key_prefix="pplx-"),
        ProviderInfo(name="xai", label="xAI / Grok", key_prefix="xai-"),
        ProviderInfo(name="github", label="GitHub", key_prefix="ghp_"),
        ProviderInfo(name="google", label="Google AI", key_prefix="AI"),
    )
}


def supported_providers() -> list[ProviderInfo]:
    """Providers a tenant can store credentials for."""
    return list(SUPPORTED_PROVIDERS.values())


def mask_secret(secret: str) -> str:
    """Return a display-safe version of a secret.

    Secrets of 8 characters or fewer are fully hidden; longer ones keep
    their first and last 4 characters.
    """
    if len(secret) <= 8:
        return MASK
    return f"{secret[:4]}{MASK}{secret[-4:]}"


def validate_secret_format(provider: str, secret: str, min_length: int = 10) -> bool:
    """Cheap sanity check of a secret against the provider's key prefix.

    Unknown providers are checked for length only. A ``True`` result does
    not mean the provider will accept the key.
    """
    if len(secret) < min_length:
        return False
    info = SUPPORTED_PROVIDERS.get(provider.lower())
    if info is None:
        return True
    return secret.startswith(info.key_prefix)


class CredentialVault:
    """Encrypted credential vault scoped by tenant.

    At most one credential exists per (tenant, provider): storing again for
    the same pair rotates the secret in place. The encryption key is derived
    from the master secret on every operation and never kept.
    """

    def __init__(
        self,
        storage: CredentialStorage,
        config: Optional[VaultConfig] = None,
    ):
        self._storage = storage
        self._config = config or VaultConfig.from_env()

    @property
    def config(self) -> VaultConfig:
        return self._config

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_provider(provider: str) -> str:
        """Validate provider identifier against the supported set.

        Raises:
            UnsupportedProviderError: If the provider is not supported.
        """
        name = (provider or "").lower()
        if name not in SUPPORTED_PROVIDERS:
            raise UnsupportedProviderError(provider)
        return name

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def store(
        self,
        tenant_id: str,
        provider: str,
        secret: str,
        label: Optional[str] = None,
    ) -> CredentialSummary:
        """Encrypt and upsert a credential.

        An existing credential for the pair gets the new ciphertext; its
        label is replaced only when ``label`` is given.

        Args:
            tenant_id: Owning tenant.
            provider: Provider identifier (e.g. ``"openai"``).
            secret: Plaintext API key.
            label: Optional human-readable label.

        Returns:
            Summary of the stored credential (never the ciphertext).

        Raises:
            ValueError: If the secret is empty.
            UnsupportedProviderError: If the provider is not supported.
        """
        if not secret:
            raise ValueError("Credential secret cannot be empty")
        provider = self._normalize_provider(provider)
        encrypted = encrypt_credential(secret, self._config.master_secret)

        existing = await self._storage.get_record_by_tenant_and_provider(
            tenant_id, provider,
        )
        if existing is None:
            record = CredentialRecord(
                tenant_id=tenant_id,
                provider=provider,
                encrypted_key=encrypted.encrypted_key,
                iv=encrypted.iv,
                auth_tag=encrypted.auth_tag,
                label=label or None,
            )
            try:
                created = await self._storage.create_record(record)
            except RecordConflict:
                # lost a concurrent create for the same pair
                existing = await self._storage.get_record_by_tenant_and_provider(
                    tenant_id, provider,
                )
                if existing is None:
                    raise
            else:
                logger.info(
                    "Vault store: tenant=%s provider=%s id=%s (created)",
                    tenant_id, provider, created.id,
                )
                return created.summary()

        updated = await self._storage.update_record(
            existing.id,
            encrypted_key=encrypted.encrypted_key,
            iv=encrypted.iv,
            auth_tag=encrypted.auth_tag,
            label=label or existing.label,
        )
        logger.info(
            "Vault store: tenant=%s provider=%s id=%s (rotated)",
            tenant_id, provider, updated.id,
        )
        return updated.summary()

    async def fetch(self, tenant_id: str, provider: str) -> Optional[str]:
        """Decrypt and return the tenant's credential for a provider.

        A missing credential is a normal state and yields ``None``.

        Raises:
            IntegrityError: If the stored record fails authentication.
        """
        record = await self._storage.get_record_by_tenant_and_provider(
            tenant_id, (provider or "").lower(),
        )
        if record is None:
            logger.debug(
                "Vault fetch: tenant=%s provider=%s absent", tenant_id, provider,
            )
            return None

        secret = decrypt_credential(
            record.encrypted_key,
            record.iv,
            record.auth_tag,
            self._config.master_secret,
        )

        try:
            await self._storage.touch_last_used(record.id)
        except Exception as err:
            logger.warning(
                "Vault fetch: could not update last_used_at for id=%s: %s",
                record.id, err,
            )
        return secret

    async def list_credentials(self, tenant_id: str) -> list[CredentialSummary]:
        """List the tenant's credentials without any key material."""
        records = await self._storage.list_records_by_tenant(tenant_id)
        return [record.summary() for record in records]

    async def delete(self, tenant_id: str, credential_id: str) -> bool:
        """Delete a credential owned by ``tenant_id``.

        Returns:
            True if deleted; False if it does not exist or belongs to
            another tenant.
        """
        record = await self._storage.get_record_by_id(credential_id)
        if record is None or record.tenant_id != tenant_id:
            logger.warning(
                "Vault delete refused: tenant=%s id=%s", tenant_id, credential_id,
            )
            return False
        await self._storage.delete_record(credential_id)
        logger.info(
            "Vault delete: tenant=%s provider=%s id=%s",
            tenant_id, record.provider, credential_id,
        )
        return True

    @staticmethod
    def mask(secret: str) -> str:
        return mask_secret(secret)

    def validate_format(self, provider: str, secret: str) -> bool:
        return validate_secret_format(
            provider, secret, min_length=self._config.min_secret_length,
        )
