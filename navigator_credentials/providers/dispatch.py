"""
Dispatcher — Entry point for generation requests on behalf of a tenant.

Each ``generate()`` call resolves the endpoint, fetches the tenant's
credential from the vault, builds a fresh adapter and awaits it. The
decrypted secret lives only inside that call; nothing is cached between
calls, so rotated or deleted credentials take effect immediately.
"""
import asyncio
import logging
from collections.abc import Iterable
from typing import Optional

from ..exceptions import UnsupportedProviderError
from ..vault.credential_vault import CredentialVault
from .adapters import History
from .models import ProviderErr, ProviderResult
from .registry import ProviderRegistry

logger = logging.getLogger("navigator.providers")


class Dispatcher:
    """Routes prompts to providers using tenant credentials from the vault."""

    def __init__(
        self,
        vault: CredentialVault,
        registry: Optional[ProviderRegistry] = None,
    ):
        self._vault = vault
        self._registry = registry or ProviderRegistry.from_defaults(
            config=vault.config,
        )

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def generate(
        self,
        tenant_id: str,
        provider: str,
        prompt: str,
        model: Optional[str] = None,
        conversation_history: History = None,
    ) -> ProviderResult:
        """Generate a completion with the tenant's credential for ``provider``.

        Returns:
            ProviderOk or ProviderErr. A missing credential is a ProviderErr
            asking the user to configure one.

        Raises:
            UnsupportedProviderError: If the provider is unknown.
            IntegrityError: If the stored credential fails authentication.
        """
        endpoint = self._registry.resolve(provider)
        secret = await self._vault.fetch(tenant_id, endpoint.credential_provider)
        if secret is None:
            logger.info(
                "No %s credential for tenant=%s", endpoint.name, tenant_id,
            )
        adapter = self._registry.create_adapter(endpoint, secret)
        result = await adapter.call(prompt, model, conversation_history)
        logger.debug(
            "Dispatch tenant=%s provider=%s status=%s",
            tenant_id, endpoint.name, result.status,
        )
        return result

    async def generate_many(
        self,
        tenant_id: str,
        providers: Iterable[str],
        prompt: str,
        model: Optional[str] = None,
        conversation_history: History = None,
    ) -> dict[str, ProviderResult]:
        """Fan a prompt out to several providers concurrently.

        A failure for one provider, such as an unknown name or a credential
        that fails its integrity check, comes back as that provider's
        ProviderErr; the other results are still collected.
        """
        async def _one(name: str) -> ProviderResult:
            try:
                return await self.generate(
                    tenant_id, name, prompt, model, conversation_history,
                )
            except UnsupportedProviderError as err:
                return ProviderErr(message=str(err))
            except Exception as err:
                logger.exception(
                    "Dispatch failed: tenant=%s provider=%s", tenant_id, name,
                )
                return ProviderErr(message=f"{name}: {err}")

        names = list(dict.fromkeys(providers))
        results = await asyncio.gather(*(_one(name) for name in names))
        return dict(zip(names, results))
