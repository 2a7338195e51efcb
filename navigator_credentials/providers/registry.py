"""
Provider Registry — Explicit map of provider name to endpoint configuration.

The registry is a plain object built from a mapping passed in by the
caller; there is no process-wide registration. ``DEFAULT_ENDPOINTS`` holds
the production endpoints, and tests point providers at fake servers with
``ProviderRegistry.from_defaults(urls={...})``.
"""
from collections.abc import Mapping
from types import MappingProxyType
from typing import Optional

from pydantic import BaseModel

from ..exceptions import UnsupportedProviderError
from ..vault.config import VaultConfig
from .adapters import (
    AnthropicAdapter,
    ChatCompletionsAdapter,
    GeminiAdapter,
    ProviderAdapter,
)


class ProviderEndpoint(BaseModel):
    """How to reach one provider and which credential it needs."""

    name: str
    label: str
    adapter: type[ProviderAdapter]
    url: str
    default_model: str
    credential_provider: str
    cost_estimate: str = "0"

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    def url_for(self, model: str) -> str:
        """Expand the ``{model}`` placeholder of the URL template."""
        return self.url.replace("{model}", model)


DEFAULT_ENDPOINTS: Mapping[str, ProviderEndpoint] = MappingProxyType({
    e.name: e for e in (
        ProviderEndpoint(
            name="openai",
            label="OpenAI",
            adapter=ChatCompletionsAdapter,
            url="https://api.openai.com/v1/chat/completions",
            default_model="gpt-4o",
            credential_provider="openai",
            cost_estimate="0.0003",
        ),
        ProviderEndpoint(
            name="anthropic",
            label="Anthropic",
            adapter=AnthropicAdapter,
            url="https://api.anthropic.com/v1/messages",
            default_model="claude-sonnet-4-20250514",
            credential_provider="anthropic",
            cost_estimate="0.0004",
        ),
        ProviderEndpoint(
            name="xai",
            label="xAI",
            adapter=ChatCompletionsAdapter,
            url="https://api.x.ai/v1/chat/completions",
            default_model="grok-2",
            credential_provider="xai",
            cost_estimate="0.0003",
        ),
        ProviderEndpoint(
            name="perplexity",
            label="Perplexity",
            adapter=ChatCompletionsAdapter,
            url="https://api.perplexity.ai/chat/completions",
            default_model="sonar",
            credential_provider="perplexity",
            cost_estimate="0.0002",
        ),
        ProviderEndpoint(
            name="google",
            label="Google Gemini",
            adapter=GeminiAdapter,
            url=(
                "https://generativelanguage.googleapis.com/v1beta/models/"
                "{model}:generateContent"
            ),
            default_model="gemini-2.0-flash",
            credential_provider="google",
            cost_estimate="0.0001",
        ),
    )
})

DEFAULT_ALIASES: Mapping[str, str] = MappingProxyType({"gemini": "google"})


class ProviderRegistry:
    """Resolves provider identifiers to endpoints and builds adapters."""

    def __init__(
        self,
        endpoints: Mapping[str, ProviderEndpoint],
        aliases: Optional[Mapping[str, str]] = None,
        timeout: float = 60.0,
        max_tokens: int = 4096,
    ):
        self._endpoints = dict(endpoints)
        self._aliases = dict(aliases or {})
        self._timeout = timeout
        self._max_tokens = max_tokens

    @classmethod
    def from_defaults(
        cls,
        urls: Optional[Mapping[str, str]] = None,
        config: Optional[VaultConfig] = None,
    ) -> "ProviderRegistry":
        """Registry over ``DEFAULT_ENDPOINTS``.

        Args:
            urls: Optional provider name -> URL template overrides.
            config: Supplies request timeout and Anthropic max_tokens.
        """
        endpoints = {
            name: (
                endpoint.model_copy(update={"url": urls[name]})
                if urls and name in urls else endpoint
            )
            for name, endpoint in DEFAULT_ENDPOINTS.items()
        }
        kwargs = {}
        if config is not None:
            kwargs = {
                "timeout": config.request_timeout,
                "max_tokens": config.anthropic_max_tokens,
            }
        return cls(endpoints, aliases=DEFAULT_ALIASES, **kwargs)

    def providers(self) -> list[str]:
        return list(self._endpoints)

    def resolve(self, provider: str) -> ProviderEndpoint:
        """Find the endpoint for a provider identifier (case-insensitive).

        Raises:
            UnsupportedProviderError: If the identifier is unknown.
        """
        name = (provider or "").lower()
        name = self._aliases.get(name, name)
        try:
            return self._endpoints[name]
        except KeyError:
            raise UnsupportedProviderError(provider) from None

    def create_adapter(
        self, endpoint: ProviderEndpoint, secret: Optional[str]
    ) -> ProviderAdapter:
        """Build a single-use adapter holding ``secret``."""
        return endpoint.adapter(
            endpoint,
            secret,
            timeout=self._timeout,
            max_tokens=self._max_tokens,
        )
