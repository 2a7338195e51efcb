"""Provider Dispatch — Uniform access to remote AI generation APIs.

Every call returns a ``ProviderOk`` or ``ProviderErr``; provider and
transport failures never raise out of this package.
"""

from .adapters import (
    ProviderAdapter,
    ChatCompletionsAdapter,
    AnthropicAdapter,
    GeminiAdapter,
)
from .dispatch import Dispatcher
from .models import ProviderErr, ProviderOk, ProviderResult, Usage
from .registry import (
    DEFAULT_ALIASES,
    DEFAULT_ENDPOINTS,
    ProviderEndpoint,
    ProviderRegistry,
)

__all__ = [
    "ProviderAdapter",
    "ChatCompletionsAdapter",
    "AnthropicAdapter",
    "GeminiAdapter",
    "Dispatcher",
    "ProviderErr",
    "ProviderOk",
    "ProviderResult",
    "Usage",
    "DEFAULT_ALIASES",
    "DEFAULT_ENDPOINTS",
    "ProviderEndpoint",
    "ProviderRegistry",
]
