"""
Provider Adapters — One remote-call strategy per provider wire format.

- ``ChatCompletionsAdapter``: OpenAI-style ``/chat/completions`` (OpenAI, xAI, Perplexity)
- ``AnthropicAdapter``: Anthropic ``/v1/messages``
- ``GeminiAdapter``: Google ``models/{model}:generateContent``

An adapter is built for a single dispatch with the secret resolved for
that dispatch, and is dropped afterwards. ``call()`` never raises: missing
credentials, remote errors and transport faults all come back as
``ProviderErr``. No retries are attempted here.

Security Note:
    Never log the secret or request headers. Secrets travel in headers only,
    so they cannot leak through URLs in error messages.
"""
import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional, TYPE_CHECKING

import aiohttp
import orjson

from ..exceptions import RemoteProviderError, TransportError
from .models import ProviderErr, ProviderOk, ProviderResult, Usage

if TYPE_CHECKING:
    from .registry import ProviderEndpoint

logger = logging.getLogger("navigator.providers")

History = Optional[Sequence[Mapping[str, str]]]

ROLES = frozenset({"system", "user", "assistant"})


def _dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None on any missing step."""
    for step in path:
        try:
            data = data[step]
        except (KeyError, IndexError, TypeError):
            return None
    return data


def _count(value: Any) -> int:
    return value if isinstance(value, int) else 0


class ProviderAdapter:
    """Base adapter: request plumbing and response normalization.

    Subclasses provide ``build_request()`` and ``parse_response()`` for
    their wire format.
    """

    def __init__(
        self,
        endpoint: "ProviderEndpoint",
        secret: Optional[str],
        timeout: float = 60.0,
        max_tokens: int = 4096,
    ):
        self.endpoint = endpoint
        self._secret = secret
        self._timeout = timeout
        self._max_tokens = max_tokens

    @property
    def name(self) -> str:
        return self.endpoint.name

    @property
    def label(self) -> str:
        return self.endpoint.label

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} provider={self.name}>"

    # ------------------------------------------------------------------
    # Wire format hooks
    # ------------------------------------------------------------------

    def build_request(
        self, prompt: str, model: str, history: History
    ) -> tuple[str, dict, dict]:
        """Return (url, headers, json payload) for the remote call."""
        raise NotImplementedError

    def parse_response(self, data: dict) -> tuple[str, int, int]:
        """Return (content, input_tokens, output_tokens) from a 2xx body."""
        raise NotImplementedError

    @staticmethod
    def _messages(prompt: str, history: History, assistant_role: str = "assistant") -> list:
        """History turns followed by the prompt as role/content dicts.

        Raises:
            ValueError: On a turn whose role is not system, user or assistant.
        """
        messages = []
        for turn in history or ():
            role = turn.get("role", "user")
            if role not in ROLES:
                raise ValueError(f"Unsupported conversation role: {role!r}")
            if role == "assistant":
                role = assistant_role
            messages.append({"role": role, "content": turn.get("content", "")})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _split_system(messages: list) -> tuple[str, list]:
        """Pull system turns out for APIs that take them as a separate field."""
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        return system, [m for m in messages if m["role"] != "system"]

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _error_message(self, data: Any) -> str:
        error = _dig(data, "error")
        if isinstance(error, Mapping) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        return f"{self.label} API error"

    async def _post(self, url: str, headers: dict, payload: dict) -> dict:
        """POST the payload and return the decoded JSON body of a 2xx reply.

        Raises:
            TransportError: On network failures and timeouts.
            RemoteProviderError: On non-2xx replies or undecodable bodies.
        """
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    url,
                    data=orjson.dumps(payload),
                    headers={"Content-Type": "application/json", **headers},
                ) as resp:
                    status = resp.status
                    body = await resp.read()
        except asyncio.TimeoutError as err:
            raise TransportError(f"{self.label} API request timed out") from err
        except aiohttp.ClientError as err:
            raise TransportError(
                f"{self.label} API request failed: {err.__class__.__name__}: {err}"
            ) from err

        try:
            data = orjson.loads(body) if body else None
        except orjson.JSONDecodeError:
            data = None

        if not 200 <= status < 300:
            raise RemoteProviderError(self._error_message(data), status=status)
        if not isinstance(data, dict):
            raise RemoteProviderError(
                f"Malformed response from {self.label} API", status=status,
            )
        return data

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def call(
        self,
        prompt: str,
        model: Optional[str] = None,
        history: History = None,
    ) -> ProviderResult:
        """Send a generation request and normalize the outcome.

        Args:
            prompt: User prompt.
            model: Provider model name; falls back to the endpoint default.
            history: Earlier turns as ``{"role", "content"}`` mappings.

        Returns:
            ProviderOk with content and usage, or ProviderErr with a message.
        """
        if not self._secret:
            return ProviderErr(
                message=(
                    f"{self.label} API key not configured. "
                    "Please add the API key in Settings > API Keys."
                )
            )
        model = model or self.endpoint.default_model
        try:
            url, headers, payload = self.build_request(prompt, model, history)
        except ValueError as err:
            logger.warning("%s request rejected: %s", self.name, err)
            return ProviderErr(message=str(err))
        try:
            data = await self._post(url, headers, payload)
            content, input_tokens, output_tokens = self.parse_response(data)
        except RemoteProviderError as err:
            logger.warning(
                "%s call failed: status=%s model=%s", self.name, err.status, model,
            )
            return ProviderErr(message=str(err))
        except TransportError as err:
            logger.warning("%s transport error: %s", self.name, err)
            return ProviderErr(message=str(err))
        except Exception as err:
            logger.exception("%s call raised unexpectedly", self.name)
            return ProviderErr(message=str(err) or f"{self.label} API error")

        return ProviderOk(
            content=content,
            usage=Usage(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                cost_estimate=self.endpoint.cost_estimate,
            ),
        )


class ChatCompletionsAdapter(ProviderAdapter):
    """OpenAI-compatible chat completions (OpenAI, xAI, Perplexity)."""

    def build_request(self, prompt, model, history):
        headers = {"Authorization": f"Bearer {self._secret}"}
        payload = {
            "model": model,
            "messages": self._messages(prompt, history),
        }
        return self.endpoint.url_for(model), headers, payload

    def parse_response(self, data):
        content = _dig(data, "choices", 0, "message", "content") or ""
        return (
            str(content),
            _count(_dig(data, "usage", "prompt_tokens")),
            _count(_dig(data, "usage", "completion_tokens")),
        )


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Messages API."""

    API_VERSION = "2023-06-01"

    def build_request(self, prompt, model, history):
        headers = {
            "x-api-key": self._secret,
            "anthropic-version": self.API_VERSION,
        }
        system, messages = self._split_system(self._messages(prompt, history))
        payload = {
            "model": model,
            "max_tokens": self._max_tokens,
            "messages": messages,
        }
        if system:
            payload["system"] = system
        return self.endpoint.url_for(model), headers, payload

    def parse_response(self, data):
        content = _dig(data, "content", 0, "text") or ""
        return (
            str(content),
            _count(_dig(data, "usage", "input_tokens")),
            _count(_dig(data, "usage", "output_tokens")),
        )


class GeminiAdapter(ProviderAdapter):
    """Google Gemini generateContent API."""

    def build_request(self, prompt, model, history):
        headers = {"x-goog-api-key": self._secret}
        system, messages = self._split_system(
            self._messages(prompt, history, assistant_role="model")
        )
        payload = {"contents": [
            {"role": m["role"], "parts": [{"text": m["content"]}]}
            for m in messages
        ]}
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        return self.endpoint.url_for(model), headers, payload

    def parse_response(self, data):
        content = _dig(data, "candidates", 0, "content", "parts", 0, "text") or ""
        return (
            str(content),
            _count(_dig(data, "usageMetadata", "promptTokenCount")),
            _count(_dig(data, "usageMetadata", "candidatesTokenCount")),
        )
