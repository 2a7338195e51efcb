"""Shared fixtures: vault config, in-memory storage and a fake provider server."""
import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from navigator_credentials.vault import CredentialVault, MemoryStorage, VaultConfig
from navigator_credentials.providers import ProviderRegistry

MASTER_SECRET = "test-master-secret-do-not-use"
TENANT_A = "tenant-alpha-001"
TENANT_B = "tenant-beta-002"


class FakeProvider:
    """Records incoming requests and answers with canned replies per path."""

    def __init__(self):
        self.requests: list[dict] = []
        self.replies: dict[str, tuple] = {}
        self.host = None
        self.port = None

    def reply(self, path: str, status: int = 200, body=None, delay: float = 0):
        self.replies[path] = (status, body, delay)

    def url(self, path: str) -> str:
        return f"http://{self.host}:{self.port}{path}"

    async def handle(self, request: web.Request) -> web.Response:
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        self.requests.append({
            "path": request.path,
            "headers": {k.lower(): v for k, v in request.headers.items()},
            "json": payload,
        })
        status, body, delay = self.replies.get(
            request.path, (404, {"error": {"message": "no such route"}}, 0),
        )
        if delay:
            await asyncio.sleep(delay)
        if isinstance(body, bytes):
            return web.Response(status=status, body=body)
        return web.json_response(body, status=status)


@pytest.fixture
def config():
    return VaultConfig(master_secret=MASTER_SECRET)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def vault(storage, config):
    return CredentialVault(storage, config)


@pytest.fixture
async def fake_provider():
    fake = FakeProvider()
    app = web.Application()
    app.router.add_route("POST", "/{tail:.*}", fake.handle)
    server = TestServer(app)
    await server.start_server()
    fake.host = server.host
    fake.port = server.port
    yield fake
    await server.close()


@pytest.fixture
def registry(fake_provider, config):
    """Default endpoints re-pointed at the fake provider server."""
    return ProviderRegistry.from_defaults(
        urls={
            "openai": fake_provider.url("/openai/v1/chat/completions"),
            "anthropic": fake_provider.url("/anthropic/v1/messages"),
            "xai": fake_provider.url("/xai/v1/chat/completions"),
            "perplexity": fake_provider.url("/perplexity/chat/completions"),
            "google": fake_provider.url(
                "/google/v1beta/models/{model}:generateContent"
            ),
        },
        config=config,
    )
