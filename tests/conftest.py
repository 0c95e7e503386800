"""Shared pytest fixtures for s3proxy tests.

Apps are built with an injected in-memory store, so the lifespan (which
would create the configured store) never has to run under ASGITransport.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from s3proxy.config import GatewayConfig, StorageConfig
from s3proxy.server import create_app
from s3proxy.storage.memory import MemoryObjectStore

BUCKET = "site-bucket"
PREFIX = "www"


class RecordingStore(MemoryObjectStore):
    """Memory store that records every key it is asked for."""

    def __init__(self, chunk_size: int = 4) -> None:
        super().__init__(chunk_size=chunk_size)
        self.fetched: list[str] = []

    async def fetch(self, bucket, key):
        self.fetched.append(key)
        return await super().fetch(bucket, key)


def make_config(**overrides) -> GatewayConfig:
    """Return a test config pointing at the memory store, with overrides."""
    kwargs = dict(
        storage=StorageConfig(backend="memory", bucket=BUCKET, prefix=PREFIX),
    )
    kwargs.update(overrides)
    return GatewayConfig(**kwargs)


def make_client(config: GatewayConfig, store) -> AsyncClient:
    """Create an AsyncClient for an app built from ``config`` and ``store``."""
    app = create_app(config, store=store)
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://testserver")


@pytest.fixture
def config() -> GatewayConfig:
    """Default test config: no auth, no access log, no overrides."""
    return make_config()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
async def client(config, store) -> AsyncClient:
    async with make_client(config, store) as ac:
        yield ac
