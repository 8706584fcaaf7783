"""Pytest configuration and fixtures."""

import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport

from shortener.config import Config
from shortener.lib.bulk import BulkEngine
from shortener.lib.database.memory import MemoryLinkStore
from shortener.lib.service import URLShortenerService
from shortener.lib.keygen import KeyGenerator
from shortener.lib.common.logging_config import setup_logging
from shortener.web_app import create_app


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def key_generator():
    """Create key generator."""
    return KeyGenerator(length=9)


@pytest.fixture
def store(key_generator, logger) -> MemoryLinkStore:
    """Create in-memory link store."""
    return MemoryLinkStore(
        base_url="http://testserver",
        key_generator=key_generator,
        logger=logger,
    )


@pytest.fixture
def service(store, logger) -> URLShortenerService:
    """Create service instance."""
    return URLShortenerService(
        store=store,
        cache=None,  # No cache for tests
        bulk_engine=BulkEngine(store, max_items=50, logger=logger),
        logger=logger,
    )


@pytest.fixture
def config() -> Config:
    """Create test configuration."""
    return Config(
        _env_file=None,
        base_url="http://testserver",
        database_dsn=None,
        file_storage_path=None,
        redis_url=None,
        max_bulk_items=50,
        session_cookie_name="shortener-session",
    )


@pytest.fixture
def app(store, service, config):
    """Create test FastAPI app."""
    return create_app(
        store_instance=store,
        cache_instance=None,
        service_instance=service,
        config=config,
    )


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/test",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]
