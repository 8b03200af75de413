from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from user_service.config import Settings, get_settings
from user_service.db.memory_store import InMemoryUserStore
from user_service.main import create_app
from user_service.observability.metrics import Metrics


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PORT", "HOST", "LOG_LEVEL", "STORE_BACKEND", "DATABASE_URL", "RATE_LIMIT_RPS", "RATE_LIMIT_BURST"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


@pytest.fixture
def store(metrics: Metrics) -> InMemoryUserStore:
    return InMemoryUserStore(metrics)


@pytest.fixture
def settings() -> Settings:
    # Generous budget so only the rate-limit tests ever see a 429.
    return Settings(rate_limit_rps=1000.0, rate_limit_burst=1000)


@pytest.fixture
def app(settings: Settings, store: InMemoryUserStore, metrics: Metrics) -> FastAPI:
    return create_app(settings=settings, store=store, metrics=metrics)


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
