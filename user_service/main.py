from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

import structlog
from fastapi import FastAPI

from user_service.api.health import router as health_router
from user_service.api.metrics import router as metrics_router
from user_service.api.users import router as users_router
from user_service.config import Settings, get_settings
from user_service.db.memory_store import InMemoryUserStore
from user_service.db.session import get_engine
from user_service.db.sql_store import SqlUserStore
from user_service.db.store import UserStore
from user_service.observability.logging import configure_logging
from user_service.observability.metrics import Metrics
from user_service.observability.middleware import MiddlewareChain, default_stages
from user_service.observability.rate_limit import TokenBucket
from user_service.services.user_service import UserService

logger = structlog.get_logger(__name__)


def build_store(settings: Settings, metrics: Metrics) -> UserStore:
    if settings.store_backend == "sql":
        return SqlUserStore(get_engine(settings.database_url), metrics)
    return InMemoryUserStore(metrics)


async def _tick_uptime(metrics: Metrics) -> None:
    while True:
        await asyncio.sleep(1.0)
        metrics.tick_uptime()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    store = app.state.user_service.store
    if isinstance(store, SqlUserStore):
        store.create_schema()
        store.seed()
        logger.info("database_ready", users_count=store.count())

    uptime = asyncio.create_task(_tick_uptime(app.state.metrics))
    try:
        yield
    finally:
        uptime.cancel()
        with suppress(asyncio.CancelledError):
            await uptime


def create_app(
    settings: Settings | None = None,
    store: UserStore | None = None,
    metrics: Metrics | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    metrics = metrics or Metrics()
    store = store if store is not None else build_store(settings, metrics)
    bucket = TokenBucket(rate=settings.rate_limit_rps, burst=settings.rate_limit_burst)

    app = FastAPI(title="User Service", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.metrics = metrics
    app.state.user_service = UserService(store, metrics)

    app.include_router(users_router)
    app.include_router(health_router)
    app.include_router(metrics_router)

    app.add_middleware(MiddlewareChain, stages=default_stages(metrics, bucket))
    return app
