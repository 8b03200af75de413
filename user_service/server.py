from __future__ import annotations

import threading
from enum import Enum
from time import perf_counter
from types import FrameType

import httpx
import structlog
import uvicorn

from user_service.config import Settings, get_settings
from user_service.main import create_app
from user_service.observability.logging import configure_logging

logger = structlog.get_logger(__name__)


class State(str, Enum):
    STARTING = "starting"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


_TRANSITIONS: dict[State, frozenset[State]] = {
    State.STARTING: frozenset({State.LISTENING, State.STOPPED}),
    State.LISTENING: frozenset({State.SHUTTING_DOWN}),
    State.SHUTTING_DOWN: frozenset({State.STOPPED}),
    State.STOPPED: frozenset(),
}


class LifecycleError(RuntimeError):
    pass


class Lifecycle:
    """Server state machine: starting -> listening -> shutting_down -> stopped.

    A server that never finished starting may go straight to stopped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = State.STARTING
        self.drain_forced: bool | None = None

    @property
    def state(self) -> State:
        with self._lock:
            return self._state

    def transition(self, target: State) -> None:
        with self._lock:
            if target not in _TRANSITIONS[self._state]:
                raise LifecycleError(f"cannot move from {self._state.value} to {target.value}")
            previous, self._state = self._state, target
        logger.info("server_state_changed", previous=previous.value, state=target.value)

    def stop(self, forced: bool) -> None:
        self.drain_forced = forced
        self.transition(State.STOPPED)


class LifecycleServer(uvicorn.Server):
    """uvicorn server that reports its progress through a `Lifecycle`.

    uvicorn already stops accepting connections on SIGINT/SIGTERM and bounds the
    drain by `timeout_graceful_shutdown`, cancelling whatever is still running.
    """

    def __init__(self, config: uvicorn.Config, lifecycle: Lifecycle | None = None) -> None:
        super().__init__(config)
        self.lifecycle = lifecycle or Lifecycle()

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started and not self.should_exit:
            self.lifecycle.transition(State.LISTENING)
            logger.info("server_listening", host=self.config.host, port=self.config.port)

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        if self.lifecycle.state is State.LISTENING:
            logger.info("shutdown_signal_received", signal=int(sig))
            self.lifecycle.transition(State.SHUTTING_DOWN)
        super().handle_exit(sig, frame)

    async def shutdown(self, sockets=None) -> None:
        if self.lifecycle.state is State.LISTENING:
            self.lifecycle.transition(State.SHUTTING_DOWN)

        timeout = self.config.timeout_graceful_shutdown
        start = perf_counter()
        await super().shutdown(sockets=sockets)
        elapsed = perf_counter() - start

        forced = self.force_exit or (timeout is not None and elapsed >= timeout)
        if forced:
            logger.warning("server_forced_shutdown", elapsed_s=round(elapsed, 3), timeout_s=timeout)
        else:
            logger.info("server_shutdown_complete", elapsed_s=round(elapsed, 3))
        self.lifecycle.stop(forced=forced)


def build_server(settings: Settings) -> LifecycleServer:
    config = uvicorn.Config(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        timeout_keep_alive=settings.idle_timeout,
        timeout_graceful_shutdown=settings.shutdown_timeout,
        log_config=None,
        access_log=False,
    )
    return LifecycleServer(config)


def run(settings: Settings | None = None) -> Lifecycle:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    logger.info("service_starting", store_backend=settings.store_backend)

    server = build_server(settings)
    server.run()
    if server.lifecycle.state is not State.STOPPED:
        server.lifecycle.stop(forced=False)
    return server.lifecycle


def check_health(settings: Settings | None = None, timeout: float = 3.0) -> bool:
    """Probe /health on the local listener; used as the container health check."""

    settings = settings or get_settings()
    host = "127.0.0.1" if settings.host in {"0.0.0.0", "::", ""} else settings.host
    try:
        resp = httpx.get(f"http://{host}:{settings.port}/health", timeout=timeout)
    except httpx.HTTPError as exc:
        logger.error("health_check_failed", error=str(exc))
        return False
    return resp.status_code == 200
