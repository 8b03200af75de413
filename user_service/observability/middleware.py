from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any

import structlog
from starlette.datastructures import MutableHeaders
from starlette.responses import JSONResponse, Response

from user_service.observability.metrics import Metrics
from user_service.observability.rate_limit import TokenBucket

Message = dict[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Request-ID",
}


@dataclass(frozen=True)
class ObservedResponse:
    """What a stage saw go out on the wire for this request."""

    status_code: int


@dataclass
class RequestContext:
    scope: dict[str, Any]
    receive: Receive
    send: Send
    method: str
    path: str
    remote_addr: str
    request_id: str = ""
    response_headers: dict[str, str] = field(default_factory=dict)
    status_code: int | None = None

    @classmethod
    def from_scope(cls, scope: dict[str, Any], receive: Receive, send: Send) -> "RequestContext":
        client = scope.get("client")
        remote_addr = f"{client[0]}:{client[1]}" if client else "unknown"
        return cls(
            scope=scope,
            receive=receive,
            send=send,
            method=scope.get("method", "GET"),
            path=scope.get("path", "/"),
            remote_addr=remote_addr,
        )

    @property
    def response_started(self) -> bool:
        return self.status_code is not None

    async def send_message(self, message: Message) -> None:
        if message.get("type") == "http.response.start":
            self.status_code = int(message.get("status", 500))
            headers = MutableHeaders(scope=message)
            for name, value in self.response_headers.items():
                headers[name] = value
        await self.send(message)

    async def respond(self, response: Response) -> ObservedResponse:
        await response(self.scope, self.receive, self.send_message)
        return ObservedResponse(status_code=response.status_code)

    async def respond_error(self, status_code: int, detail: str) -> ObservedResponse:
        return await self.respond(JSONResponse({"detail": detail}, status_code=status_code))


CallNext = Callable[[RequestContext], Awaitable[ObservedResponse]]
Stage = Callable[[RequestContext, CallNext], Awaitable[ObservedResponse]]


class RequestIdStage:
    async def __call__(self, ctx: RequestContext, call_next: CallNext) -> ObservedResponse:
        ctx.request_id = str(uuid.uuid4())
        ctx.response_headers["X-Request-ID"] = ctx.request_id
        structlog.contextvars.bind_contextvars(
            request_id=ctx.request_id,
            path=ctx.path,
            method=ctx.method,
        )
        try:
            return await call_next(ctx)
        finally:
            structlog.contextvars.clear_contextvars()


class RecoveryStage:
    """Turns any exception from the inner stages into a 500."""

    def __init__(self, metrics: Metrics) -> None:
        self.metrics = metrics
        self.logger = structlog.get_logger("recovery")

    async def __call__(self, ctx: RequestContext, call_next: CallNext) -> ObservedResponse:
        try:
            return await call_next(ctx)
        except Exception:
            self.logger.exception(
                "panic_recovered",
                path=ctx.path,
                remote_addr=ctx.remote_addr,
                request_id=ctx.request_id or None,
            )
            self.metrics.record_panic_recovery()
            self.metrics.record_error("panic", ctx.path)
            if ctx.response_started:
                # Headers already went out; the server closes the connection.
                return ObservedResponse(status_code=500)
            return await ctx.respond_error(500, "internal server error")


class CorsStage:
    async def __call__(self, ctx: RequestContext, call_next: CallNext) -> ObservedResponse:
        ctx.response_headers.update(CORS_HEADERS)
        if ctx.method == "OPTIONS":
            return await ctx.respond(Response(status_code=200))
        return await call_next(ctx)


class RateLimitStage:
    def __init__(self, bucket: TokenBucket, metrics: Metrics) -> None:
        self.bucket = bucket
        self.metrics = metrics
        self.logger = structlog.get_logger("rate_limit")

    async def __call__(self, ctx: RequestContext, call_next: CallNext) -> ObservedResponse:
        if not self.bucket.allow():
            self.logger.warning("rate_limit_exceeded", remote_addr=ctx.remote_addr)
            self.metrics.record_rate_limit_hit()
            return await ctx.respond_error(429, "rate limit exceeded")
        return await call_next(ctx)


class MetricsStage:
    def __init__(self, metrics: Metrics) -> None:
        self.metrics = metrics

    async def __call__(self, ctx: RequestContext, call_next: CallNext) -> ObservedResponse:
        start = perf_counter()
        self.metrics.record_request_in_flight(1)
        try:
            self.metrics.update_last_request_time()
            observed = await call_next(ctx)
            self.metrics.record_request(ctx.method, ctx.path, observed.status_code, perf_counter() - start)
            return observed
        finally:
            self.metrics.record_request_in_flight(-1)


class AccessLogStage:
    def __init__(self) -> None:
        self.logger = structlog.get_logger("access")

    async def __call__(self, ctx: RequestContext, call_next: CallNext) -> ObservedResponse:
        start = perf_counter()
        observed = await call_next(ctx)
        elapsed_ms = (perf_counter() - start) * 1000.0
        fields: dict[str, Any] = {
            "method": ctx.method,
            "path": ctx.path,
            "status_code": observed.status_code,
            "elapsed_ms": round(elapsed_ms, 2),
            "remote_addr": ctx.remote_addr,
        }
        if ctx.request_id:
            fields["request_id"] = ctx.request_id
        self.logger.info("http_request", **fields)
        return observed


def default_stages(metrics: Metrics, bucket: TokenBucket) -> list[Stage]:
    """The fixed production order, outermost first."""

    return [
        RequestIdStage(),
        RecoveryStage(metrics),
        CorsStage(),
        RateLimitStage(bucket, metrics),
        MetricsStage(metrics),
        AccessLogStage(),
    ]


class MiddlewareChain:
    """Runs `stages` in order around the wrapped ASGI app."""

    def __init__(self, app: Callable[..., Any], stages: Sequence[Stage]) -> None:
        self.app = app
        self.stages = list(stages)

    async def __call__(self, scope: dict[str, Any], receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext.from_scope(scope, receive, send)
        await self._dispatch(0, ctx)

    async def _dispatch(self, index: int, ctx: RequestContext) -> ObservedResponse:
        if index == len(self.stages):
            return await self._invoke_app(ctx)

        async def call_next(next_ctx: RequestContext) -> ObservedResponse:
            return await self._dispatch(index + 1, next_ctx)

        return await self.stages[index](ctx, call_next)

    async def _invoke_app(self, ctx: RequestContext) -> ObservedResponse:
        await self.app(ctx.scope, ctx.receive, ctx.send_message)
        return ObservedResponse(status_code=ctx.status_code if ctx.status_code is not None else 500)
