from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class Metrics:
    """Prometheus collectors for one process, bound to an explicit registry.

    Build one at startup and hand it to every component that records
    measurements; tests build their own so counts never leak between cases.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        # HTTP request metrics
        self.requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests processed",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )
        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry,
        )
        self.requests_in_flight = Gauge(
            "http_requests_in_flight",
            "Number of HTTP requests currently being processed",
            registry=self.registry,
        )

        # Business metrics
        self.users_total = Gauge(
            "users_total",
            "Total number of users in the system",
            registry=self.registry,
        )
        self.user_lookups = Counter(
            "user_lookups_total",
            "Total number of user lookup operations",
            ["result"],
            registry=self.registry,
        )
        self.errors = Counter(
            "errors_total",
            "Total number of errors by type",
            ["type", "endpoint"],
            registry=self.registry,
        )

        # System metrics
        self.rate_limit_hits = Counter(
            "rate_limit_hits_total",
            "Total number of rate limit violations",
            registry=self.registry,
        )
        self.panic_recoveries = Counter(
            "panic_recoveries_total",
            "Total number of recovered handler failures",
            registry=self.registry,
        )
        self.last_request_time = Gauge(
            "last_request_time_seconds",
            "Unix timestamp of the last request",
            registry=self.registry,
        )
        self.uptime = Counter(
            "uptime_seconds_total",
            "Total uptime in seconds",
            registry=self.registry,
        )

    def record_request(self, method: str, endpoint: str, status_code: int, duration_s: float) -> None:
        self.requests_total.labels(method, endpoint, str(status_code)).inc()
        self.request_duration.labels(method, endpoint).observe(duration_s)

    def record_request_in_flight(self, delta: float) -> None:
        self.requests_in_flight.inc(delta)

    def set_users_total(self, count: int) -> None:
        self.users_total.set(count)

    def record_user_lookup(self, result: str) -> None:
        self.user_lookups.labels(result).inc()

    def record_error(self, error_type: str, endpoint: str) -> None:
        self.errors.labels(error_type, endpoint).inc()

    def record_rate_limit_hit(self) -> None:
        self.rate_limit_hits.inc()

    def record_panic_recovery(self) -> None:
        self.panic_recoveries.inc()

    def update_last_request_time(self) -> None:
        self.last_request_time.set_to_current_time()

    def tick_uptime(self, seconds: float = 1.0) -> None:
        self.uptime.inc(seconds)

    def value(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current sample value by exposition name (0.0 when never recorded)."""

        sample = self.registry.get_sample_value(name, labels or {})
        return 0.0 if sample is None else sample

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
