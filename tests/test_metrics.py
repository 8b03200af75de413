from user_service.observability.metrics import Metrics


async def test_metrics_endpoint_exposes_text_format(api_client) -> None:
    await api_client.get("/user?id=1")

    resp = await api_client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")

    body = resp.text
    for name in (
        "http_requests_total",
        "http_request_duration_seconds_bucket",
        "http_requests_in_flight",
        "users_total 3.0",
        "user_lookups_total",
        "rate_limit_hits_total",
        "panic_recoveries_total",
        "last_request_time_seconds",
        "uptime_seconds_total",
    ):
        assert name in body
    assert 'http_requests_total{method="GET",endpoint="/user",status_code="200"} 1.0' in body


def test_metrics_instances_do_not_share_state() -> None:
    first = Metrics()
    second = Metrics()

    first.record_rate_limit_hit()
    first.record_request("GET", "/users", 200, 0.01)

    assert first.value("rate_limit_hits_total") == 1
    assert second.value("rate_limit_hits_total") == 0
    assert second.value("http_requests_total", {"method": "GET", "endpoint": "/users", "status_code": "200"}) == 0


def test_in_flight_gauge_tracks_deltas() -> None:
    metrics = Metrics()
    metrics.record_request_in_flight(1)
    metrics.record_request_in_flight(1)
    metrics.record_request_in_flight(-1)
    assert metrics.value("http_requests_in_flight") == 1


def test_uptime_ticks() -> None:
    metrics = Metrics()
    metrics.tick_uptime()
    metrics.tick_uptime()
    assert metrics.value("uptime_seconds_total") == 2
