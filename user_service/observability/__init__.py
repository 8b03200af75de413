"""Observability helpers: structlog JSON logging, Prometheus metrics, the
request middleware chain and the shared token-bucket limiter.
"""
