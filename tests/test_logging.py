import json
import logging

import pytest
import structlog

from user_service.observability import logging as logging_module
from user_service.observability.logging import add_service, configure_logging, parse_log_level

_LOGGER_NAMES = ("", "uvicorn", "uvicorn.error", "uvicorn.access")


@pytest.fixture
def fresh_logging(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(logging_module, "_CONFIGURED", False)
    saved_config = structlog.get_config()
    saved = [
        (logger, list(logger.handlers), logger.level, logger.propagate)
        for logger in (logging.getLogger(name or None) for name in _LOGGER_NAMES)
    ]

    yield

    structlog.configure(**saved_config)
    for logger, handlers, level, propagate in saved:
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("debug", logging.DEBUG),
        ("INFO", logging.INFO),
        (" warning ", logging.WARNING),
        ("error", logging.ERROR),
        ("chatty", logging.INFO),
        ("", logging.INFO),
        (logging.ERROR, logging.ERROR),
    ],
)
def test_parse_log_level(raw, expected: int) -> None:
    assert parse_log_level(raw) == expected


def test_add_service_keeps_explicit_value() -> None:
    processor = add_service("user-service")
    assert processor(None, "info", {"event": "x"})["service"] == "user-service"
    assert processor(None, "info", {"event": "x", "service": "other"})["service"] == "other"


def test_configure_logging_emits_json_with_service(fresh_logging, capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("debug")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("uvicorn.error").level == logging.DEBUG

    structlog.get_logger("tests").info("user_added", user_id=7)
    record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert record["event"] == "user_added"
    assert record["service"] == "user-service"
    assert record["user_id"] == 7
    assert record["level"] == "info"
    assert record["logger"] == "tests"


def test_repeat_configuration_only_changes_level(fresh_logging) -> None:
    configure_logging("info")
    handlers = list(logging.getLogger().handlers)

    configure_logging("warning")

    assert logging.getLogger().handlers == handlers
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("uvicorn").level == logging.WARNING
