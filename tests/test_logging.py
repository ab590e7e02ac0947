import json
import logging

import httpx

from insider_monitor.core.logging_config import JsonFormatter, build_logging_config, parse_event
from insider_monitor.http_logging import redacted_url
from insider_monitor.request_logging import request_log_level


def test_parse_event_splits_key_value_pairs():
    event, fields = parse_event("refresh_completed name=polymarket duration_ms=12 stray")
    assert event == "refresh_completed"
    assert fields == {"name": "polymarket", "duration_ms": "12"}
    assert parse_event("app_started") == ("app_started", {})


def test_json_formatter_emits_event_fields():
    record = logging.makeLogRecord(
        {
            "name": "insider_monitor.storage",
            "levelname": "INFO",
            "levelno": logging.INFO,
            "msg": "storage_selected mode=%s",
            "args": ("mock",),
        }
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["event"] == "storage_selected"
    assert payload["fields"] == {"mode": "mock"}
    assert payload["message"] == "storage_selected mode=mock"
    assert "extra" not in payload


def test_noisy_libraries_are_quiet_unless_debug():
    info = build_logging_config(logging.INFO, json_output=True)
    assert info["loggers"]["httpx"]["level"] == logging.WARNING
    assert info["loggers"]["uvicorn.access"]["level"] == logging.WARNING
    assert info["handlers"]["default"]["formatter"] == "json"

    debug = build_logging_config(logging.DEBUG, json_output=False)
    assert debug["loggers"]["sqlalchemy.engine"]["level"] == logging.DEBUG
    assert debug["loggers"]["uvicorn.access"]["level"] == logging.INFO
    assert debug["handlers"]["default"]["formatter"] == "plain"


def test_request_log_levels():
    assert request_log_level("/api/wallets", 200) == logging.INFO
    assert request_log_level("/health", 200) == logging.DEBUG
    assert request_log_level("/health", 503) == logging.WARNING


def test_api_key_is_redacted_from_logged_urls():
    url = redacted_url(httpx.URL("https://fmp.test/api/v3/earning_calendar?from=2026-10-19&apikey=secret"))
    assert "secret" not in str(url)
    assert url.params["from"] == "2026-10-19"
    plain = httpx.URL("https://gamma.test/markets?limit=5")
    assert redacted_url(plain) == plain
