"""Tests for logging utilities and sensitive data redaction."""

from __future__ import annotations

import json
import logging

import pytest

from dispensa.logging_utils import configure_logging


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord(
        name="dispensa.test.redaction",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )


def _format(record: logging.LogRecord) -> str:
    handler = logging.getLogger().handlers[0]
    for filter_ in handler.filters:
        filter_.filter(record)
    return handler.format(record)


@pytest.mark.parametrize("fmt", ["plain", "json"])
def test_sensitive_data_filter_redacts_tokens(fmt):
    secret = "top-secret-token"
    configure_logging("INFO", fmt, [secret])

    formatted = _format(_record("Authorization header Bearer %s", secret))

    assert secret not in formatted
    assert "[redacted]" in formatted


def test_gemini_key_query_parameter_redacted():
    configure_logging("INFO", "plain", [])

    formatted = _format(
        _record(
            "POST %s",
            "https://generativelanguage.googleapis.com/v1beta/models/m:generateContent?key=AIzaSecret",
        )
    )

    assert "AIzaSecret" not in formatted
    assert "?key=[redacted]" in formatted


def test_json_format_includes_request_id():
    configure_logging("INFO", "json", [])
    record = _record("HTTP GET /health status=200")
    record.request_id = "req-1"

    payload = json.loads(_format(record))

    assert payload["message"] == "HTTP GET /health status=200"
    assert payload["request_id"] == "req-1"
    assert payload["logger"] == "dispensa.test.redaction"
