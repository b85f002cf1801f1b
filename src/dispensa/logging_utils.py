"""Logging configuration with redaction of tokens and API keys."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Iterable, List, Sequence

REDACTED = "[redacted]"

# Gemini takes its API key as a ``key`` query parameter, which httpx logs verbatim.
_MASK_PATTERNS = (
    re.compile(r"(Bearer\s+)([A-Za-z0-9\-._~+/=]+)", re.IGNORECASE),
    re.compile(r"([?&]key=)([^&\s\"']+)", re.IGNORECASE),
    re.compile(r"(api_token=)([^&\s]+)", re.IGNORECASE),
    re.compile(r"(X-API-Key[=:]\s*)([^&\s]+)", re.IGNORECASE),
)

_EXTRA_FIELDS = ("request_id", "username")


def _mask_known_patterns(value: str) -> str:
    for pattern in _MASK_PATTERNS:
        value = pattern.sub(r"\1" + REDACTED, value)
    return value


def _redact(message: str, secrets: Sequence[str]) -> str:
    redacted = _mask_known_patterns(message)
    for secret in secrets:
        redacted = redacted.replace(secret, REDACTED)
    return redacted


class SensitiveDataFilter(logging.Filter):
    """Filter that redacts bearer tokens, API keys and configured secrets."""

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self._secrets: List[str] = [secret.strip() for secret in secrets if secret and secret.strip()]

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - standard interface
        message = record.getMessage()
        redacted = _redact(message, self._secrets)
        if redacted != message:
            record.msg = redacted
            record.args = ()

        for key in _EXTRA_FIELDS:
            value = getattr(record, key, None)
            if isinstance(value, str):
                setattr(record, key, _redact(value, self._secrets))

        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in _EXTRA_FIELDS:
            if value := getattr(record, key, None):
                payload[key] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level_name: str, fmt: str, secrets: Iterable[str]) -> None:
    """Configure root logging with optional JSON output and secret redaction."""

    numeric_level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler()
    if (fmt or "plain").lower() == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    handler.setFormatter(formatter)

    filter_ = SensitiveDataFilter(secrets)
    handler.addFilter(filter_)

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(numeric_level)

    logging.captureWarnings(True)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx"):
        logger = logging.getLogger(name)
        logger.handlers = []
        logger.propagate = True
        logger.addFilter(filter_)
        if name != "httpx":
            logger.setLevel(numeric_level)
