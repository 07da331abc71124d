"""
Structured logging configuration for ticketrelay.

Notification payloads carry customer PII (names, phone numbers, email
addresses) and channel credentials (shared secrets, provider tokens).
Everything logged through this module is filtered so that none of it
reaches the log stream:
- Blocked fields are dropped from ``extra`` entirely
- Free text (msg, exc) is scrubbed of emails, phone numbers, keys and URLs
- Webhook URLs are reduced to their path

Usage:
    from ticketrelay.logging_config import setup_logging, get_logger

    setup_logging()  # Call once at startup
    logger = get_logger(__name__)
    logger.info("Ticket notification delivered", extra={"channel": "webhook"})
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

_URL_PATTERN = re.compile(r"(https?://[^\s\"'<>]+)")

_SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    # x-api-key header values and api_key=... pairs
    (re.compile(r"\b(x-api-key|api[_-]?key|apikey)[=:]\s*['\"]?[\w\-]+['\"]?", re.I), "[API_KEY]"),
    (re.compile(r"\b(bearer|token)[=:\s]+['\"]?[\w\-\.]+['\"]?", re.I), "[TOKEN]"),
    # Credential after an explicit separator, optionally behind a Basic/Bearer scheme
    (
        re.compile(
            r"\b(authorization|auth)\s*[=:]\s*['\"]?(?:(?:basic|bearer)\s+)?[\w\-\.+/=]+['\"]?",
            re.I,
        ),
        "[AUTH]",
    ),
    # Twilio account SIDs
    (re.compile(r"\bAC[0-9a-fA-F]{32}\b"), "[ACCOUNT_SID]"),
    (re.compile(r"\b[\w\.-]+@[\w\.-]+\.\w+\b"), "[EMAIL]"),
    # E.164 phone numbers, with or without the whatsapp: prefix
    (re.compile(r"(whatsapp:)?\+\d{7,15}\b"), "[PHONE]"),
]

# Fields that must never appear in logs
BLOCKED_FIELDS: frozenset[str] = frozenset(
    {
        # Credentials
        "api_key",
        "secret",
        "token",
        "password",
        "auth",
        "authorization",
        "credential",
        "account_sid",
        # Customer PII
        "email",
        "phone",
        "destination",
        "customer_name",
        # Headers
        "x-api-key",
    }
)

# Fields replaced by a placeholder (or normalized) instead of logged raw
HIGH_CARDINALITY_FIELDS: dict[str, str] = {
    "url": "endpoint",
    "body": "[BODY]",
    "payload": "[PAYLOAD]",
    "message": "[MESSAGE]",
}

_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)


def _normalize_url(url: str) -> str:
    """Extract the path from a URL, dropping host and query string."""
    parts = urlsplit(url)
    return parts.path or "/"


def _sanitize_url_in_text(match: re.Match[str]) -> str:
    path = _normalize_url(match.group(1))
    return path if path != "/" else "[URL]"


def _sanitize_text(text: str) -> str:
    """Scrub free-form text of URLs, credentials and PII."""
    if not text:
        return text

    result = _URL_PATTERN.sub(_sanitize_url_in_text, text)
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def _filter_log_record(record: dict[str, Any], *, _depth: int = 0) -> dict[str, Any]:
    """Filter blocked and high-cardinality fields from a log record.

    Nested dicts are filtered recursively up to depth 3.
    """
    if _depth > 3:
        return {"_truncated": "max depth exceeded"}

    filtered: dict[str, Any] = {}

    for key, value in record.items():
        key_lower = key.lower()

        # Exact and partial matches (customer_phone, n8n_shared_secret, ...)
        if any(blocked in key_lower for blocked in BLOCKED_FIELDS):
            continue

        if key_lower in HIGH_CARDINALITY_FIELDS:
            if key_lower == "url" and isinstance(value, str):
                filtered["endpoint"] = _normalize_url(value)
            else:
                filtered[key] = HIGH_CARDINALITY_FIELDS[key_lower]
            continue

        if isinstance(value, (int, float, bool, type(None))):
            filtered[key] = value
        elif isinstance(value, str):
            filtered[key] = _sanitize_text(value)
        elif isinstance(value, (list, tuple)):
            if len(value) <= 10:
                filtered[key] = list(value)
            else:
                filtered[key] = f"[list:{len(value)} items]"
        elif isinstance(value, dict):
            filtered[key] = _filter_log_record(value, _depth=_depth + 1)
        else:
            filtered[key] = _sanitize_text(str(value))

    return filtered


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_KEYS}


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Output format:
    {"ts":"2025-01-15T10:00:00.000+00:00","level":"INFO","logger":"module","msg":"...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": _sanitize_text(record.getMessage()),
        }

        if record.levelno >= logging.WARNING:
            log_dict["file"] = record.filename
            log_dict["line"] = record.lineno

        if record.exc_info:
            log_dict["exc"] = _sanitize_text(self.formatException(record.exc_info))

        extra = _extra_fields(record)
        if extra:
            log_dict.update(_filter_log_record(extra))

        return json.dumps(log_dict, default=str, ensure_ascii=False)


class SimpleFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname:8s} {record.name}: {_sanitize_text(record.getMessage())}"

        extra = _extra_fields(record)
        if extra:
            filtered = _filter_log_record(extra)
            if filtered:
                extra_str = " ".join(f"{k}={v}" for k, v in filtered.items())
                base = f"{base} | {extra_str}"

        return base


def setup_logging(
    *,
    level: int | str = logging.INFO,
    json_format: bool = True,
    stream: Any = None,
) -> None:
    """Configure logging for the process.

    Args:
        level: Log level (default INFO).
        json_format: Use JSON formatter (default True for production).
        stream: Output stream (default stderr).
    """
    if stream is None:
        stream = sys.stderr

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter() if json_format else SimpleFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # aiohttp logs full request URLs at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``."""
    return logging.getLogger(name)
