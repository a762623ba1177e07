"""Logging setup, JSON formatting and secret masking.

Nothing that could carry a password, token or API key is ever logged in
clear text: structures go through ``mask_sensitive_data`` and free text
through ``filter_secrets`` before emission.
"""

import json
import logging
import re
import sys
from typing import Any

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MASK = "********"

SENSITIVE_FIELDS = frozenset(
    name.lower()
    for name in (
        "password",
        "currentPassword",
        "current_password",
        "newPassword",
        "new_password",
        "refreshToken",
        "refresh_token",
        "accessToken",
        "access_token",
        "token",
        "key",
        "api_key",
        "apiKey",
        "authorization",
        "cookie",
        "set-cookie",
        "frankenstack-api-key",
    )
)

SECRET_PATTERNS = [
    # Bearer credentials
    (re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/=-]+"), "Bearer [REDACTED]"),
    # JWTs anywhere in text
    (re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"), "[JWT]"),
    # Issued API keys
    (re.compile(r"\bnak_[0-9a-f]{16,}\b"), "[API_KEY]"),
]


def mask_sensitive_data(data: Any) -> Any:
    """Return a copy of ``data`` with sensitive fields masked at every depth.

    Args:
        data: Dict, list or scalar (e.g. a request body or headers)

    Returns:
        Masked copy; the input is not modified
    """
    if isinstance(data, dict):
        return {
            key: MASK
            if isinstance(key, str) and key.lower() in SENSITIVE_FIELDS
            else mask_sensitive_data(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [mask_sensitive_data(item) for item in data]
    return data


def filter_secrets(text: str) -> str:
    """Redact bearer credentials, JWTs and API keys from free text."""
    if not text:
        return text

    filtered = text
    for pattern, replacement in SECRET_PATTERNS:
        filtered = pattern.sub(replacement, filtered)
    return filtered


class JSONLogFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    EXTRA_FIELDS = (
        "request_id",
        "user_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "client_ip",
        "error_type",
        "headers",
        "body",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": filter_secrets(record.getMessage()),
        }

        for name in self.EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        if record.exc_info:
            log_data["exception"] = filter_secrets(self.formatException(record.exc_info))

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        json_format: Emit one JSON object per line
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Idempotent across repeated app creation (tests)
    for existing in list(root_logger.handlers):
        if getattr(existing, "_nest_auth", False):
            root_logger.removeHandler(existing)
    handler._nest_auth = True
    root_logger.addHandler(handler)
