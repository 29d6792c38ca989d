"""Log formatters for JSON and console output."""

import json
import logging
import re
import sys
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from ecs_email.logging.context import get_log_context


def json_serializer(obj: Any) -> Any:
    """Serialize datetimes as ISO 8601, enums by value, everything else as str."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


# Pattern to match sensitive query parameters
SENSITIVE_PARAMS_PATTERN = re.compile(
    r"([?&;])(sig|signature|token|key|accesskey|secret|password|auth)=[^&;\s]*",
    re.IGNORECASE,
)

# Credentials that can appear inside free-text messages
SENSITIVE_TEXT_PATTERNS = (
    (re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(Signature=)[A-Za-z0-9+/]+=*"), r"\1[REDACTED]"),
    (re.compile(r"(accesskey=)[^;\s]+", re.IGNORECASE), r"\1[REDACTED]"),
)


def sanitize(text: str) -> str:
    """Redact tokens, HMAC signatures, access keys and secret query parameters."""
    text = SENSITIVE_PARAMS_PATTERN.sub(r"\1\2=[REDACTED]", text)
    for pattern, replacement in SENSITIVE_TEXT_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    Sanitizes URLs and messages so tokens and signatures never reach logs.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        # HTTP
        "http_status",
        "http_method",
        "http_url",
        # Errors
        "error_category",
        "error_message",
        "error_code",
        "error",
        # Email
        "message_id",
        "email_status",
        "operation",
        # Auth
        "auth_mode",
        "credential_type",
        "tenant_id",
        "client_id",
        "expires_at",
        # Config
        "endpoint",
        "config_path",
    ]

    NUMERIC_FIELDS = {"http_status": int}

    # Fields that contain URLs and should be sanitized
    URL_FIELDS = ["http_url", "endpoint"]

    def _sanitize_value(self, key: str, value: Any) -> Any:
        if isinstance(value, str) and (key in self.URL_FIELDS or key.startswith("error")):
            return sanitize(value)
        return value

    def _ensure_type(self, field: str, value: Any) -> Any:
        if field not in self.NUMERIC_FIELDS or value is None:
            return value
        try:
            return self.NUMERIC_FIELDS[field](value)
        except (ValueError, TypeError):
            return None

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize(record.getMessage()),
        }

        for key, value in get_log_context().items():
            if value:
                log_entry[key] = value

        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = self._sanitize_value(field, self._ensure_type(field, value))

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": sanitize(str(exc_value)) if exc_value else None,
                "stacktrace": sanitize(self.formatException(record.exc_info)),
            }

        return json.dumps(log_entry, default=json_serializer, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter with color-coded log levels.

    Colors are auto-disabled when output is not a TTY (pipes, files).
    """

    # ANSI color codes
    COLORS = {
        logging.DEBUG: "\033[36m",  # Cyan
        logging.INFO: "\033[32m",  # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._use_colors = sys.stdout.isatty()

    def _format_level_name(self, record: logging.LogRecord) -> str:
        level_name = record.levelname
        color = self.COLORS.get(record.levelno, "") if self._use_colors else ""
        if not color:
            return level_name
        return f"{color}{level_name}{self.RESET}"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output with optional color coding."""
        log_context = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            self._format_level_name(record),
        ]
        if log_context["operation"]:
            parts.append(f"[{log_context['operation']}]")
        prefix = " - ".join(parts)

        tags = []
        request_id = log_context["client_request_id"]
        if request_id:
            tags.append(f"[{request_id[:8]}]")
        message_id = getattr(record, "message_id", None) or log_context["message_id"]
        if message_id:
            tags.append(f"[mid:{message_id[:8]}]")

        message = sanitize(record.getMessage())
        if tags:
            return f"{prefix} - {' '.join(tags)} {message}"
        return f"{prefix} - {message}"
