"""
Structured logging module.

Provides JSON and console logging with per-operation context
(operation, client request id, message id) and redaction of credentials.
"""

from ecs_email.logging.context import (
    clear_log_context,
    get_log_context,
    operation_context,
    set_log_context,
)
from ecs_email.logging.formatters import ConsoleFormatter, JSONFormatter, sanitize
from ecs_email.logging.setup import get_logger, setup_logging
from ecs_email.logging.utilities import log_exception, log_with_context

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    "sanitize",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "operation_context",
    # Utilities
    "log_with_context",
    "log_exception",
]
