"""Logging setup and configuration."""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from ecs_email.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG
DEFAULT_ROTATION_WHEN = "midnight"
DEFAULT_BACKUP_COUNT = 7

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
    "msal",
    "urllib3",
    "aiohttp",
    "asyncio",
]


def setup_logging(
    name: str = "ecs_email",
    log_file: Path | None = None,
    json_format: bool = True,
    console_level: int = DEFAULT_CONSOLE_LEVEL,
    file_level: int = DEFAULT_FILE_LEVEL,
    rotation_when: str = DEFAULT_ROTATION_WHEN,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
) -> logging.Logger:
    """
    Configure root logging with a console handler and an optional rotating file.

    Intended for applications and the example harness. The library itself
    only creates module loggers and never configures handlers on import.

    Args:
        name: Logger name to return
        log_file: Optional log file path; rotated by time when set
        json_format: Use JSON format for the file handler (default: True)
        console_level: Console handler level (default: INFO)
        file_level: File handler level (default: DEBUG)
        rotation_when: When to rotate the file - 'midnight', 'H', ... (default: midnight)
        backup_count: Number of rotated files to keep (default: 7)
        suppress_noisy: Quiet down Azure SDK and HTTP client loggers

    Returns:
        Configured logger instance
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = TimedRotatingFileHandler(
            log_file,
            when=rotation_when,
            backupCount=backup_count,
            encoding="utf-8",
            utc=True,
        )
        file_handler.setLevel(file_level)
        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
                )
            )
        root_logger.addHandler(file_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Use this instead of logging.getLogger() to ensure consistent naming.
    """
    return logging.getLogger(name)
