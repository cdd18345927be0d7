"""
Logging setup for ChatRewind.

Configures the ``chatrewind`` logger hierarchy with a console handler and an
optional rotating file handler. Settings come from ``chatrewind.config``.
"""

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from typing import Optional

from chatrewind.config import Settings, settings as default_settings

STANDARD_FORMAT = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_MARKER = "_chatrewind_handler"


class JsonFormatter(logging.Formatter):
    """Formats each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _build_formatter(config: Settings) -> logging.Formatter:
    if config.log_format == "json":
        return JsonFormatter()
    return logging.Formatter(fmt=STANDARD_FORMAT, datefmt=DATE_FORMAT)


def setup_logging(context: str = "app", config: Optional[Settings] = None) -> logging.Logger:
    """
    Configure logging for a ChatRewind entry point.

    Safe to call more than once: handlers installed by a previous call are
    replaced rather than stacked.

    Args:
        context: Name of the entry point ("cli", "api"), used for the log file name
        config: Settings to use (defaults to the global settings)

    Returns:
        The configured ``chatrewind`` package logger

    Raises:
        PermissionError: If file logging is enabled and the log directory
            cannot be created
    """
    config = config or default_settings
    package_logger = logging.getLogger("chatrewind")
    package_logger.setLevel(config.log_level.upper())

    for handler in list(package_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            package_logger.removeHandler(handler)
            handler.close()

    formatter = _build_formatter(config)

    if config.log_console_enabled:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        setattr(console_handler, _HANDLER_MARKER, True)
        package_logger.addHandler(console_handler)

    if config.log_file_enabled:
        log_dir = config.log_directory
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{context}.log",
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARKER, True)
        package_logger.addHandler(file_handler)

    package_logger.propagate = False
    return package_logger
