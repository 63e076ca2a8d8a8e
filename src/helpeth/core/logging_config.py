"""
helpeth - Structured Logging Configuration

Diagnostics are written as JSON lines to stderr so they never mix with the
command output on stdout:
- JSON format for easy parsing
- Optional rotating log file (--log-file)
- Default level WARNING, so a normal run prints no log lines

Usage:
    from helpeth.core.logging_config import setup_logging

    logger = setup_logging(level="DEBUG", log_file="helpeth.log")
    logger.debug("Keystore decrypted", extra={"event": "keystore.loaded"})
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from helpeth.core.config import DEFAULT_LOG_LEVEL

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding timestamp, service and source location fields.
    """

    def __init__(
        self,
        fmt: str = "%(timestamp)s %(level)s %(name)s %(message)s",
        timestamp: bool = True,
        service_name: str = "helpeth",
    ):
        super().__init__(fmt=fmt)
        self.add_timestamp = timestamp
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        """Add custom fields to log record."""
        super().add_fields(log_record, record, message_dict)

        if self.add_timestamp and not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        log_record["service"] = self.service_name

        if not log_record.get("level"):
            log_record["level"] = record.levelname.lower()

        log_record["source"] = {
            "function": record.funcName,
            "module": record.module,
            "line": record.lineno,
        }


def setup_logging(
    name: str = "helpeth",
    log_file: Optional[str] = None,
    level: str = DEFAULT_LOG_LEVEL,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure JSON logging for the helpeth logger hierarchy.

    Calling it again replaces the previous handlers, so each command
    invocation starts from a clean configuration.

    Args:
        name: Root logger name of the package
        log_file: Path to an additional JSON log file (optional)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger(name)
    logger.setLevel(numeric_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = CustomJsonFormatter(service_name=name.split(".")[0])

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
