# common/logging_config.py
# -*- coding: utf-8 -*-
"""
Logging configuration for the engine installer.

The installer logs through the standard library. Console output is either
human-readable text or one JSON object per record, so unattended runs (CI,
provisioning tools) can parse what happened.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "message",
        "asctime",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON with a stable set of keys:
    timestamp, level, logger, message and any ``extra`` fields.
    """

    def __init__(self, app_name: str = "engine-install"):
        super().__init__()
        self.app_name = app_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "app": self.app_name,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "text",
    log_file_path: Optional[str] = None,
    app_name: str = "engine-install",
) -> logging.Logger:
    """
    Configure the root logger once per run.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Unknown values
            fall back to INFO.
        log_format: "text" for human-readable console output, "json" for
            one JSON object per line.
        log_file_path: Also write JSON records to this file when given.
        app_name: Name of the application logger returned.

    Returns:
        The application logger.
    """
    numeric_level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    json_formatter = JSONFormatter(app_name)
    console_formatter = logging.Formatter("%(message)s")
    if numeric_level <= logging.DEBUG:
        console_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    if log_format == "json":
        console_handler.setFormatter(json_formatter)
    else:
        console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_file_path:
        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(app_name)
    logger.debug(
        "Logging initialized",
        extra={
            "log_level": str(log_level).upper(),
            "log_format": log_format,
            "file_enabled": bool(log_file_path),
        },
    )
    return logger
