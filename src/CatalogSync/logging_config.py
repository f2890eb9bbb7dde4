"""
Structured Logging Utilities

Centralizes logging setup for CatalogSync: a console handler for operators
and an optional rotating JSON-lines file carrying the correlation id, study
and report fields that synchronization and build calls attach through
``extra={"extra_fields": {...}}``.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from CatalogSync.config.models import LoggingConfig

LOGGER_NAME = "CatalogSync"


def generate_correlation_id() -> str:
    """Create a short identifier linking the log entries of one call.

    Examples:
        >>> len(generate_correlation_id())
        12
    """
    return uuid.uuid4().hex[:12]


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs.

    Examples:
        >>> formatter = JSONFormatter()
        >>> isinstance(formatter.format(logging.makeLogRecord({'msg': 'test'})), str)
        True
    """

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_obj.update(extra_fields)
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def setup_logging(config: LoggingConfig, log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure handlers on the ``CatalogSync`` logger.

    Handlers installed by a previous call are replaced, so calling this twice
    never duplicates output.

    Args:
        config: Logging configuration (level, JSON file, rotation size)
        log_dir: Optional directory override for JSON log files

    Returns:
        The configured ``CatalogSync`` logger.

    Examples:
        >>> setup_logging(LoggingConfig(level="INFO")).name
        'CatalogSync'
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_catalogsync_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    stream_handler._catalogsync_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    target_dir = log_dir or (Path(config.log_dir) if config.log_dir else None)
    if config.json_file and target_dir is not None:
        target_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            target_dir / f"catalogsync-{today}.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=5,
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._catalogsync_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


__all__ = ["JSONFormatter", "generate_correlation_id", "setup_logging"]
