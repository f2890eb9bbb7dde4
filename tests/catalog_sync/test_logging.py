"""Tests for structured logging setup."""

from __future__ import annotations

import json
import logging

import pytest

from CatalogSync.config import LoggingConfig
from CatalogSync.logging_config import JSONFormatter, generate_correlation_id, setup_logging


@pytest.fixture
def restore_logger():
    logger = logging.getLogger("CatalogSync")
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


def test_correlation_ids_are_unique():
    ids = {generate_correlation_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(i) == 12 for i in ids)


def test_json_formatter_includes_extra_fields():
    record = logging.makeLogRecord(
        {
            "name": "CatalogSync.test",
            "levelname": "INFO",
            "msg": "synchronized %s",
            "args": ("study1",),
            "correlation_id": "abc123",
            "extra_fields": {"study": "study1"},
        }
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "synchronized study1"
    assert payload["correlation_id"] == "abc123"
    assert payload["study"] == "study1"
    assert payload["timestamp"].endswith("Z")


def test_setup_is_idempotent(restore_logger):
    setup_logging(LoggingConfig(level="DEBUG"))
    logger = setup_logging(LoggingConfig(level="WARNING"))

    managed = [h for h in logger.handlers if getattr(h, "_catalogsync_managed", False)]
    assert len(managed) == 1
    assert logger.level == logging.WARNING


def test_json_file_handler(tmp_path, restore_logger):
    logger = setup_logging(LoggingConfig(json_file=True, log_dir=str(tmp_path)))

    logging.getLogger("CatalogSync.metadata").info(
        "hello", extra={"extra_fields": {"study": "study1"}}
    )
    for handler in logger.handlers:
        handler.flush()

    (log_file,) = tmp_path.glob("catalogsync-*.jsonl")
    line = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert line["message"] == "hello"
    assert line["study"] == "study1"
