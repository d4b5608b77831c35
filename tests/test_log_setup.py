"""Tests for logging setup."""

import json
import logging

import pytest
from rich.logging import RichHandler

from rethinkdb_exporter.log_setup import JsonFormatter, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def test_json_output(restore_root_logger):
    setup_logging(debug=True, json_output=True)

    root = restore_root_logger
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonFormatter)
    assert root.level == logging.DEBUG


def test_console_output(restore_root_logger):
    setup_logging()

    root = restore_root_logger
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], RichHandler)
    assert root.level == logging.INFO


def test_json_formatter_fields():
    record = logging.LogRecord(
        "rethinkdb_exporter.scrape", logging.WARNING, __file__, 1, "Error while processing stat: %s", ("x",), None
    )

    data = json.loads(JsonFormatter().format(record))

    assert data["level"] == "WARNING"
    assert data["logger"] == "rethinkdb_exporter.scrape"
    assert data["msg"] == "Error while processing stat: x"
    assert "error" not in data
