"""
Unit tests for logging configuration

Tests formatters and setup_logging.
"""

import json
import logging
import logging.handlers
import os
import tempfile
from unittest.mock import patch

from tablediff.utils.logging import (
    ConsoleFormatter,
    JSONFormatter,
    get_logger,
    setup_logging,
)


def _record(msg="Diff complete", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="tablediff.diff",
        level=level,
        pathname="/app/tablediff/diff/differ.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Test JSONFormatter class"""

    def test_init_with_defaults(self):
        formatter = JSONFormatter()

        assert formatter.app_name == "tablediff"
        assert formatter.hostname is not None

    def test_init_without_hostname(self):
        formatter = JSONFormatter(include_hostname=False, app_name="test-app")

        assert formatter.hostname is None
        assert formatter.app_name == "test-app"

    def test_format_basic_log_record(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "tablediff.diff"
        assert data["message"] == "Diff complete"
        assert data["app"] == "tablediff"
        assert data["source"]["line"] == 42
        assert "timestamp" in data
        assert "hostname" in data

    def test_format_without_hostname(self):
        data = json.loads(JSONFormatter(include_hostname=False).format(_record()))
        assert "hostname" not in data

    def test_format_with_exception_info(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            import sys
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad row"
        assert isinstance(data["exception"]["traceback"], list)

    def test_format_with_extra_context(self):
        record = _record()
        record.table = "customers"
        record.changed = 3

        data = json.loads(JSONFormatter().format(record))

        assert data["context"] == {"table": "customers", "changed": 3}

    def test_format_excludes_internal_fields(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert "context" not in data


class TestConsoleFormatter:
    """Test ConsoleFormatter class"""

    def test_without_colors(self):
        formatter = ConsoleFormatter(use_colors=False)

        output = formatter.format(_record())

        assert "[INFO] tablediff.diff: Diff complete" in output
        assert "\033[" not in output

    @patch('sys.stderr.isatty', return_value=True)
    def test_with_colors_on_tty(self, mock_isatty):
        formatter = ConsoleFormatter(use_colors=True)
        record = _record(level=logging.ERROR)

        output = formatter.format(record)

        assert "\033[31m" in output
        assert record.levelname == "ERROR"

    def test_extra_context_appended(self):
        record = _record()
        record.table = "customers"

        output = ConsoleFormatter(use_colors=False).format(record)

        assert output.endswith("[table=customers]")


class TestSetupLogging:
    """Test setup_logging function"""

    def teardown_method(self):
        root_logger = logging.getLogger()
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers.clear()
        root_logger.setLevel(logging.WARNING)

    def test_defaults(self):
        setup_logging()

        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, ConsoleFormatter)

    def test_invalid_level_defaults_to_info(self):
        setup_logging(level="INVALID")
        assert logging.getLogger().level == logging.INFO

    def test_json_console(self):
        setup_logging(level="DEBUG", json_format=True)

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)

    def test_file_handler_creates_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "logs", "tablediff.log")

            setup_logging(log_file=log_file, console_output=False)

            handlers = logging.getLogger().handlers
            assert len(handlers) == 1
            assert isinstance(handlers[0], logging.handlers.RotatingFileHandler)
            assert os.path.exists(log_file)
            handlers[0].close()

    def test_clears_existing_handlers(self):
        root_logger = logging.getLogger()
        root_logger.addHandler(logging.StreamHandler())
        root_logger.addHandler(logging.StreamHandler())

        setup_logging()

        assert len(root_logger.handlers) == 1

    def test_quiets_noisy_loggers(self):
        setup_logging(level="DEBUG")
        assert logging.getLogger("opentelemetry").level == logging.WARNING

    def test_get_logger(self):
        assert get_logger("tablediff.test").name == "tablediff.test"
