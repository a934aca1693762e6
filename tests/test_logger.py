"""Tests for structlog helpers and explicit logging configuration."""

import io
import json
import logging
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock
from uuid import UUID

import structlog

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import threadbox
from threadbox.config import LoggingSettings, load_logging_settings
from threadbox.utils import logger as logger_module
from threadbox.utils.logger import configure_logging, get_logger


def _reset_package_logger():
    package_logger = logging.getLogger("threadbox")
    for handler in list(package_logger.handlers):
        handler.close()
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
    logger_module._configured = False


class TestHostConfiguration(unittest.TestCase):
    """Using threadbox leaves a host application's structlog setup in place."""

    def setUp(self):
        self.buf = io.StringIO()
        structlog.configure(
            processors=[structlog.processors.JSONRenderer()],
            logger_factory=structlog.PrintLoggerFactory(file=self.buf),
        )

    def tearDown(self):
        structlog.reset_defaults()
        _reset_package_logger()

    def test_host_events_survive_mailbox_use(self):
        box = threadbox.Mailbox()
        box.add(threadbox.Email(id=UUID(int=1), timestamp=10))
        box.add(threadbox.Email(id=UUID(int=1), timestamp=10))
        get_logger("threadbox.tests").warning("tests.library_event")
        structlog.get_logger().info("host.event", source="host")
        self.assertIn("host.event", self.buf.getvalue())
        self.assertNotIn("tests.library_event", self.buf.getvalue())

    def test_host_events_survive_configure_logging(self):
        configure_logging(LoggingSettings(level="DEBUG"))
        structlog.get_logger().info("host.event")
        self.assertIn("host.event", self.buf.getvalue())

    def test_get_logger_does_not_configure_structlog(self):
        structlog.reset_defaults()
        get_logger("threadbox.tests").debug("tests.quiet_event")
        self.assertFalse(structlog.is_configured())


class TestLibraryEvents(unittest.TestCase):
    """Library events are ordinary stdlib records under the threadbox namespace."""

    def test_duplicate_insert_logged_at_debug(self):
        box = threadbox.Mailbox()
        msg = threadbox.Email(id=UUID(int=7), timestamp=10)
        box.add(msg)
        with self.assertLogs("threadbox.mailbox", level="DEBUG") as captured:
            self.assertFalse(box.add(msg))
        record = captured.records[-1]
        self.assertEqual(record.levelno, logging.DEBUG)
        self.assertEqual(record.getMessage(), "mailbox.add.duplicate")
        self.assertEqual(record.msg_id, str(msg.id))

    def test_skipped_row_logged_at_debug(self):
        rows = [
            {"id": "00000000-0000-0000-0000-000000000001", "timestamp": 1},
            {"id": "00000000-0000-0000-0000-000000000001", "timestamp": 1},
        ]
        with self.assertLogs("threadbox.email_parser", level="DEBUG") as captured:
            threadbox.build_mailbox(rows)
        skipped = [r for r in captured.records if r.getMessage() == "email_parser.duplicate_skipped"]
        self.assertEqual(len(skipped), 1)
        self.assertEqual(skipped[0].levelno, logging.DEBUG)

    def test_bound_context_becomes_extras(self):
        log = get_logger("threadbox.tests", component="mailbox")
        with self.assertLogs("threadbox.tests", level="INFO") as captured:
            log.info("tests.bound_event", value=3)
        record = captured.records[0]
        self.assertEqual(record.component, "mailbox")
        self.assertEqual(record.value, 3)


class TestConfigureLogging(unittest.TestCase):
    """configure_logging attaches handlers to the package logger only."""

    def setUp(self):
        _reset_package_logger()
        self.root_handlers = list(logging.getLogger().handlers)

    def tearDown(self):
        _reset_package_logger()

    def test_configures_package_logger_once(self):
        configure_logging(LoggingSettings(level="INFO"))
        package_logger = logging.getLogger("threadbox")
        self.assertFalse(package_logger.propagate)
        self.assertEqual(package_logger.level, logging.INFO)
        handlers = list(package_logger.handlers)
        self.assertEqual(len(handlers), 1)
        configure_logging(LoggingSettings(level="DEBUG"))
        self.assertEqual(package_logger.handlers, handlers)
        self.assertEqual(logging.getLogger().handlers, self.root_handlers)

    def test_verbose_forces_debug(self):
        configure_logging(LoggingSettings(level="ERROR", verbose=True))
        self.assertEqual(logging.getLogger("threadbox").level, logging.DEBUG)

    def test_jsonl_file_handler(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logs" / "threadbox.jsonl"
            configure_logging(LoggingSettings(level="DEBUG", file=str(path)))
            get_logger("threadbox.tests").info("tests.file_event", value=1)
            for handler in logging.getLogger("threadbox").handlers:
                handler.flush()
            lines = path.read_text(encoding="utf-8").splitlines()
            _reset_package_logger()
        entry = json.loads(lines[-1])
        self.assertEqual(entry["event"], "tests.file_event")
        self.assertEqual(entry["value"], 1)
        self.assertEqual(entry["level"], "info")

    def test_coerce_level(self):
        self.assertEqual(logger_module._coerce_level("DEBUG"), logging.DEBUG)
        self.assertEqual(logger_module._coerce_level("10"), 10)
        self.assertEqual(logger_module._coerce_level("nonsense"), logging.WARNING)


class TestLoadLoggingSettings(unittest.TestCase):
    """Settings come from the environment plus an explicitly loaded .env."""

    def test_reads_environment(self):
        env = {"LOG_LEVEL": "info", "VERBOSE_LOGGING": "TRUE", "LOG_FILE": " out.jsonl "}
        with mock.patch.dict(os.environ, env):
            settings = load_logging_settings(dotenv_path=Path("/nonexistent/.env"))
        self.assertEqual(settings, LoggingSettings(level="INFO", verbose=True, file="out.jsonl"))

    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = load_logging_settings(dotenv_path=Path("/nonexistent/.env"))
        self.assertEqual(settings, LoggingSettings())

    def test_dotenv_loaded_on_request_without_override(self):
        with tempfile.TemporaryDirectory() as tmp:
            dotenv_file = Path(tmp) / ".env"
            dotenv_file.write_text("LOG_LEVEL=DEBUG\nLOG_FILE=from-dotenv.jsonl\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {"LOG_LEVEL": "ERROR"}):
                os.environ.pop("LOG_FILE", None)
                settings = load_logging_settings(dotenv_path=dotenv_file)
        self.assertEqual(settings.level, "ERROR")
        self.assertEqual(settings.file, "from-dotenv.jsonl")


if __name__ == "__main__":
    unittest.main()
