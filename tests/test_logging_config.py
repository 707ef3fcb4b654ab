# tests/test_logging_config.py

"""Tests for the per-run logging configuration."""

import logging
import threading
import unittest
from unittest.mock import patch

from price_tracker.config.logging_config import setup_logging
from price_tracker.config.settings import Settings


class TestLoggingConfig(unittest.TestCase):
    """Verify logging setup behaviour."""

    def setUp(self) -> None:
        """Clean up the price_tracker logger before each test."""
        self._clear_handlers()

    def tearDown(self) -> None:
        """Release file handles opened by setup_logging."""
        self._clear_handlers()

    @staticmethod
    def _clear_handlers() -> None:
        root_logger = logging.getLogger("price_tracker")
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)
        root_logger.setLevel(logging.NOTSET)

    def test_setup_creates_log_file(self) -> None:
        """setup_logging returns a path that exists on disk."""
        log_path = setup_logging()
        self.assertTrue(log_path.exists())
        self.assertEqual(log_path.parent.name, "logs")

    def test_log_file_naming_convention(self) -> None:
        """Log file name matches run_YYYYMMDD_HHMMSS.log format."""
        log_path = setup_logging()
        self.assertRegex(log_path.name, r"^run_\d{8}_\d{6}\.log$")

    def test_root_logger_has_handlers(self) -> None:
        """After setup, the price_tracker logger has at least 2 handlers."""
        setup_logging()
        root_logger = logging.getLogger("price_tracker")
        self.assertGreaterEqual(len(root_logger.handlers), 2)

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        """A second call keeps the handlers from the first."""
        setup_logging()
        count = len(logging.getLogger("price_tracker").handlers)
        setup_logging()
        self.assertEqual(
            len(logging.getLogger("price_tracker").handlers), count
        )

    def test_file_handler_level_debug(self) -> None:
        """File handler should be set to DEBUG level."""
        setup_logging()
        root_logger = logging.getLogger("price_tracker")
        file_handlers = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.FileHandler)
        ]
        self.assertTrue(len(file_handlers) >= 1)
        self.assertEqual(file_handlers[0].level, logging.DEBUG)

    def test_console_handler_level_warning(self) -> None:
        """Console handler should be set to WARNING level."""
        setup_logging()
        root_logger = logging.getLogger("price_tracker")
        stream_handlers: list[logging.Handler] = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        self.assertTrue(len(stream_handlers) >= 1)
        self.assertEqual(stream_handlers[0].level, logging.WARNING)

    def test_child_logger_writes_to_run_file(self) -> None:
        """Messages from price_tracker.* loggers land in the run file."""
        log_path = setup_logging()
        logging.getLogger("price_tracker.service").info("hello from service")
        for handler in logging.getLogger("price_tracker").handlers:
            handler.flush()
        self.assertIn(
            "hello from service", log_path.read_text(encoding="utf-8")
        )

    def test_repeated_setup_returns_first_run_file(self) -> None:
        """CLI then TUI setup in one process share one log file."""
        first = setup_logging()
        second = setup_logging(console=False)
        self.assertEqual(first, second)
        self.assertTrue(second.exists())

    def test_tui_setup_has_no_console_handler(self) -> None:
        """With console=False nothing writes to the terminal."""
        setup_logging()
        setup_logging(console=False)
        root_logger = logging.getLogger("price_tracker")
        self.assertEqual(
            [h for h in root_logger.handlers if type(h) is logging.StreamHandler],
            [],
        )
        self.assertEqual(len(root_logger.handlers), 1)

    def test_level_comes_from_settings(self) -> None:
        """The project logger level follows Settings.LOG_LEVEL."""
        with patch.object(Settings, "LOG_LEVEL", "WARNING"):
            setup_logging()
        self.assertEqual(
            logging.getLogger("price_tracker").level, logging.WARNING
        )

    def test_worker_thread_name_is_logged(self) -> None:
        """Records from background threads carry the thread name."""
        log_path = setup_logging(console=False)
        worker = threading.Thread(
            target=lambda: logging.getLogger("price_tracker.realtime").info("tick"),
            name="poll-products",
        )
        worker.start()
        worker.join()
        for handler in logging.getLogger("price_tracker").handlers:
            handler.flush()
        line = next(
            ln for ln in log_path.read_text(encoding="utf-8").splitlines()
            if ln.endswith("| tick")
        )
        self.assertIn("poll-products", line)


if __name__ == "__main__":
    unittest.main()
