"""Tests for the logging setup module."""

import io
import logging
import threading

import pytest

from src.utils.logger import LOG_FORMAT, get_logger, setup_logging


@pytest.fixture
def bare_root():
    """Root logger whose handlers are removed once the test is done."""
    root = logging.getLogger()
    level = root.level
    yield root
    root.handlers.clear()
    root.setLevel(level)


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def test_installs_single_handler(self, bare_root: logging.Logger) -> None:
        bare_root.handlers.clear()
        setup_logging("DEBUG")
        setup_logging("INFO")

        assert len(bare_root.handlers) == 1
        assert bare_root.level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, bare_root: logging.Logger) -> None:
        bare_root.handlers.clear()
        setup_logging("chatty")
        assert bare_root.level == logging.INFO

    def test_lines_name_the_worker_thread(self, bare_root: logging.Logger) -> None:
        bare_root.handlers.clear()
        stream = io.StringIO()
        setup_logging("INFO", stream=stream)

        worker = threading.Thread(
            target=lambda: get_logger("src.jobs.queue").info("Completed item 7"),
            name="job-worker-3",
        )
        worker.start()
        worker.join()

        line = stream.getvalue()
        assert "[job-worker-3]" in line
        assert "src.jobs.queue - [job-worker-3] - INFO - Completed item 7" in line
        assert "%(threadName)s" in LOG_FORMAT

    def test_http_client_loggers_stay_quiet(self, bare_root: logging.Logger) -> None:
        bare_root.handlers.clear()
        setup_logging("DEBUG")
        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("PIL").level == logging.WARNING


class TestGetLogger:
    """Tests for the get_logger function."""

    def test_returns_named_logger(self) -> None:
        logger = get_logger("src.decoding.cascade")
        assert logger.name == "src.decoding.cascade"
        assert logger is logging.getLogger("src.decoding.cascade")
