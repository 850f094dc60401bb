"""Unit tests for logging helpers."""

from __future__ import annotations

import logging

import pytest

from mongo_state_store.core.logging import ROOT_LOGGER_NAME, LogContext, get_logger, setup_logging


@pytest.fixture
def isolated_root_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers.clear()
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


class TestSetupLogging:
    """Tests for opt-in logger configuration."""

    def test_adds_single_handler(self, isolated_root_logger):
        logger = setup_logging(logging.DEBUG)
        setup_logging(logging.DEBUG)

        assert logger is isolated_root_logger
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.propagate is False


class TestLogContext:
    """Tests for operation logging."""

    def test_logs_start_and_completion(self, caplog):
        caplog.set_level(logging.INFO, logger=ROOT_LOGGER_NAME)
        logger = get_logger("mongo_state_store.test")

        with LogContext(logger, "synchronized migration", lock_collection="migrationlock"):
            pass

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "Starting synchronized migration"
        assert messages[1].startswith("Completed synchronized migration in ")
        assert caplog.records[0].lock_collection == "migrationlock"

    def test_logs_failure_and_reraises(self, caplog):
        caplog.set_level(logging.INFO, logger=ROOT_LOGGER_NAME)
        logger = get_logger("mongo_state_store.test")

        with pytest.raises(RuntimeError):
            with LogContext(logger, "synchronized migration"):
                raise RuntimeError("lock lost")

        failure = caplog.records[-1]
        assert failure.levelno == logging.ERROR
        assert "Failed synchronized migration after" in failure.getMessage()
        assert failure.getMessage().endswith("lock lost")
