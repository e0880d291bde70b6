"""Unit tests for logging configuration module.

Tests verify that the logging configuration functions work correctly with different
scenarios including various log levels, formats, and file logging options.
"""

import logging
from unittest.mock import patch

import pytest

from actiongate_ai.core.logging_config import (
    DETAILED_FORMAT,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    get_logger,
    setup_logging,
)


def _console_handler() -> logging.Handler:
    root_logger = logging.getLogger()
    return next(h for h in root_logger.handlers if type(h) is logging.StreamHandler)


class TestSetupLoggingLogLevels:
    """Test setup_logging with different log levels."""

    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("CRITICAL", logging.CRITICAL),
            ("debug", logging.DEBUG),
        ],
    )
    def test_setup_logging_with_different_levels(self, log_level, expected_level):
        setup_logging(log_level=log_level, enable_file=False)

        assert _console_handler().level == expected_level
        assert logging.getLogger().level == logging.DEBUG


class TestSetupLoggingFormats:
    """Test setup_logging with different formats."""

    @pytest.mark.parametrize(
        "log_format,expected",
        [
            ("simple", SIMPLE_FORMAT),
            ("detailed", DETAILED_FORMAT),
            ("json", JSON_FORMAT),
            ("unknown", DETAILED_FORMAT),
        ],
    )
    def test_formatter_matches_format_name(self, log_format, expected):
        setup_logging(log_level="INFO", log_format=log_format, enable_file=False)

        assert _console_handler().formatter._fmt == expected


class TestSetupLoggingHandlers:
    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging(log_level="INFO", enable_file=False)
        setup_logging(log_level="INFO", enable_file=False)

        assert len(logging.getLogger().handlers) == 1

    def test_file_logging_writes_under_log_dir(self, tmp_path):
        with (
            patch("actiongate_ai.core.logging_config.ENABLE_FILE_LOGGING", True),
            patch("actiongate_ai.core.logging_config.LOG_FILE_DIR", str(tmp_path / "logs")),
        ):
            setup_logging(log_level="INFO", enable_file=True)

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        try:
            assert len(file_handlers) == 1
            assert (tmp_path / "logs" / "actiongate_ai.log").exists()
        finally:
            for handler in file_handlers:
                handler.close()
                logging.getLogger().removeHandler(handler)

    def test_file_logging_requires_global_flag(self):
        with patch("actiongate_ai.core.logging_config.ENABLE_FILE_LOGGING", False):
            setup_logging(log_level="INFO", enable_file=True)

        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)


class TestModuleLogLevels:
    def test_module_levels_applied(self):
        setup_logging(log_level="INFO", enable_file=False)

        for module_name, level in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(module_name).level == logging.getLevelName(level)

    def test_noisy_libraries_are_quieted(self):
        assert MODULE_LOG_LEVELS["httpx"] == "WARNING"
        assert MODULE_LOG_LEVELS["sqlalchemy.engine"] == "WARNING"
        assert MODULE_LOG_LEVELS["actiongate_ai.agent_core.actions"] == "DEBUG"


def test_get_logger_returns_named_logger():
    logger = get_logger("actiongate_ai.agent_core.actions.approval")

    assert isinstance(logger, logging.Logger)
    assert logger.name == "actiongate_ai.agent_core.actions.approval"
    assert logger is logging.getLogger("actiongate_ai.agent_core.actions.approval")
