"""Unit tests for codebox/logging_config.py."""

import logging

import pytest

from codebox.logging_config import NOISY_LOGGERS, configure_logging, suppress_noisy_loggers
from codebox.settings import get_settings


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    get_settings.cache_clear()
    configure_logging()


class TestConfigureLogging:
    def test_explicit_level(self):
        configure_logging("DEBUG")
        assert logging.getLogger("codebox").level == logging.DEBUG

    def test_level_from_settings(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        configure_logging()
        assert logging.getLogger("codebox").level == logging.ERROR

    def test_single_stderr_handler(self):
        configure_logging("INFO")
        configure_logging("INFO")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].level == logging.INFO


class TestSuppressNoisyLoggers:
    def test_noisy_loggers_at_warning(self):
        noisy = logging.getLogger(NOISY_LOGGERS[0])
        noisy.setLevel(logging.DEBUG)
        noisy.addHandler(logging.NullHandler())

        suppress_noisy_loggers()

        assert noisy.level == logging.WARNING
        assert noisy.handlers == []
