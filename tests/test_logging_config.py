"""Tests for logging setup."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from alert2snow.core import logging_config


@pytest.fixture
def fresh_logger(monkeypatch):
    monkeypatch.setattr(logging_config, "_logging_configured", False)
    logger = logging.getLogger(logging_config.LOGGER_NAME)
    saved = (list(logger.handlers), logger.propagate, logger.level)
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved[0]
    logger.propagate = saved[1]
    logger.setLevel(saved[2])


def test_file_and_console_handlers(fresh_logger, tmp_path):
    logger = logging_config.setup_logging(log_dir=str(tmp_path / "logs"), level="DEBUG")

    assert logger is fresh_logger
    assert logger.level == logging.DEBUG
    assert [type(h) for h in logger.handlers] == [RotatingFileHandler, logging.StreamHandler]
    assert (tmp_path / "logs").is_dir()


def test_console_only_when_log_dir_empty(fresh_logger):
    logger = logging_config.setup_logging(log_dir="")

    assert len(logger.handlers) == 1
    assert not isinstance(logger.handlers[0], RotatingFileHandler)


def test_configured_only_once(fresh_logger):
    logging_config.setup_logging(log_dir="")
    logging_config.setup_logging(log_dir="", level="ERROR")

    assert len(fresh_logger.handlers) == 1
    assert fresh_logger.level == logging.INFO


def test_modules_share_the_configured_logger(fresh_logger):
    from alert2snow.adapters import alertmanager_adapter
    from alert2snow.senders import retry, servicenow_client
    from alert2snow.services import alert_service

    modules = (alertmanager_adapter, retry, servicenow_client, alert_service)
    assert logging_config.get_logger() is fresh_logger
    assert all(m.logger is fresh_logger for m in modules)
