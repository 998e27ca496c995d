import logging

import pytest

from handtracker_core.logger import (
    BASE_LOGGER_NAME,
    LOG_DIR_ENV,
    get_log_directory,
    get_logger,
    setup_logging,
)


def test_console_only_logging():
    logger = setup_logging(log_to_file=False)
    assert logger.name == BASE_LOGGER_NAME
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO


def test_level_overrides_debug_flag():
    logger = setup_logging(debug=True, log_to_file=False, level="warning")
    assert logger.level == logging.WARNING
    assert logger.handlers[0].level == logging.WARNING


def test_unknown_level_rejected():
    with pytest.raises(ValueError):
        setup_logging(log_to_file=False, level="LOUD")


def test_file_handler_writes_to_given_directory(tmp_path):
    logger = setup_logging(debug=True, log_dir=tmp_path, log_filename="run.log")
    get_logger("Pipeline").info("frame processed")
    for handler in logger.handlers:
        handler.flush()
    text = (tmp_path / "run.log").read_text(encoding="utf-8")
    assert "frame processed" in text
    assert "HandtrackerCore.Pipeline" in text


def test_log_directory_env_override(tmp_path, monkeypatch):
    target = tmp_path / "logs"
    monkeypatch.setenv(LOG_DIR_ENV, str(target))
    assert get_log_directory() == target
    assert target.is_dir()


def test_child_loggers_share_the_package_root():
    assert get_logger("ROITracker").parent is logging.getLogger(BASE_LOGGER_NAME)
    assert get_logger() is logging.getLogger(BASE_LOGGER_NAME)
