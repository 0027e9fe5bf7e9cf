"""Tests for logger setup."""

import logging

from augmenter.core.logger import LoggerMixin, TqdmConsoleHandler, get_logger, setup_logger


class _Worker(LoggerMixin):
    pass


def test_module_loggers_are_package_children():
    logger = get_logger("augmenter.pipeline")
    assert logger.name == "augmenter.pipeline"
    assert logger.parent is logging.getLogger("augmenter")
    assert _Worker().logger.name == "augmenter._Worker"


def test_setup_writes_log_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    try:
        setup_logger("augmenter", level="DEBUG", log_file=log_file, console=False)
        get_logger("augmenter.archive").debug("bundle committed")
        for handler in logging.getLogger("augmenter").handlers:
            handler.flush()

        assert "bundle committed" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in logging.getLogger("augmenter").handlers:
            handler.close()
        setup_logger("augmenter")


def test_console_handler_is_tqdm_aware():
    logger = setup_logger("augmenter")
    assert [type(h) for h in logger.handlers] == [TqdmConsoleHandler]
    assert logger.propagate is False
