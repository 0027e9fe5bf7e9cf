"""
Logging for the dataset augmenter.

All module loggers live under the ``augmenter`` namespace and share the
handlers installed on the package logger. Console output is written through
``tqdm.write`` so log lines never tear an active progress bar.
"""

import logging
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .constants import LOG_FORMAT, LOG_DATE_FORMAT, DEFAULT_LOG_LEVEL


ROOT_LOGGER_NAME = "augmenter"

_configured: set[str] = set()


class TqdmConsoleHandler(logging.Handler):
    """Console handler that prints above running tqdm bars."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record))
        except Exception:
            self.handleError(record)


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[Path] = None,
    console: bool = True
) -> logging.Logger:
    """
    Install handlers on a logger.

    May be called again for the same name; the previous handlers are
    replaced, which is how the CLI switches to DEBUG after import time.

    Args:
        name: Logger name, normally the package logger
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a UTF-8 log file
        console: Whether to log to the console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = []
    if console:
        handlers.append(TqdmConsoleHandler())
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    _configured.add(name)
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Logger for a module or class.

    Names inside the package namespace become children of the package
    logger, which is configured with defaults on first use.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        if ROOT_LOGGER_NAME not in _configured:
            setup_logger(ROOT_LOGGER_NAME)
        return logging.getLogger(name)
    if name not in _configured:
        return setup_logger(name)
    return logging.getLogger(name)


class LoggerMixin:
    """
    Gives a class a ``self.logger`` named after it.

    Usage:
        class MyWriter(LoggerMixin):
            def export(self):
                self.logger.info("exporting")
    """

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, '_logger'):
            self._logger = get_logger(f"{ROOT_LOGGER_NAME}.{self.__class__.__name__}")
        return self._logger
