"""
Core utilities for the dataset augmenter.

This package contains fundamental components like constants, configuration,
exceptions and logging that are used throughout the application.
"""

from .constants import (
    ExportFormat,
    TransformFamily,
    TransformKind,
    ParameterMode,
    SplitName,
    InterpolationMethod,
    SUPPORTED_IMAGE_FORMATS,
    DEFAULT_CONFIG_PATH,
    DEFAULT_DECODE_TIMEOUT,
    SPLIT_ORDER,
)
from .config import Config, load_config
from .exceptions import (
    AugmenterError,
    ValidationError,
    RunInProgressError,
    DecodeError,
    EncodeError,
    FatalError,
)
from .logger import setup_logger, get_logger, LoggerMixin

__all__ = [
    # Enums
    "ExportFormat",
    "TransformFamily",
    "TransformKind",
    "ParameterMode",
    "SplitName",
    "InterpolationMethod",
    # Constants
    "SUPPORTED_IMAGE_FORMATS",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_DECODE_TIMEOUT",
    "SPLIT_ORDER",
    # Config
    "Config",
    "load_config",
    # Exceptions
    "AugmenterError",
    "ValidationError",
    "RunInProgressError",
    "DecodeError",
    "EncodeError",
    "FatalError",
    # Logging
    "setup_logger",
    "get_logger",
    "LoggerMixin",
]
