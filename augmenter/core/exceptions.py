"""
Exception classes for the dataset augmenter.

Provides a hierarchy of exceptions for the different failure scopes of a run:
validation failures stop a run before it starts, decode/encode failures skip
a single image or derived output, and fatal errors abort the run.

Usage:
    from augmenter.core.exceptions import ValidationError, DecodeError

    try:
        report = executor.run(images, context)
    except ValidationError as e:
        logger.error(f"Run rejected: {e}")
"""

from typing import Any, Optional


class AugmenterError(Exception):
    """
    Base exception class for the dataset augmenter.

    All custom exceptions inherit from this class, allowing
    broad exception catching when needed.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(AugmenterError):
    """
    Invalid input detected before any processing started.

    Raised for bad split ratios, runs with no enabled transforms, an empty
    eligible-image set, or out-of-domain transform parameters.
    """


class RunInProgressError(ValidationError):
    """Raised when a run is started while another one is still active."""


class DecodeError(AugmenterError):
    """
    A single image could not be loaded, or loading timed out.

    The run skips the image and continues.
    """

    def __init__(
        self,
        message: str,
        image_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        if image_id:
            details["image_id"] = image_id
        super().__init__(message, details)
        self.image_id = image_id


class EncodeError(AugmenterError):
    """
    A single derived output or artifact could not be produced.

    The run skips that one output and continues.
    """

    def __init__(
        self,
        message: str,
        image_id: Optional[str] = None,
        transform: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        if image_id:
            details["image_id"] = image_id
        if transform:
            details["transform"] = transform
        super().__init__(message, details)
        self.image_id = image_id
        self.transform = transform


class FatalError(AugmenterError):
    """
    Unexpected internal failure that aborts the current run.

    ``partial_kept`` tells the caller whether artifacts produced before the
    failure were left in place; when they were, ``partial`` holds them (a
    RunReport for augmentation runs, an ExportReport for exports).
    """

    def __init__(
        self,
        message: str,
        partial_kept: bool = False,
        partial: Any = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.partial_kept = partial_kept
        self.partial = partial
