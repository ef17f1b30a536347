"""Typed exception hierarchy for mdconvert.

All exceptions inherit from :class:`MdConvertError` so drivers (CLI,
HTTP service) can catch the whole family in one place.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mdconvert.security import ValidationCode, ValidationResult


class MdConvertError(Exception):
    """Base exception for all mdconvert errors."""


class ValidationError(MdConvertError):
    """Raised when a file or its content fails a validation guard."""

    def __init__(self, result: ValidationResult):
        super().__init__(result.error or "Validation failed")
        self.result = result

    @property
    def code(self) -> Optional[ValidationCode]:
        return self.result.code


class MaliciousContentDetected(MdConvertError):
    """Raised when source text matches a forbidden signature."""

    def __init__(self, message: str = "Content contains potentially malicious elements"):
        super().__init__(message)


class ConversionError(MdConvertError):
    """Raised when parsing or rendering fails."""


class RateLimitExceeded(MdConvertError):
    """Raised when the sliding-window limiter refuses a request."""

    def __init__(self, remaining: int = 0, retry_after_ms: Optional[float] = None):
        message = "Too many requests. Please wait before converting again."
        super().__init__(message)
        self.remaining = remaining
        self.retry_after_ms = retry_after_ms
