"""Input guards and sanitizing helpers.

Everything here is a pure function of its arguments.  The guards return a
:class:`ValidationResult` rather than raising; :func:`raise_for_result`
turns a failed result into a :class:`~mdconvert.errors.ValidationError`
for callers that prefer exceptions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

from mdconvert.errors import ValidationError

DEFAULT_MAX_SIZE = 10 * 1024 * 1024  # 10MB
DEFAULT_MAX_CONTENT_LENGTH = 1024 * 1024  # 1MB of characters
DEFAULT_ALLOWED_EXTENSIONS = (".md", ".markdown", ".txt")

ALLOWED_MIME_TYPES = (
    "text/markdown",
    "text/plain",
    "application/octet-stream",  # some systems report .md as this
)

SAFE_URL_SCHEMES = frozenset({"http", "https", "mailto"})
URL_PLACEHOLDER = "#"

MAX_FILENAME_LENGTH = 255


# ---------------------------------------------------------------------------
# Validation results
# ---------------------------------------------------------------------------

class ValidationCode(Enum):
    SIZE_EXCEEDED = "size_exceeded"
    INVALID_TYPE = "invalid_type"
    CONTENT_TOO_LARGE = "content_too_large"


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    code: Optional[ValidationCode] = None

    @classmethod
    def valid(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def invalid(cls, code: ValidationCode, error: str) -> ValidationResult:
        return cls(is_valid=False, error=error, code=code)


@dataclass(frozen=True)
class FileValidationOptions:
    max_size: int = DEFAULT_MAX_SIZE
    allowed_extensions: tuple[str, ...] = field(default=DEFAULT_ALLOWED_EXTENSIONS)
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH


def raise_for_result(result: ValidationResult) -> None:
    """Raise :class:`ValidationError` if *result* is not valid."""
    if not result.is_valid:
        raise ValidationError(result)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def validate_file(
    size: int,
    name: str,
    options: Optional[FileValidationOptions] = None,
) -> ValidationResult:
    """Check a file's byte size and extension before it is read."""
    opts = options or FileValidationOptions()

    if size > opts.max_size:
        return ValidationResult.invalid(
            ValidationCode.SIZE_EXCEEDED,
            f"File size exceeds limit of {round(opts.max_size / 1024 / 1024)}MB",
        )

    lowered = name.lower()
    if not any(lowered.endswith(ext.lower()) for ext in opts.allowed_extensions):
        return ValidationResult.invalid(
            ValidationCode.INVALID_TYPE,
            f"Invalid file type. Allowed: {', '.join(opts.allowed_extensions)}",
        )

    return ValidationResult.valid()


def validate_content(
    text: str,
    max_length: int = DEFAULT_MAX_CONTENT_LENGTH,
) -> ValidationResult:
    """Check that decoded text is within *max_length* characters."""
    if len(text) > max_length:
        return ValidationResult.invalid(
            ValidationCode.CONTENT_TOO_LARGE,
            f"Content exceeds maximum length of {round(max_length / 1024)}KB",
        )
    return ValidationResult.valid()


def validate_mime_type(
    mime_type: Optional[str],
    name: str,
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS,
) -> bool:
    """Accept a known text MIME type, else fall back to the extension."""
    if mime_type and mime_type.split(";")[0].strip().lower() in ALLOWED_MIME_TYPES:
        return True
    lowered = name.lower()
    return any(lowered.endswith(ext) for ext in allowed_extensions)


# ---------------------------------------------------------------------------
# Sanitizers
# ---------------------------------------------------------------------------

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(name: str) -> str:
    """Make *name* safe for use as a download or filesystem name.

    May return an empty string; callers choose their own fallback.
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name)
    cleaned = cleaned.strip(".")
    return cleaned[:MAX_FILENAME_LENGTH]


def sanitize_url(url: str) -> str:
    """Return *url* if its scheme is http, https or mailto, else ``#``."""
    try:
        parts = urlsplit(url.strip())
    except (ValueError, AttributeError):
        return URL_PLACEHOLDER
    if parts.scheme.lower() in SAFE_URL_SCHEMES:
        return url
    return URL_PLACEHOLDER


_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}
_HTML_ESCAPE_RE = re.compile(r"[&<>\"']")


def escape_html(text: str) -> str:
    return _HTML_ESCAPE_RE.sub(lambda m: _HTML_ESCAPES[m.group(0)], text)


# ---------------------------------------------------------------------------
# Malicious content heuristic
# ---------------------------------------------------------------------------

_SUSPICIOUS_PATTERNS = (
    re.compile(r"<script\b", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    # on*= attribute inside a tag; bounded so "<<<<..." input stays linear
    re.compile(r"<[a-z][^<>]{0,256}?\son[a-z]+\s*=", re.IGNORECASE),
    re.compile(r"\bon(?:load|error|click)\s*=", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"document\.write", re.IGNORECASE),
)


def detect_malicious_content(text: str) -> bool:
    """Return True if *text* matches a known script-injection signature.

    This is a fast pre-check on the Markdown source.  It is easy to bypass
    and is not what keeps rendered HTML safe; see
    :func:`mdconvert.renderer.sanitize_html` for that.
    """
    return any(pattern.search(text) for pattern in _SUSPICIOUS_PATTERNS)


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    exponent = 0
    while value >= 1024 and exponent < len(_SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[exponent]}"
