"""mdconvert: convert Markdown to sanitized HTML, JSON and plain text."""

__version__ = "1.0.0"

from mdconvert.converter import (  # noqa: E402
    ConversionFormat,
    ConversionOptions,
    ConversionResult,
    Converter,
    ParsedDocument,
)
from mdconvert.parser import MarkdownParser, parse_document  # noqa: E402
from mdconvert.ratelimit import RateLimiter  # noqa: E402
from mdconvert.security import (  # noqa: E402
    detect_malicious_content,
    sanitize_filename,
    sanitize_url,
    validate_content,
    validate_file,
)

__all__ = [
    "ConversionFormat",
    "ConversionOptions",
    "ConversionResult",
    "Converter",
    "MarkdownParser",
    "ParsedDocument",
    "RateLimiter",
    "__version__",
    "detect_malicious_content",
    "parse_document",
    "sanitize_filename",
    "sanitize_url",
    "validate_content",
    "validate_file",
]
