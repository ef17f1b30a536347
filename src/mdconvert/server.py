"""FastAPI web service for Markdown conversion.

Endpoints::

    GET  /health        Health check.
    GET  /styles        List available style presets.
    GET  /formats       List output formats and their MIME types.
    POST /convert       Upload a .md file and receive the converted file.
    POST /convert/text  Send raw Markdown text, receive the converted file.
    POST /preview       Sanitized HTML preview plus document statistics.

Run::

    uvicorn mdconvert.server:app --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from mdconvert import __version__
from mdconvert.config import Settings, get_settings
from mdconvert.converter import (
    ConversionFormat,
    ConversionOptions,
    Converter,
    compute_stats,
    detect_markdown_features,
)
from mdconvert.errors import MaliciousContentDetected, RateLimitExceeded, ValidationError
from mdconvert.log import configure_logging
from mdconvert.ratelimit import RateLimiter
from mdconvert.security import (
    ValidationCode,
    ValidationResult,
    detect_malicious_content,
    raise_for_result,
    validate_content,
    validate_file,
    validate_mime_type,
)
from mdconvert.styles import StyleManager

logger = structlog.get_logger(__name__)

_VALIDATION_STATUS = {
    ValidationCode.SIZE_EXCEEDED: 413,
    ValidationCode.CONTENT_TOO_LARGE: 413,
    ValidationCode.INVALID_TYPE: 415,
}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app with its own rate limiter."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_format)

    application = FastAPI(
        title="mdconvert",
        description="Markdown to HTML / JSON / plain text conversion service",
        version=__version__,
    )
    application.state.settings = settings
    application.state.rate_limiter = RateLimiter(
        max_requests=settings.rate_limit_requests,
        window_ms=settings.rate_limit_window_ms,
    )

    @application.exception_handler(RateLimitExceeded)
    async def _rate_limited(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
        headers = {"X-RateLimit-Remaining": str(exc.remaining)}
        if exc.retry_after_ms is not None:
            headers["Retry-After"] = str(max(1, round(exc.retry_after_ms / 1000)))
        return JSONResponse(status_code=429, content={"detail": str(exc)}, headers=headers)

    @application.exception_handler(ValidationError)
    async def _invalid(_request: Request, exc: ValidationError) -> JSONResponse:
        status = _VALIDATION_STATUS.get(exc.code, 400)
        logger.info("validation_failed", code=getattr(exc.code, "value", None), error=str(exc))
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    @application.exception_handler(MaliciousContentDetected)
    async def _malicious(_request: Request, exc: MaliciousContentDetected) -> JSONResponse:
        logger.warning("malicious_content_refused")
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    application.include_router(_build_routes())
    return application


# ---------------------------------------------------------------------------
# Dependencies and helpers
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def _content_disposition(filename: str) -> str:
    """Build Content-Disposition header, RFC 5987 for non-ASCII names."""
    try:
        filename.encode("ascii")
        return f'attachment; filename="{filename}"'
    except UnicodeEncodeError:
        encoded = quote(filename)
        return f"attachment; filename*=UTF-8''{encoded}"


def _make_converter(style: str) -> Converter:
    try:
        return Converter(style_preset=style)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _parse_format(fmt: str) -> ConversionFormat:
    try:
        return ConversionFormat(fmt)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unsupported format: {fmt}") from None


def _admit(limiter: RateLimiter) -> None:
    try:
        limiter.acquire()
    except RateLimitExceeded:
        logger.warning("rate_limit_exceeded", remaining=limiter.get_remaining_requests())
        raise


def _check_upload_type(content_type: Optional[str], filename: str, settings: Settings) -> None:
    if not validate_mime_type(content_type, filename, settings.allowed_extensions):
        raise_for_result(ValidationResult.invalid(
            ValidationCode.INVALID_TYPE,
            f"Invalid file type. Allowed: {', '.join(settings.allowed_extensions)}",
        ))


def _options(
    filename: str,
    prettify: Optional[bool],
    include_metadata: Optional[bool],
    settings: Settings,
) -> ConversionOptions:
    """Form values win; unset fields fall back to the app settings."""
    return ConversionOptions(
        original_filename=filename,
        prettify=settings.prettify if prettify is None else prettify,
        include_metadata=settings.include_metadata if include_metadata is None else include_metadata,
    )


def _reject_malicious(md_text: str) -> None:
    if detect_malicious_content(md_text):
        raise MaliciousContentDetected()


def _run_conversion(
    md_text: str,
    fmt: str,
    style: str,
    options: ConversionOptions,
    settings: Settings,
) -> Response:
    target = _parse_format(fmt)
    raise_for_result(validate_content(md_text, settings.max_content_length))
    _reject_malicious(md_text)

    result = _make_converter(style).convert(md_text, target, options)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error)

    return Response(
        content=result.content,
        media_type=result.mime_type,
        headers={"Content-Disposition": _content_disposition(result.filename)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _build_routes() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "version": __version__}

    @router.get("/styles")
    async def list_styles() -> dict[str, list[str]]:
        """List available style presets."""
        return {"presets": StyleManager.PRESETS}

    @router.get("/formats")
    async def list_formats() -> dict[str, dict[str, str]]:
        """List output formats and their MIME types."""
        return {"formats": {f.value: f.mime_type for f in ConversionFormat}}

    @router.post("/convert")
    async def convert_file(
        file: UploadFile = File(...),
        fmt: str = Form("html", alias="format"),
        style: Optional[str] = Form(None),
        encoding: str = Form("utf-8"),
        prettify: Optional[bool] = Form(None),
        include_metadata: Optional[bool] = Form(None),
        settings: Settings = Depends(get_app_settings),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> Response:
        """Upload a Markdown file and receive the converted file back.

        - **file**: Markdown file (.md, .markdown, .txt)
        - **format**: html, json or txt
        - **style**: Stylesheet preset for HTML output
        """
        _admit(limiter)
        filename = file.filename or "document.md"
        _check_upload_type(file.content_type, filename, settings)
        raw = await file.read()
        raise_for_result(validate_file(len(raw), filename, settings.file_validation_options()))
        try:
            md_text = raw.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise HTTPException(status_code=400, detail=f"Could not decode file: {exc}") from exc

        options = _options(filename, prettify, include_metadata, settings)
        return _run_conversion(md_text, fmt, style or settings.default_style, options, settings)

    @router.post("/convert/text")
    async def convert_text(
        markdown: str = Form(...),
        fmt: str = Form("html", alias="format"),
        style: Optional[str] = Form(None),
        filename: Optional[str] = Form(None),
        prettify: Optional[bool] = Form(None),
        include_metadata: Optional[bool] = Form(None),
        settings: Settings = Depends(get_app_settings),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> Response:
        """Send raw Markdown text and receive the converted file.

        - **markdown**: Markdown source text
        - **format**: html, json or txt
        - **filename**: Optional name used to derive the output filename
        """
        _admit(limiter)
        options = _options(filename or "document.md", prettify, include_metadata, settings)
        return _run_conversion(markdown, fmt, style or settings.default_style, options, settings)

    @router.post("/preview")
    async def preview(
        markdown: str = Form(...),
        settings: Settings = Depends(get_app_settings),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> dict[str, Any]:
        """Return sanitized HTML, statistics and detected features."""
        _admit(limiter)
        raise_for_result(validate_content(markdown, settings.max_content_length))
        _reject_malicious(markdown)
        parsed = _make_converter(settings.default_style).parse(markdown)
        return {
            "html": parsed.rendered_html,
            "stats": compute_stats(markdown).to_dict(),
            "features": detect_markdown_features(markdown).to_dict(),
        }

    return router


app = create_app()
