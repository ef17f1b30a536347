"""Runtime settings sourced from environment variables.

Every field can be set with an ``MDCONVERT_`` prefixed variable, e.g.
``MDCONVERT_RATE_LIMIT_REQUESTS=20``, or from a local ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from mdconvert.security import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_MAX_CONTENT_LENGTH,
    DEFAULT_MAX_SIZE,
    FileValidationOptions,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MDCONVERT_", env_file=".env", extra="ignore")

    max_file_size: int = DEFAULT_MAX_SIZE
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS

    rate_limit_requests: int = 10
    rate_limit_window_ms: int = 60_000

    default_style: str = "default"
    prettify: bool = True
    include_metadata: bool = True

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    def file_validation_options(self) -> FileValidationOptions:
        return FileValidationOptions(
            max_size=self.max_file_size,
            allowed_extensions=self.allowed_extensions,
            max_content_length=self.max_content_length,
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]
