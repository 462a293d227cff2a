"""Tool-call service configuration using Pydantic Settings.

Environment variables are loaded from .env file or system environment and are
prefixed with TOOLCALL_ (e.g., TOOLCALL_DEFAULT_PROVIDER).
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.toolcall_service.core.config.constants import DEFAULT_ERROR_KEYWORDS
from shared.protocol.common import ProviderID

_REPO_ROOT = Path(__file__).resolve().parents[4]
_DEFAULT_ENV_FILE = _REPO_ROOT / ".env"
_LOAD_ENV_FILE = os.getenv("TOOLCALL_SERVICE_LOAD_ENV_FILE", "true").lower() not in {"0", "false", "no", "off"}
_ENV_FILE = str(_DEFAULT_ENV_FILE) if _LOAD_ENV_FILE else None


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLCALL_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Adapter used when a caller does not name a vendor
    default_provider: ProviderID = Field(
        default=ProviderID.OPENAI,
        description="Vendor wire format assumed when no provider tag is given.",
    )

    # Segment status inference
    error_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ERROR_KEYWORDS),
        description="Case-insensitive keywords marking a captured tool result as failed.",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
