"""
Wedding Manager — Centralized configuration.

Loads all settings from .env and validates them.
Every other module reads its configuration from here.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from wedding_manager/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Remote API
    API_BASE_URL: str = "http://localhost/ios/api"
    API_ENDPOINT_SUFFIX: str = ".php"   # existing server exposes auth/login.php etc.
    CSRF_ENDPOINT: str = ""             # empty → no X-CSRF-TOKEN header
    HTTP_TIMEOUT_SECONDS: float | None = None  # None → httpx default

    # Credential storage
    CREDENTIAL_NAMESPACE: str = "WeddingManager"
    CREDENTIAL_STORE_PATH: str = "data/credentials.json"

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("API_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("HTTP_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def parse_timeout(cls, v: str | float | None) -> float | None:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return float(v)

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()


def _load_settings() -> Settings:
    """Load settings from environment, validating the API base URL."""
    base_url = os.getenv("API_BASE_URL", "http://localhost/ios/api")

    if not base_url.startswith(("http://", "https://")):
        print("ERROR: API_BASE_URL must be an http(s) URL", file=sys.stderr)
        sys.exit(1)

    return Settings(
        API_BASE_URL=base_url,
        API_ENDPOINT_SUFFIX=os.getenv("API_ENDPOINT_SUFFIX", ".php"),
        CSRF_ENDPOINT=os.getenv("CSRF_ENDPOINT", ""),
        HTTP_TIMEOUT_SECONDS=os.getenv("HTTP_TIMEOUT_SECONDS"),
        CREDENTIAL_NAMESPACE=os.getenv("CREDENTIAL_NAMESPACE", "WeddingManager"),
        CREDENTIAL_STORE_PATH=os.getenv("CREDENTIAL_STORE_PATH", "data/credentials.json"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton, imported by other modules as:
#   from wedding_manager.config import settings
settings = _load_settings()
