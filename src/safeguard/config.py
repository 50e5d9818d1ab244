"""
Configuration settings for the Safeguard70E compliance tracker
"""

import logging
import os
import sys
from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, case_sensitive=False)

    # Required secrets - no defaults allowed
    jwt_secret_key: str
    database_url: str

    # Identity tokens
    jwt_algorithm: str = "HS256"

    # Certification document storage
    document_bucket: str = "certifications"
    aws_region: str = "us-east-1"
    document_url_base: Optional[str] = None
    max_upload_bytes: int = 20 * 1024 * 1024

    # Identity & membership provider backend API
    identity_api_url: str = "https://api.clerk.com/v1"
    identity_api_key: str = ""
    identity_api_timeout: float = 10.0

    @field_validator('jwt_secret_key')
    @classmethod
    def validate_secret_strength(cls, v: str, info) -> str:
        """Enforce minimum 32-character secret keys per OWASP guidelines"""
        if len(v) < 32:
            raise ValueError(
                f"{info.field_name} must be at least 32 characters "
                f"(current: {len(v)}). Generate with: openssl rand -hex 32"
            )
        weak_patterns = ['test', 'secret', 'password', 'changeme']
        v_lower = v.lower()
        for pattern in weak_patterns:
            # Repeated 3+ times means the key was padded from a word
            if v_lower.count(pattern) >= 3:
                raise ValueError(f"{info.field_name} contains weak pattern")
        return v

    @field_validator('jwt_algorithm')
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v.lower() == "none":
            raise ValueError("jwt_algorithm 'none' is not allowed")
        return v

    @classmethod
    def load_and_validate(cls) -> "Settings":
        """Load settings and fail fast if secrets missing"""
        if not os.getenv("JWT_SECRET_KEY"):
            logger.error("JWT_SECRET_KEY not configured")
            sys.exit(1)
        if not os.getenv("DATABASE_URL"):
            logger.error("DATABASE_URL not configured")
            sys.exit(1)
        return cls()


@lru_cache
def get_settings() -> Settings:
    return Settings.load_and_validate()
