# sessionlog/core/config.py
"""
Central configuration for the session log store.

This module defines a single `settings` object (Pydantic BaseSettings) that reads
configuration from environment variables and a local `.env` file.

Guiding principles:
- Config is declared once, imported everywhere.
- Sensible defaults for local debug builds.
- The whole facility is off unless SESSION_LOG_ENABLED is set.
"""

from __future__ import annotations

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables and optional `.env`.

    `.env` location:
      - uvicorn is run from `backend/`, so `.env` should live in `backend/.env`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # -----------------------
    # Runtime
    # -----------------------
    ENV: str = Field(default="dev", description="Environment: dev|test|prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (e.g., INFO, DEBUG)")

    # -----------------------
    # Debug gate
    # -----------------------
    SESSION_LOG_ENABLED: bool = Field(
        default=False,
        description="Mount the session log inspection API (debug builds only)",
    )
    CAPTURE_APP_LOGS: bool = Field(
        default=True,
        description="Attach a logging handler that copies application logs into the store",
    )

    # -----------------------
    # API / CORS
    # -----------------------
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins for the inspection UI",
    )

    # -----------------------
    # Database
    # -----------------------
    DATABASE_URL: str = Field(
        default="sqlite:///./data/session_log.db",
        description="SQLAlchemy database URL for the session log",
    )

    # -----------------------
    # Store limits
    # -----------------------
    MAX_ITEMS_COUNT: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of log records kept before eviction",
    )
    PAGE_SIZE: int = Field(
        default=30,
        ge=1,
        le=500,
        description="Number of records returned per page",
    )
    EVICTION_RATIO: float = Field(
        default=0.2,
        gt=0.0,
        le=1.0,
        description="Share of max_items_count evicted when the cap is reached",
    )

    # -----------------------
    # Validators / normalizers
    # -----------------------
    @field_validator("ENV")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        return (v or "dev").strip().lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("CORS_ALLOW_ORIGINS")
    @classmethod
    def _clean_cors_origins(cls, v: List[str]) -> List[str]:
        cleaned = []
        for origin in v or []:
            o = (origin or "").strip()
            if o:
                cleaned.append(o)
        return cleaned

    @field_validator("DATABASE_URL")
    @classmethod
    def _strip_strings(cls, v: str) -> str:
        return (v or "").strip()


# Singleton instance imported across the codebase.
settings = Settings()
