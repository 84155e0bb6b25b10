"""
Configuration management for the support assistant.

This module centralizes environment-driven configuration using Pydantic's
`BaseSettings`. All services consume the shared `settings` instance so the
API, the ingestion queue and the chat orchestrator agree on limits such as
chunk size and history window.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AnyUrl, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    # General application settings
    API_TITLE: str = "Support Assistant API"
    API_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field("development", pattern=r"^(development|staging|production)$")
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # Auth boundary: tokens are minted by the account service, only verified here
    SECRET_KEY: str = "changeme"
    JWT_ALGORITHM: str = "HS256"

    # Persistence
    STORE_BACKEND: str = Field("memory", pattern=r"^(memory|mongo)$")
    MONGODB_URL: AnyUrl = Field("mongodb://localhost:27017")
    MONGODB_DATABASE: str = "support_assistant"
    REDIS_URL: Optional[AnyUrl] = None

    # Uploads
    UPLOAD_DIR: Path = Field(default_factory=lambda: Path("uploads") / "documents")
    MAX_UPLOAD_BYTES: PositiveInt = 10 * 1024 * 1024

    # Ingestion
    CHUNK_SIZE: PositiveInt = 500
    CHUNK_OVERLAP: int = Field(100, ge=0)

    # Retrieval / chat
    RETRIEVAL_TOP_K: PositiveInt = 3
    FAQ_CONTEXT_LIMIT: PositiveInt = 5
    HISTORY_WINDOW: PositiveInt = 10
    DEFAULT_CONVERSATION_TITLE: str = "New Conversation"
    TITLE_MAX_LENGTH: PositiveInt = 50

    # LLM provider configuration
    LLM_PROVIDER: str = Field("openai", pattern=r"^(openai|echo)$")
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[AnyUrl] = None
    LLM_MODEL: str = "gpt-4o-mini"
    TEMPERATURE: float = 0.7
    TOP_P: float = 0.8
    MAX_OUTPUT_TOKENS: PositiveInt = 2048

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 20

    # Tracing
    OTEL_EXPORTER_OTLP_ENDPOINT: Optional[AnyUrl] = None
    OTEL_EXPORTER_OTLP_HEADERS: Optional[str] = None

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache()
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


# Singleton-style settings instance for modules that prefer direct access.
settings = get_settings()
