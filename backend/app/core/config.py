"""Application configuration powered by Pydantic settings."""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    PROJECT_NAME: str = Field(default="Workshop Asset Ingestion")
    VERSION: str = Field(default="0.1.0")
    LOG_LEVEL: str = Field(default="INFO")

    DATABASE_URL: str = Field(default="postgresql+psycopg://postgres:postgres@db:5432/postgres")

    MINIO_ENDPOINT: str = Field(default="minio:9000")
    MINIO_ACCESS_KEY: str = Field(default="minioadmin")
    MINIO_SECRET_KEY: str = Field(default="minioadmin")
    MINIO_BUCKET: str = Field(default="workshop-assets")
    MINIO_SECURE: bool = Field(default=False)
    MINIO_PUBLIC_ENDPOINT: str | None = Field(default=None)

    EMBEDDING_PROVIDER: str = Field(default="ollama")
    EMBEDDING_MODEL_NAME: str = Field(default="nomic-embed-text")
    EMBEDDING_DIM: int = Field(default=768)

    OLLAMA_HOST: str = Field(default="http://host.docker.internal:11434")
    OLLAMA_TIMEOUT: float = Field(default=120.0)

    FETCH_TIMEOUT: float = Field(default=30.0)

    INGEST_CHUNK_SIZE: int = Field(default=1000)
    INGEST_CHUNK_OVERLAP: int = Field(default=100)

    UPLOAD_MAX_BYTES: int = Field(default=25 * 1024 * 1024)
    RATE_LIMIT_INGESTION: str = Field(default="12/minute")
    STATUS_POLL_INTERVAL: float = Field(default=3.0)

    FRONTEND_URL: str = Field(default="http://localhost:3000")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> Settings:
    """Return cached settings instance to avoid repeated parsing."""

    if overrides:
        return Settings(**overrides)
    return Settings()


settings = get_settings()
