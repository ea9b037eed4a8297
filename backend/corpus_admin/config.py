"""Application configuration using Pydantic Settings."""
from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Application
    APP_NAME: str = "Corpus Admin"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Gateway selection: "local" (SQLAlchemy + filesystem) or "supabase" (PostgREST over HTTP)
    GATEWAY_BACKEND: Literal["local", "supabase"] = "local"

    # Local gateway
    DATABASE_URL: str = "sqlite:///./data/corpus_admin.db"
    STORAGE_DIR: str = "./data/storage"
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    # Supabase gateway
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    GATEWAY_TIMEOUT_SECONDS: float = 30.0

    # Tables / buckets
    SOURCES_TABLE: str = "sources"
    CHUNKS_TABLE: str = "chunks"
    STORAGE_BUCKET: str = "sources-pdfs"

    # Records
    DEFAULT_LANGUAGE: str = "Hindi"
    MAX_UPLOAD_SIZE_MB: int = 50
    # What deleting a source does to the chunks that reference it
    SOURCE_DELETE_POLICY: Literal["orphan", "cascade", "restrict"] = "orphan"

    # Notification feed
    NOTIFICATION_LIMIT: int = 50

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def storage_path(self) -> Path:
        p = Path(self.STORAGE_DIR)
        p.mkdir(parents=True, exist_ok=True)
        return p

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
