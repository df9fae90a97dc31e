"""Application configuration management."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from pathlib import Path
from sqlalchemy.engine.url import make_url, URL
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./faceblend.db"
DEFAULT_POOL_PATH = Path(__file__).resolve().parent / "data" / "identities.json"

CACHE_BACKENDS = ("file", "database")
IMAGE_PROVIDERS = ("replicate", "openai")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = "development"
    frontend_url: str = "https://agws.app/oldschoolfaces"
    allowed_origins: str = ""  # Comma-separated; empty means the development defaults

    # Day boundary shared by puzzle selection, cache keys and client state keys
    day_timezone: str = "UTC"

    # Identity pool
    identity_pool_path: Path = DEFAULT_POOL_PATH

    # Artifact cache
    cache_backend: str = "file"  # Options: "file" or "database"
    cache_file_path: Path = Path("data/cache.json")

    # Database (only used when cache_backend == "database")
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Redis (optional, falls back to in-process locks)
    redis_url: str = ""

    # Image generation
    image_provider: str = "replicate"  # Options: "replicate" or "openai"
    replicate_api_token: str = ""
    replicate_base_url: str = "https://api.replicate.com/v1"
    replicate_model: str = "stability-ai/sdxl"
    replicate_poll_interval_seconds: float = 1.0
    openai_api_key: str = ""
    openai_image_model: str = "dall-e-3"
    openai_image_size: str = "1024x1024"
    generation_timeout_seconds: float = 300.0  # Upper bound on one provider call
    generation_lock_timeout_seconds: float = 360.0  # How long a caller waits for an in-flight generation

    # Identity metadata (TMDB)
    tmdb_api_key: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p/w185"
    metadata_timeout_seconds: float = 10.0

    # Sharing
    share_title: str = "Old School Faces"
    share_url: str = "https://agws.app/oldschoolfaces"

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate choices and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        try:
            ZoneInfo(self.day_timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown day_timezone: {self.day_timezone}") from exc

        if self.cache_backend not in CACHE_BACKENDS:
            raise ValueError(f"Unsupported cache_backend: {self.cache_backend}. Use one of {CACHE_BACKENDS}.")

        if self.image_provider not in IMAGE_PROVIDERS:
            raise ValueError(f"Unsupported image_provider: {self.image_provider}. Use one of {IMAGE_PROVIDERS}.")

        if self.generation_timeout_seconds <= 0:
            raise ValueError("generation_timeout_seconds must be positive")

        if self.generation_lock_timeout_seconds < self.generation_timeout_seconds:
            raise ValueError("generation_lock_timeout_seconds must not be shorter than generation_timeout_seconds")

        if self.replicate_poll_interval_seconds <= 0:
            raise ValueError("replicate_poll_interval_seconds must be positive")

        # Database URL normalization
        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except Exception as e:
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {drivername} -> {parsed.drivername}")
        self.database_url = parsed.render_as_string(hide_password=False)

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated origins."""
        return [item.strip() for item in self.allowed_origins.split(",") if item.strip()]

    @property
    def day_zone(self) -> ZoneInfo:
        return ZoneInfo(self.day_timezone)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
