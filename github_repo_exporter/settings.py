"""Application settings loaded from environment variables and .env file."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the repository exporter."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Optional: unauthenticated requests work but get 60 req/hour instead of 5K
    github_token: SecretStr | None = None

    max_workers: int = 10
    max_file_size: int = 1_000_000  # 1MB
    max_retries: int = 3
    content_max_retries: int = 5
    request_timeout: float = 30.0
    requests_per_second: float = 10.0
    max_rate_limit_wait: float = 3600.0
    extra_ignored_dirs: list[str] = []
    show_skipped: bool = True
    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
