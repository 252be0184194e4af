"""Application configuration."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    token: str | None = None
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_allow_origins: list[str] = ["*"]

    job_store_backend: Literal["redis", "memory"] = "redis"
    redis_url: str | None = None
    job_ttl_seconds: int = 259200

    ytdlp_binary: str = "yt-dlp"
    fallback_js_runtime: str | None = None
    download_dir: Path = Path("/tmp/downloader")
    artifact_retention_seconds: float = 1800
    artifact_sweep_interval_seconds: float = 600

    transcription_engine: Literal["placeholder"] = "placeholder"
    transcribe_start_delay_seconds: float = 1.0
    transcribe_finish_delay_seconds: float = 2.0

    model_config = SettingsConfigDict(env_prefix="DOWNLOADER_", extra="ignore")

    @model_validator(mode="after")
    def _require_redis_url(self) -> "Settings":
        if self.job_store_backend == "redis" and not self.redis_url:
            raise ValueError("DOWNLOADER_REDIS_URL is required when the redis job store backend is selected")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
