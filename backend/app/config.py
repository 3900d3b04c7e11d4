import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .errors import ConfigError

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent / "data" / "config"


@dataclass(frozen=True)
class UpstreamSettings:
    base_url: str
    token: str
    timeout_seconds: float
    max_retries: int


class Settings(BaseSettings):
    api_base_url: Optional[str] = Field(None, alias="API_BASE_URL")
    api_token: Optional[str] = Field(None, alias="API_TOKEN")
    api_timeout_ms: int = Field(8000, alias="API_TIMEOUT_MS", ge=1)
    api_max_retries: int = Field(2, alias="API_MAX_RETRIES", ge=0)
    cache_ttl_seconds: int = Field(900, alias="CACHE_TTL_SECONDS", ge=0)
    config_cache_ttl_seconds: int = Field(300, alias="CONFIG_CACHE_TTL_SECONDS", ge=0)
    config_bucket_dir: Path = Field(DEFAULT_CONFIG_DIR, alias="CONFIG_BUCKET_DIR")
    telemetry_bucket_dir: Optional[Path] = Field(None, alias="TELEMETRY_BUCKET_DIR")
    telemetry_log_only: bool = Field(True, alias="TELEMETRY_LOG_ONLY")
    access_password: Optional[str] = Field(None, alias="ACCESS_PASSWORD")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True
        extra = "ignore"

    def upstream_settings(self) -> UpstreamSettings:
        """Return the upstream connection settings or raise when they are incomplete."""
        base_url = (self.api_base_url or "").strip()
        if not base_url:
            raise ConfigError("API_BASE_URL is not configured.")
        token = (self.api_token or "").strip()
        if not token:
            raise ConfigError("API_TOKEN is not configured.")
        return UpstreamSettings(
            base_url=base_url,
            token=token,
            timeout_seconds=self.api_timeout_ms / 1000,
            max_retries=self.api_max_retries,
        )


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid backend configuration: {exc}") from exc
