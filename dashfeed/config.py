"""Application configuration powered by pydantic-settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from ``DASHFEED_*`` variables or ``.env``."""

    ftp_host: str = Field(default="", description="FTP server hostname")
    ftp_port: int = Field(default=21, description="FTP control port")
    ftp_user: str = Field(default="", description="FTP login")
    ftp_password: str = Field(default="", description="FTP password")
    ftp_file: str = Field(default="", description="Remote path of the export, e.g. generalb2b.csv")
    ftp_timeout: float = Field(default=15.0, description="Socket timeout in seconds")

    cache_ttl_seconds: float = Field(
        default=60.0,
        description="How long a downloaded document is reused; 0 disables the cache",
    )
    flat_fallback: bool = Field(
        default=True,
        description="Parse header-less documents as a plain delimited file",
    )
    cors: bool = Field(default=False, description="Enable permissive CORS")
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="DASHFEED_",
        extra="ignore",
    )

    @field_validator("cache_ttl_seconds", "ftp_timeout")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Expected a non-negative number of seconds, got {v}")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
