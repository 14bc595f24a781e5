"""Application settings loaded from environment variables and .env files."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Hey future me, every section is a plain BaseModel nested inside Settings. pydantic-settings
# fills them from env vars like MUSICINDEX_LIBRARY__PATH=/music (note the DOUBLE underscore
# between section and field). Keep defaults sane enough that `Settings()` works in tests
# without any environment at all!
class LibrarySettings(BaseModel):
    """Where the music lives and how URLs are rendered."""

    path: Path = Field(default=Path("./music"), description="Library root directory")
    base_url: str = Field(
        default="",
        description="Prefix for content URLs (e.g. http://localhost:8000)",
    )
    url_mode: Literal["content", "file"] = Field(
        default="content",
        description="content = /kind/{id} URLs, file = file:// URIs for playback",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class DatabaseSettings(BaseModel):
    """Metadata store connection settings."""

    url: str | None = Field(
        default=None,
        description="SQLAlchemy async URL; defaults to .musicindex.db in the library root",
    )
    echo: bool = False
    pool_pre_ping: bool = True


class ScannerSettings(BaseModel):
    """Synchronizer tuning."""

    enabled: bool = Field(
        default=True,
        description="Set to false to skip all metadata scans (index still builds)",
    )
    batch_size: int = Field(default=4, ge=1, le=64)
    worker_mode: Literal["thread", "process"] = "thread"
    max_workers: int = Field(
        default_factory=lambda: min(8, max(2, os.cpu_count() or 4)),
        ge=1,
    )


class WatcherSettings(BaseModel):
    """Filesystem watcher tuning."""

    enabled: bool = True
    debounce_ms: int = Field(default=3000, ge=0)


class ApiSettings(BaseModel):
    """HTTP server binding."""

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)


class ObservabilitySettings(BaseModel):
    """Logging output settings."""

    log_json_format: bool = False


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="MUSICINDEX_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "musicindex"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    library: LibrarySettings = Field(default_factory=LibrarySettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    scanner: ScannerSettings = Field(default_factory=ScannerSettings)
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value

    @property
    def database_url(self) -> str:
        """Effective database URL (explicit setting or library-local SQLite file)."""
        if self.database.url:
            return self.database.url
        db_file = self.library.path.expanduser().resolve() / ".musicindex.db"
        return f"sqlite+aiosqlite:///{db_file}"


# Yo, lru_cache makes this a process-wide singleton without a global variable. Tests that
# tweak env vars must call get_settings.cache_clear() first or they get the stale copy!
@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
