"""Configuration settings for spentsync."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_spentsync_home() -> Path:
    """Directory holding the local database (``SPENTSYNC_HOME`` or ``~/.spentsync``)."""
    home = os.environ.get("SPENTSYNC_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".spentsync"


class SyncConfig(BaseSettings):
    """Sync settings loaded from the environment (``SPENTSYNC_*``) or ``.env``."""

    # Supabase
    supabase_url: Optional[str] = None
    # New key system (preferred)
    supabase_publishable_key: Optional[str] = None
    # Legacy key (deprecated)
    supabase_anon_key: Optional[str] = None

    # Session tokens of the signed-in user; absent means signed out
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    # Local store
    db_path: Optional[Path] = None

    # Transport timeout for PostgREST calls (seconds)
    postgrest_client_timeout: float = 10.0

    log_level: str = "WARNING"

    class Config:
        env_prefix = "SPENTSYNC_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def supabase_key(self) -> Optional[str]:
        # Prefer the publishable key, fall back to the legacy anon key
        return self.supabase_publishable_key or self.supabase_anon_key

    @property
    def is_remote_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def resolve_db_path(self) -> Path:
        if self.db_path is not None:
            return Path(self.db_path).expanduser()
        return get_spentsync_home() / "spentsync.db"


@lru_cache
def get_config() -> SyncConfig:
    """Get cached config instance."""
    return SyncConfig()
