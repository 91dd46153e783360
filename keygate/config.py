"""
Configuration and settings for the record store service.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_STATIC_DIR = str(Path(__file__).resolve().parent / "static")


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # HTTP listener
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    api_prefix: str = Field(default="/api")
    # Bodies above this size get 413; 0 disables the check.
    max_body_bytes: int = Field(default=10 * 1024 * 1024)

    # Persistence. database_url wins over data_file when set.
    data_file: str = Field(default="database.json")
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Admin routes are open when this is empty.
    admin_token: Optional[str] = Field(default=None)

    # Key issuance and login
    key_prefix: str = Field(default="sk_live_")
    key_length: int = Field(default=26)
    role_label: str = Field(default="Developer Access")
    allow_shared_keys: bool = Field(default=True)

    # Single-page shell
    static_dir: str = Field(default=PACKAGE_STATIC_DIR)
    index_file: str = Field(default="index.html")

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
