"""Runtime configuration — env-driven.

Centralized config using pydantic-settings for environment variable
support. Reads from a .env file and OFFSHOOT_* environment variables.
Resource types take their defaults from here; constructor arguments
override them.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class OffshootConfig(BaseSettings):
    """Library configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export OFFSHOOT_DEFAULT_STORAGE=permanent
        export OFFSHOOT_LOG_LEVEL=DEBUG
        export OFFSHOOT_VERSIONS_COMPATIBILITY=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="OFFSHOOT_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Storage keys
    default_storage: str = "store"
    cache_storage: str = "cache"

    # Accept records written before derivatives were nested
    versions_compatibility: bool = False

    # Log every processor run through the default subscriber
    log_processing: bool = True

    # Close and unlink local raw files after they are uploaded
    delete_raw_files: bool = True


# Module-level singleton — import as `from offshoot.config import config`
config = OffshootConfig()
