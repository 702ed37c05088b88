"""Runtime configuration from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from tart_client import constants


class Settings(BaseSettings):
    """Runtime configuration from environment variables.

    All settings can be overridden via environment variables with TART_CLIENT_ prefix.
    Example: TART_CLIENT_CONFIG_DIR=/Volumes/fast/tart
    """

    model_config = SettingsConfigDict(
        env_prefix="TART_CLIENT_",
        extra="ignore",
    )

    binary: str = constants.TART_BINARY
    config_dir: Path | None = None  # None = ~/.tart
    host: str = ""  # registry host for login/logout
    manage_home: bool = True
    legacy_dir_sync: bool = False
    """Only emit a --dir sync= segment when a tag is present (older client behaviour)."""
