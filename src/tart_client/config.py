"""Client configuration for tart-client.

TartConfig is the immutable value a Tart client is constructed with. It is
resolved once into a TartEnvironment and then shared read-only by every
invocation the client makes.

Example:
    ```python
    from tart_client import Tart, TartConfig

    # Defaults: `tart` on PATH, state in ~/.tart
    tart = Tart()

    # Custom state directory and registry host
    config = TartConfig(config_dir=Path("/Volumes/fast/tart"), host="ghcr.io")
    tart = Tart(config)
    ```
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from tart_client import constants
from tart_client.settings import Settings


class TartConfig(BaseModel):
    """Configuration for Tart.

    Attributes:
        binary: Executable name or path, resolved against PATH at construction.
        config_dir: tart state directory, exported as TART_HOME.
            If None, falls back to TART_CLIENT_CONFIG_DIR, then ~/.tart.
        manage_home: When False, no directory is resolved and TART_HOME is not
            set, so tart applies its own default.
        host: Registry host used by login/logout.
        legacy_dir_sync: Serialize --dir mounts the way older clients did,
            dropping the sync mode unless a tag is also set.
    """

    model_config = ConfigDict(
        frozen=True,  # Immutable after creation
        extra="forbid",  # Reject unknown fields
    )

    binary: str = Field(
        default=constants.TART_BINARY,
        min_length=1,
        description="tart executable name or path",
    )
    config_dir: Path | None = Field(
        default=None,
        description="tart state directory (TART_HOME); auto-detect if None",
    )
    manage_home: bool = Field(
        default=True,
        description="Resolve and export TART_HOME",
    )
    host: str = Field(
        default="",
        description="Registry host for login/logout",
    )
    legacy_dir_sync: bool = Field(
        default=False,
        description="Drop --dir sync mode when no tag is set",
    )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> TartConfig:
        """Build a config from TART_CLIENT_* environment variables."""
        settings = settings or Settings()
        return cls(
            binary=settings.binary,
            config_dir=settings.config_dir,
            manage_home=settings.manage_home,
            host=settings.host,
            legacy_dir_sync=settings.legacy_dir_sync,
        )
