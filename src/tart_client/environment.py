"""Environment resolution for tart invocations.

Resolves, once per client, the tart executable and the state directory
exported as TART_HOME. The result is a frozen TartEnvironment that any number
of concurrent invocations read without synchronisation.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from tart_client import constants
from tart_client._logging import get_logger
from tart_client.config import TartConfig
from tart_client.exceptions import ConfigDirError, TartNotFoundError
from tart_client.platform_utils import HostOS, detect_host_os
from tart_client.settings import Settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class TartEnvironment:
    """Resolved, immutable execution environment shared by all invocations.

    Attributes:
        binary: Absolute path of the tart executable
        config_dir: Directory exported as TART_HOME, or None for tart's default
    """

    binary: Path
    config_dir: Path | None = None

    def overlay(self) -> dict[str, str]:
        """Environment variables injected into every tart process."""
        if self.config_dir is None or not str(self.config_dir):
            return {}
        return {constants.TART_HOME_ENV: str(self.config_dir)}

    def process_env(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        """Inherited environment with the overlay (and per-call extras) applied on top."""
        env = dict(os.environ)
        env.update(self.overlay())
        if extra:
            env.update(extra)
        return env

    def check_config_dir(self) -> None:
        """Verify the state directory still exists before spawning.

        Raises:
            ConfigDirError: Directory was removed after resolution
        """
        if self.config_dir is not None and not self.config_dir.is_dir():
            raise ConfigDirError(
                f"tart config directory does not exist: {self.config_dir}",
                context={"config_dir": str(self.config_dir)},
            )


def locate_executable(binary: str) -> Path:
    """Find the tart executable on PATH (or verify an explicit path).

    Raises:
        TartNotFoundError: Executable not found or not executable
    """
    found = shutil.which(binary)
    if found is None:
        raise TartNotFoundError(
            f"{binary} command not found in PATH",
            context={"binary": binary, "path": os.environ.get("PATH", "")},
        )
    return Path(found)


def resolve_config_dir(config: TartConfig) -> Path | None:
    """Resolve the tart state directory, creating it (mode 0700) if absent.

    Detection order:
    1. Explicit config_dir from config
    2. TART_CLIENT_CONFIG_DIR environment variable
    3. ~/.tart

    Returns:
        Directory path, or None when config.manage_home is False

    Raises:
        ConfigDirError: Home directory cannot be determined, or the directory
            cannot be created
    """
    if not config.manage_home:
        return None

    if config.config_dir is not None:
        path = config.config_dir
    elif (env_dir := Settings().config_dir) is not None:
        path = env_dir
    else:
        try:
            path = Path.home() / constants.DEFAULT_CONFIG_DIR_NAME
        except RuntimeError as e:
            raise ConfigDirError("Could not determine the home directory") from e

    path = path.expanduser()
    if not path.exists():
        try:
            path.mkdir(mode=constants.CONFIG_DIR_MODE, parents=True)
        except OSError as e:
            raise ConfigDirError(
                f"Failed to create tart config directory: {e}",
                context={"config_dir": str(path)},
            ) from e
        logger.info("Created tart config directory", extra={"config_dir": str(path)})
    elif not path.is_dir():
        raise ConfigDirError(
            f"tart config path is not a directory: {path}",
            context={"config_dir": str(path)},
        )

    return path


def resolve_environment(config: TartConfig) -> TartEnvironment:
    """Resolve the executable and state directory for a client.

    Runs once at client construction; failures here are startup
    preconditions, not per-call errors.

    Raises:
        TartNotFoundError: tart is not installed
        ConfigDirError: State directory unavailable
    """
    binary = locate_executable(config.binary)
    config_dir = resolve_config_dir(config)

    if detect_host_os() != HostOS.MACOS:
        logger.warning(
            "tart only supports macOS hosts",
            extra={"host_os": detect_host_os().name, "binary": str(binary)},
        )

    logger.debug(
        "Resolved tart environment",
        extra={"binary": str(binary), "config_dir": str(config_dir) if config_dir else None},
    )
    return TartEnvironment(binary=binary, config_dir=config_dir)
