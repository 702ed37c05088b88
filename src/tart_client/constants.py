"""Constants for tart-client configuration and the tart command contract."""

from typing import Final

# ============================================================================
# tart Executable Contract
# ============================================================================

TART_BINARY: Final[str] = "tart"
"""Default executable name, looked up on PATH."""

TART_HOME_ENV: Final[str] = "TART_HOME"
"""Environment variable that redirects tart's state directory."""

DEFAULT_CONFIG_DIR_NAME: Final[str] = ".tart"
"""State directory under the user's home when none is configured."""

CONFIG_DIR_MODE: Final[int] = 0o700
"""Permissions for a freshly created state directory (owner only)."""

READINESS_MARKER: Final[str] = "VM is up"
"""Line printed on stdout by `tart run` once the guest is running."""

LIST_FORMAT: Final[str] = "json"
"""Output format requested from `tart list`."""

# ============================================================================
# Output Handling
# ============================================================================

STREAM_READ_CHUNK_BYTES: Final[int] = 64 * 1024
"""Chunk size for draining stdout/stderr (matches the Linux pipe buffer)."""

STREAM_LINE_LIMIT_BYTES: Final[int] = 1024 * 1024
"""Maximum length of a single stdout line during the readiness scan."""

STDERR_TAIL_BYTES: Final[int] = 64 * 1024
"""stderr kept from a long-running `tart run` for error diagnostics."""
