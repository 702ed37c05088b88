"""Exception hierarchy for tart-client.

All exceptions inherit from TartError base class.

Hierarchy:
    TartError (base)
    ├── PreconditionFailedError (detected before any process is spawned)
    │   ├── TartNotFoundError          ← tart executable not on PATH
    │   ├── ConfigDirError             ← TART_HOME missing / not creatable
    │   ├── VmAlreadyExistsError       ← create/clone/import target taken
    │   ├── VmNotFoundError            ← run/state target missing
    │   └── VmAlreadyRunningError      ← run on a running VM
    ├── LaunchFailedError              ← OS could not create the child process
    ├── ExternalCommandFailedError     ← tart exited non-zero
    ├── StreamReadFailedError          ← I/O error (not EOF) reading output
    └── DecodeFailedError              ← output did not match expected shape

No error is retried internally: repeating a stateful tart command
(create/push/clone) is not safe to do blindly.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class TartError(Exception):
    """Base exception for all tart-client errors with structured context.

    Attributes:
        message: Human-readable error message
        context: Dictionary of structured error context (operation, vm_name, ...)
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    @property
    def operation(self) -> str | None:
        """tart subcommand the error belongs to, when known."""
        return self.context.get("operation")

    @property
    def vm_name(self) -> str | None:
        """VM the error belongs to, when known."""
        return self.context.get("vm_name")


# =============================================================================
# Precondition Errors (no subprocess was ever allocated)
# =============================================================================


class PreconditionFailedError(TartError):
    """A precondition of the operation does not hold.

    Raised before any process is spawned.
    """


class TartNotFoundError(PreconditionFailedError):
    """The tart executable could not be found on PATH."""


class ConfigDirError(PreconditionFailedError):
    """The tart configuration directory is missing or cannot be created."""


class VmAlreadyExistsError(PreconditionFailedError):
    """A VM with the requested name already exists."""


class VmNotFoundError(PreconditionFailedError):
    """The requested VM does not exist."""


class VmAlreadyRunningError(PreconditionFailedError):
    """The VM is already running, so it cannot be started again."""


# =============================================================================
# Execution Errors
# =============================================================================


class LaunchFailedError(TartError):
    """The OS failed to create the tart child process.

    The operation never started, so there is no output to inspect.
    The OSError is chained as ``__cause__``.
    """


class ExternalCommandFailedError(TartError):
    """tart ran and exited with a non-zero status.

    Attributes:
        exit_code: Process exit status (negative for signals)
        stderr: Captured standard error, verbatim
        stdout: Captured standard output, verbatim
        tart_args: Arguments tart was invoked with
    """

    def __init__(
        self,
        message: str,
        *,
        exit_code: int,
        stderr: str = "",
        stdout: str = "",
        args: Sequence[str] = (),
        context: dict[str, Any] | None = None,
    ):
        ctx = context or {}
        ctx.update({"exit_code": exit_code, "tart_args": list(args)})
        super().__init__(message, ctx)
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        self.tart_args = tuple(args)

    def __str__(self) -> str:
        details = self.stderr.strip()
        if details:
            return f"{self.message} (exit {self.exit_code}): {details}"
        return f"{self.message} (exit {self.exit_code})"


class StreamReadFailedError(TartError):
    """Reading tart's output failed with an I/O error that is not EOF."""


class DecodeFailedError(TartError):
    """tart exited successfully but its output did not match the expected schema."""
