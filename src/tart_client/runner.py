"""Process runner: execute one tart invocation to completion.

Lifecycle of a single call:
    1. Check the state directory still exists (no process on failure)
    2. Spawn `tart <args>` with TART_HOME applied over the inherited environment
    3. Capture stdout and stderr concurrently until both reach EOF
    4. Only then observe the exit status
    5. Exit 0 -> ExecutionResult; otherwise ExternalCommandFailedError

No timeout is applied here. Callers bound the wait with asyncio.timeout();
on cancellation the child is killed before CancelledError propagates.
"""

from __future__ import annotations

import asyncio
from typing import Any

from tart_client import constants
from tart_client._logging import get_logger
from tart_client.environment import TartEnvironment
from tart_client.exceptions import ExternalCommandFailedError, LaunchFailedError, StreamReadFailedError
from tart_client.models import ExecutionResult, Invocation
from tart_client.platform_utils import ProcessWrapper
from tart_client.subprocess_utils import collect_subprocess_output

logger = get_logger(__name__)


def error_context(invocation: Invocation, operation: str | None, vm_name: str | None) -> dict[str, Any]:
    """Structured context attached to every error raised for an invocation."""
    return {
        "operation": operation or invocation.subcommand,
        "vm_name": vm_name,
        "tart_args": list(invocation.args),
    }


async def spawn(
    environment: TartEnvironment,
    invocation: Invocation,
    *,
    operation: str | None = None,
    vm_name: str | None = None,
) -> ProcessWrapper:
    """Start tart with piped stdout/stderr.

    Shared by run_invocation() and the readiness watcher so both launch the
    child identically.

    Raises:
        ConfigDirError: State directory disappeared since resolution
        LaunchFailedError: The OS could not create the process
    """
    environment.check_config_dir()

    try:
        proc = ProcessWrapper(
            await asyncio.create_subprocess_exec(
                str(environment.binary),
                *invocation.args,
                stdin=asyncio.subprocess.PIPE if invocation.input is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=environment.process_env(invocation.env),
                limit=constants.STREAM_LINE_LIMIT_BYTES,
            )
        )
    except OSError as e:
        raise LaunchFailedError(
            f"Failed to start tart {invocation.subcommand}: {e}",
            context={**error_context(invocation, operation, vm_name), "binary": str(environment.binary)},
        ) from e

    logger.debug(
        "Started tart",
        extra={"tart_args": list(invocation.args), "pid": proc.pid, "vm_name": vm_name},
    )
    return proc


async def run_invocation(
    environment: TartEnvironment,
    invocation: Invocation,
    *,
    operation: str | None = None,
    vm_name: str | None = None,
) -> ExecutionResult:
    """Execute one tart invocation and capture its output.

    Args:
        environment: Resolved executable and TART_HOME
        invocation: Arguments, extra environment and optional stdin bytes
        operation: Operation name for error context (defaults to the subcommand)
        vm_name: VM the call is about, for error context

    Returns:
        ExecutionResult with stdout/stderr bytes and exit code 0

    Raises:
        ConfigDirError: State directory disappeared since resolution
        LaunchFailedError: The OS could not create the process
        StreamReadFailedError: Reading stdout/stderr failed
        ExternalCommandFailedError: tart exited non-zero
    """
    proc = await spawn(environment, invocation, operation=operation, vm_name=vm_name)

    try:
        stdout, stderr = await collect_subprocess_output(proc, input=invocation.input)
        exit_code = await proc.wait()
    except OSError as e:
        await proc.kill()
        raise StreamReadFailedError(
            f"Failed to read tart {invocation.subcommand} output: {e}",
            context=error_context(invocation, operation, vm_name),
        ) from e
    except asyncio.CancelledError:
        await proc.kill()
        raise

    logger.debug(
        "tart exited",
        extra={
            "tart_args": list(invocation.args),
            "pid": proc.pid,
            "exit_code": exit_code,
            "stdout_bytes": len(stdout),
            "stderr_bytes": len(stderr),
        },
    )

    if exit_code != 0:
        raise ExternalCommandFailedError(
            f"tart {invocation.subcommand} failed",
            exit_code=exit_code,
            stderr=stderr.decode(errors="replace"),
            stdout=stdout.decode(errors="replace"),
            args=invocation.args,
            context=error_context(invocation, operation, vm_name),
        )

    return ExecutionResult(stdout=stdout, stderr=stderr, exit_code=exit_code)
