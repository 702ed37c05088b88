"""Streaming readiness watcher for `tart run`.

`tart run` does not exit once the VM is up: the process is the VM's
supervisor and only exits when the VM stops. Instead of waiting for exit, the
watcher scans stdout line by line and reports success as soon as the
readiness marker ("VM is up") appears.

Two stages of one task, in order:
    1. Scan stdout until the marker (-> ready) or EOF
    2. After EOF only: wait for exit and report the exit status

stderr is drained concurrently for the whole lifetime of the process, so a
chatty supervisor can never block on a full pipe while we read stdout.
"""

from __future__ import annotations

import asyncio

from tart_client import constants
from tart_client._logging import get_logger
from tart_client.environment import TartEnvironment
from tart_client.exceptions import ExternalCommandFailedError, StreamReadFailedError
from tart_client.models import Invocation
from tart_client.platform_utils import ProcessWrapper
from tart_client.runner import error_context, spawn
from tart_client.subprocess_utils import log_task_exception, read_stream

logger = get_logger(__name__)


class RunningVm:
    """Handle on a `tart run` supervisor process.

    Returned by watch_for_readiness(). When ``ready`` is True the process is
    still alive and its output keeps being drained in the background; the
    caller decides whether to wait() for the VM to stop or terminate() it.
    When ``ready`` is False the process has already exited with status 0.
    """

    def __init__(
        self,
        name: str,
        process: ProcessWrapper,
        *,
        ready: bool,
        background_tasks: list[asyncio.Task[None]] | None = None,
        stderr_tail: bytearray | None = None,
    ) -> None:
        self.name = name
        self.ready = ready
        self._process = process
        self._background_tasks = background_tasks or []
        self._stderr_tail = stderr_tail if stderr_tail is not None else bytearray()

    def __repr__(self) -> str:
        return f"RunningVm(name={self.name!r}, pid={self.pid}, ready={self.ready}, returncode={self.returncode})"

    @property
    def pid(self) -> int | None:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        """Exit status of the supervisor, None while the VM is running."""
        return self._process.returncode

    @property
    def stderr_tail(self) -> str:
        """Most recent stderr output of the supervisor."""
        return self._stderr_tail.decode(errors="replace")

    async def is_running(self) -> bool:
        return await self._process.is_running()

    async def wait(self) -> int:
        """Wait until the supervisor exits (the VM stopped) and return its exit status."""
        exit_code = await self._process.wait()
        # Pipes close with the process; let the drain tasks finish reading them
        await asyncio.gather(*self._background_tasks, return_exceptions=True)
        logger.info("tart run exited", extra={"vm_name": self.name, "exit_code": exit_code})
        return exit_code

    async def terminate(self) -> None:
        """Ask the supervisor to shut the VM down (SIGTERM)."""
        await self._process.terminate()

    async def kill(self) -> None:
        await self._process.kill()


async def _follow_stdout(stream: asyncio.StreamReader, vm_name: str) -> None:
    """Drain the supervisor's stdout until EOF, logging each line.

    Serial console output can produce lines longer than the reader limit.
    StreamReader.readline() discards the oversized data before raising
    ValueError, so reading simply continues; stopping here would leave
    tart blocked on a full pipe.
    """
    discarded = 0
    while True:
        try:
            line = await stream.readline()
        except ValueError:
            discarded += 1
            logger.debug("Discarded oversized tart run stdout line", extra={"vm_name": vm_name})
            continue
        if not line:
            break
        decoded = line.decode(errors="replace").rstrip()
        if decoded:
            logger.debug(f"[tart run stdout] {decoded}", extra={"vm_name": vm_name, "output": decoded})
    if discarded:
        logger.info(
            "tart run stdout contained oversized lines",
            extra={"vm_name": vm_name, "discarded_lines": discarded},
        )


async def watch_for_readiness(
    environment: TartEnvironment,
    invocation: Invocation,
    *,
    vm_name: str,
    marker: str = constants.READINESS_MARKER,
) -> RunningVm:
    """Start `tart run` and return as soon as the VM reports readiness.

    Args:
        environment: Resolved executable and TART_HOME
        invocation: `run` invocation built by tart_cmd.build_run_args()
        vm_name: VM being started (log/error context)
        marker: Substring of the stdout line that signals readiness

    Returns:
        RunningVm with ready=True if the marker appeared (process still
        running), or ready=False if stdout closed without it and the process
        exited 0

    Raises:
        ConfigDirError: State directory disappeared since resolution
        LaunchFailedError: The OS could not create the process
        StreamReadFailedError: stdout read failed with something other than EOF
        ExternalCommandFailedError: stdout closed without the marker and tart
            exited non-zero
    """
    proc = await spawn(environment, invocation, operation="run", vm_name=vm_name)
    assert proc.stdout is not None
    assert proc.stderr is not None

    stderr_tail = bytearray()
    stderr_task = asyncio.create_task(
        read_stream(proc.stderr, stderr_tail, max_bytes=constants.STDERR_TAIL_BYTES),
        name=f"tart-run-stderr-{vm_name}",
    )
    stderr_task.add_done_callback(log_task_exception)

    # Stage 1: scan stdout for the marker
    try:
        while True:
            try:
                line = await proc.stdout.readline()
            except (OSError, ValueError) as e:
                # ValueError: a single line exceeded the StreamReader limit
                raise StreamReadFailedError(
                    f"Failed to read tart run output: {e}",
                    context=error_context(invocation, "run", vm_name),
                ) from e

            if not line:
                break  # EOF: fall through to exit status

            decoded = line.decode(errors="replace").rstrip()
            logger.debug(f"[tart run stdout] {decoded}", extra={"vm_name": vm_name, "output": decoded})

            if marker in decoded:
                follow_task = asyncio.create_task(
                    _follow_stdout(proc.stdout, vm_name),
                    name=f"tart-run-stdout-{vm_name}",
                )
                follow_task.add_done_callback(log_task_exception)
                logger.info("VM is up and running", extra={"vm_name": vm_name, "pid": proc.pid})
                return RunningVm(
                    vm_name,
                    proc,
                    ready=True,
                    background_tasks=[stderr_task, follow_task],
                    stderr_tail=stderr_tail,
                )
    except BaseException:
        # Read failure or cancellation: do not leave an unsupervised VM behind
        stderr_task.cancel()
        await proc.kill()
        raise

    # Stage 2: stdout closed without the marker; exit status decides
    try:
        await stderr_task
    except OSError as e:
        await proc.kill()
        raise StreamReadFailedError(
            f"Failed to read tart run stderr: {e}",
            context=error_context(invocation, "run", vm_name),
        ) from e
    exit_code = await proc.wait()

    if exit_code != 0:
        raise ExternalCommandFailedError(
            "VM process exited with error",
            exit_code=exit_code,
            stderr=stderr_tail.decode(errors="replace"),
            args=invocation.args,
            context=error_context(invocation, "run", vm_name),
        )

    logger.info("tart run exited before readiness", extra={"vm_name": vm_name, "exit_code": exit_code})
    return RunningVm(vm_name, proc, ready=False, stderr_tail=stderr_tail)
