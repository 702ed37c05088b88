"""Subprocess stream utilities.

- collect_subprocess_output: concurrent stdout/stderr capture (prevents 64KB pipe deadlock)
- read_stream: drain one stream into a buffer, optionally keeping only its tail
- log_task_exception: done-callback that logs background task failures
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from tart_client import constants
from tart_client._logging import get_logger

if TYPE_CHECKING:
    from tart_client.platform_utils import ProcessWrapper

logger = get_logger(__name__)


async def read_stream(
    stream: asyncio.StreamReader,
    sink: bytearray,
    *,
    max_bytes: int | None = None,
) -> None:
    """Read a stream to EOF into sink.

    Args:
        stream: Pipe to drain
        sink: Buffer receiving the bytes, in order
        max_bytes: If set, keep only the last max_bytes bytes (the stream is
            still read to EOF so the writer never blocks)
    """
    while chunk := await stream.read(constants.STREAM_READ_CHUNK_BYTES):
        sink.extend(chunk)
        if max_bytes is not None and len(sink) > max_bytes:
            del sink[: len(sink) - max_bytes]


async def _feed_stdin(stdin: asyncio.StreamWriter, data: bytes) -> None:
    # Same contract as Process.communicate(): a child that exits without
    # reading its stdin is not an error.
    with contextlib.suppress(BrokenPipeError, ConnectionResetError):
        if data:
            stdin.write(data)
            await stdin.drain()
    stdin.close()
    with contextlib.suppress(BrokenPipeError, ConnectionResetError):
        await stdin.wait_closed()


async def collect_subprocess_output(
    process: ProcessWrapper,
    *,
    input: bytes | None = None,
) -> tuple[bytes, bytes]:
    """Capture stdout and stderr concurrently until both reach EOF.

    Critical: reading the pipes one after the other deadlocks as soon as the
    child fills one pipe buffer (64KB) while we block on the other. Feeding
    stdin runs as a third concurrent task for the same reason.

    Args:
        process: Spawned process with piped stdout/stderr
        input: Bytes for stdin (only used when stdin is piped)

    Returns:
        Tuple of (stdout, stderr) bytes

    Raises:
        OSError: Reading a pipe failed; remaining readers are cancelled
    """
    stdout = bytearray()
    stderr = bytearray()

    tasks: list[asyncio.Task[None]] = []
    if process.stdin is not None:
        tasks.append(asyncio.create_task(_feed_stdin(process.stdin, input or b"")))
    if process.stdout is not None:
        tasks.append(asyncio.create_task(read_stream(process.stdout, stdout)))
    if process.stderr is not None:
        tasks.append(asyncio.create_task(read_stream(process.stderr, stderr)))

    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    return bytes(stdout), bytes(stderr)


def log_task_exception(task: asyncio.Task[None]) -> None:
    """Log exceptions from background tasks.

    Usage:
        task = asyncio.create_task(some_coroutine())
        task.add_done_callback(log_task_exception)
    """
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Background task failed",
            extra={"task_name": task.get_name()},
            exc_info=exc,
        )
