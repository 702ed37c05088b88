"""Host OS detection and PID-reuse safe process management.

Uses psutil's built-in OS detection constants. tart only runs on macOS; other
hosts are still allowed so the client can be exercised against a stand-in
executable.
"""

import asyncio
import contextlib
from enum import Enum, auto
from functools import cache

import psutil


class HostOS(Enum):
    """Host operating systems."""

    MACOS = auto()
    """macOS (the only platform tart supports)."""

    LINUX = auto()

    UNKNOWN = auto()


@cache
def detect_host_os() -> HostOS:
    """Detect current host operating system using psutil constants."""
    if psutil.MACOS:
        return HostOS.MACOS
    if psutil.LINUX:
        return HostOS.LINUX
    return HostOS.UNKNOWN


class ProcessWrapper:
    """PID-reuse safe process wrapper using psutil.

    Wraps asyncio.subprocess.Process with psutil.Process so that signalling a
    long-lived `tart run` supervisor never hits a recycled PID.
    """

    def __init__(self, async_proc: asyncio.subprocess.Process) -> None:
        self.async_proc = async_proc
        self.psutil_proc: psutil.Process | None = None

        if async_proc.pid:
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                # Process already died or inaccessible
                self.psutil_proc = psutil.Process(async_proc.pid)

    async def is_running(self) -> bool:
        """Check if process is still running (PID-reuse safe).

        Runs the blocking psutil call in a worker thread.
        """
        if self.async_proc.returncode is not None:
            return False
        if not self.psutil_proc:
            return True

        try:
            return await asyncio.to_thread(self.psutil_proc.is_running)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False

    @property
    def pid(self) -> int | None:
        """Process ID."""
        return self.async_proc.pid

    @property
    def returncode(self) -> int | None:
        """Process return code (None if still running)."""
        return self.async_proc.returncode

    async def wait(self) -> int:
        """Wait for process to complete.

        Returns:
            Process exit code
        """
        return await self.async_proc.wait()

    @property
    def stdin(self) -> asyncio.StreamWriter | None:
        """Process stdin stream."""
        return self.async_proc.stdin

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        """Process stdout stream."""
        return self.async_proc.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        """Process stderr stream."""
        return self.async_proc.stderr

    async def terminate(self) -> None:
        """Terminate process (SIGTERM) without blocking the event loop."""
        if self.psutil_proc and await self.is_running():
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                await asyncio.to_thread(self.psutil_proc.terminate)
        elif self.async_proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self.async_proc.terminate()

    async def kill(self) -> None:
        """Kill process (SIGKILL) without blocking the event loop."""
        if self.psutil_proc and await self.is_running():
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                await asyncio.to_thread(self.psutil_proc.kill)
        elif self.async_proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self.async_proc.kill()
