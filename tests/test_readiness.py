"""Tests for the `tart run` readiness watcher.

The fake tart's run subcommand is steered with FAKE_TART_RUN_MODE:
ready, exit_ok, exit_fail, stderr_flood, long_line and ready_long_line.
"""

import asyncio
from pathlib import Path

import pytest

from tart_client import readiness
from tart_client.exceptions import ExternalCommandFailedError, StreamReadFailedError
from tart_client.models import Invocation
from tests.conftest import FakeTart, skip_on_windows

pytestmark = skip_on_windows

RUN_VM1 = Invocation(args=("run", "--no-graphics", "vm1"))


# ============================================================================
# Readiness detected
# ============================================================================


class TestReady:
    """The marker appears while the supervisor keeps running."""

    async def test_returns_before_exit(self, fake_tart: FakeTart) -> None:
        """Readiness is reported while `tart run` is still alive."""
        async with asyncio.timeout(10):
            vm = await readiness.watch_for_readiness(fake_tart.environment(), RUN_VM1, vm_name="vm1")
        try:
            assert vm.ready
            assert vm.name == "vm1"
            assert vm.returncode is None
            assert await vm.is_running()
        finally:
            await vm.terminate()
            async with asyncio.timeout(10):
                exit_code = await vm.wait()
        assert exit_code != 0
        assert not await vm.is_running()

    async def test_heavy_stderr_does_not_block(self, fake_tart: FakeTart) -> None:
        """stderr beyond the pipe buffer is drained while stdout is scanned."""
        fake_tart.set_run_mode("stderr_flood")
        async with asyncio.timeout(30):
            vm = await readiness.watch_for_readiness(fake_tart.environment(), RUN_VM1, vm_name="vm1")
        try:
            assert vm.ready
        finally:
            await vm.kill()
            async with asyncio.timeout(10):
                await vm.wait()
        # Only the tail is retained
        assert "retrying request number 2999" in vm.stderr_tail
        assert len(vm.stderr_tail.encode()) <= 64 * 1024

    async def test_oversized_line_after_ready_keeps_draining(
        self, fake_tart: FakeTart, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        """A line over the reader limit after readiness does not stop stdout draining.

        The supervisor writes more than the pipe and reader buffers can hold
        after the long line; it only gets to the end if stdout keeps being read.
        """
        done = tmp_path / "supervisor-done"
        monkeypatch.setenv("FAKE_TART_DONE", str(done))
        fake_tart.set_run_mode("ready_long_line")

        async with asyncio.timeout(10):
            vm = await readiness.watch_for_readiness(fake_tart.environment(), RUN_VM1, vm_name="vm1")
        try:
            assert vm.ready
            async with asyncio.timeout(20):
                while not done.exists():
                    await asyncio.sleep(0.05)
            assert await vm.is_running()
        finally:
            await vm.kill()
            async with asyncio.timeout(10):
                await vm.wait()

    async def test_custom_marker(self, fake_tart: FakeTart) -> None:
        async with asyncio.timeout(10):
            vm = await readiness.watch_for_readiness(
                fake_tart.environment(), RUN_VM1, vm_name="vm1", marker="booting"
            )
        try:
            assert vm.ready
        finally:
            await vm.kill()
            await vm.wait()

    async def test_repr(self, fake_tart: FakeTart) -> None:
        vm = await readiness.watch_for_readiness(fake_tart.environment(), RUN_VM1, vm_name="vm1")
        try:
            assert "name='vm1'" in repr(vm)
            assert "ready=True" in repr(vm)
        finally:
            await vm.kill()
            await vm.wait()


# ============================================================================
# EOF without the marker
# ============================================================================


class TestExitWithoutMarker:
    """stdout closed before the marker: exit status decides."""

    async def test_exit_zero_not_ready(self, fake_tart: FakeTart) -> None:
        fake_tart.set_run_mode("exit_ok")
        async with asyncio.timeout(10):
            vm = await readiness.watch_for_readiness(fake_tart.environment(), RUN_VM1, vm_name="vm1")
        assert not vm.ready
        assert vm.returncode == 0

    async def test_exit_nonzero_raises(self, fake_tart: FakeTart) -> None:
        fake_tart.set_run_mode("exit_fail")
        with pytest.raises(ExternalCommandFailedError) as exc_info:
            async with asyncio.timeout(10):
                await readiness.watch_for_readiness(fake_tart.environment(), RUN_VM1, vm_name="vm1")
        error = exc_info.value
        assert error.exit_code == 1
        assert "the VM vm1 does not exist" in error.stderr
        assert error.operation == "run"
        assert error.vm_name == "vm1"
        assert error.tart_args == RUN_VM1.args


# ============================================================================
# Read failures and cancellation
# ============================================================================


class TestWatcherFailures:
    """Errors other than EOF while scanning stdout."""

    async def test_oversized_line(self, fake_tart: FakeTart) -> None:
        """A line longer than the stream limit is a read failure, and the child is killed."""
        fake_tart.set_run_mode("long_line")
        with pytest.raises(StreamReadFailedError) as exc_info:
            async with asyncio.timeout(30):
                await readiness.watch_for_readiness(fake_tart.environment(), RUN_VM1, vm_name="vm1")
        assert exc_info.value.vm_name == "vm1"
        assert isinstance(exc_info.value.__cause__, ValueError)

    async def test_cancellation_kills_child(self, fake_tart: FakeTart, monkeypatch: pytest.MonkeyPatch) -> None:
        """Cancelling before readiness leaves no supervisor behind."""
        spawned = []
        original_spawn = readiness.spawn

        async def recording_spawn(*args: object, **kwargs: object):
            proc = await original_spawn(*args, **kwargs)  # type: ignore[arg-type]
            spawned.append(proc)
            return proc

        monkeypatch.setattr(readiness, "spawn", recording_spawn)
        # Delayed echo: alive, silent, no marker
        monkeypatch.setenv("FAKE_TART_DELAY", "30")
        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.5):
                await readiness.watch_for_readiness(
                    fake_tart.environment(), Invocation(args=("echo", "vm1")), vm_name="vm1"
                )

        assert len(spawned) == 1
        async with asyncio.timeout(10):
            await spawned[0].wait()
        assert spawned[0].returncode != 0
