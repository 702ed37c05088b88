"""Unit tests for data models and option models."""

import pytest
from pydantic import ValidationError

from tart_client.models import ExecutionResult, Invocation, VmDescriptor, VmSource, VmState
from tart_client.options import CreateOptions, DirMount, PushOptions, RunOptions, StopOptions

# ============================================================================
# Invocation / ExecutionResult
# ============================================================================


class TestInvocation:
    """Tests for Invocation."""

    def test_subcommand(self) -> None:
        invocation = Invocation(args=("run", "--no-graphics", "vm1"))
        assert invocation.subcommand == "run"
        assert invocation.env == {}
        assert invocation.input is None

    def test_empty_args_rejected(self) -> None:
        """An invocation must name a subcommand."""
        with pytest.raises(ValidationError):
            Invocation(args=())

    def test_frozen(self) -> None:
        invocation = Invocation(args=("list",))
        with pytest.raises(ValidationError):
            invocation.args = ("ip",)  # type: ignore[misc]


class TestExecutionResult:
    """Tests for ExecutionResult."""

    def test_success(self) -> None:
        assert ExecutionResult(stdout=b"ok", stderr=b"", exit_code=0).success
        assert not ExecutionResult(stdout=b"", stderr=b"err", exit_code=1).success


# ============================================================================
# VmDescriptor
# ============================================================================


class TestVmDescriptor:
    """Tests for decoding tart list records."""

    def test_capitalised_keys(self) -> None:
        vm = VmDescriptor.model_validate(
            {"Name": "vm1", "Source": "local", "State": "running", "Disk": 50, "Size": 21, "SizeOnDisk": 18}
        )
        assert vm.name == "vm1"
        assert vm.source == VmSource.LOCAL
        assert vm.state == VmState.RUNNING
        assert (vm.disk, vm.size, vm.size_on_disk) == (50, 21, 18)

    def test_camel_case_keys(self) -> None:
        vm = VmDescriptor.model_validate({"name": "vm1", "source": "remote", "state": "stopped", "sizeOnDisk": 3})
        assert vm.source == VmSource.REMOTE
        assert vm.state == VmState.STOPPED
        assert vm.size_on_disk == 3

    def test_unknown_state(self) -> None:
        """Unrecognised state strings decode as UNKNOWN instead of failing."""
        vm = VmDescriptor.model_validate({"Name": "vm1", "Source": "local", "State": "booting"})
        assert vm.state == VmState.UNKNOWN

    def test_state_case_insensitive(self) -> None:
        vm = VmDescriptor.model_validate({"Name": "vm1", "Source": "local", "State": "Suspended"})
        assert vm.state == VmState.SUSPENDED

    def test_missing_state_is_unknown(self) -> None:
        vm = VmDescriptor.model_validate({"Name": "vm1", "Source": "local"})
        assert vm.state == VmState.UNKNOWN

    def test_missing_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VmDescriptor.model_validate({"Source": "local", "State": "stopped"})

    @pytest.mark.parametrize("value", [1.5, "50", True])
    def test_sizes_must_be_integers(self, value: object) -> None:
        """Numeric fields never coerce floats, strings or booleans."""
        with pytest.raises(ValidationError):
            VmDescriptor.model_validate({"Name": "vm1", "Source": "local", "Disk": value})


# ============================================================================
# Option models
# ============================================================================


class TestOptions:
    """Tests for option model validation."""

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RunOptions(no_graphic=True)  # type: ignore[call-arg]

    def test_negative_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateOptions(disk_size=-1)
        with pytest.raises(ValidationError):
            StopOptions(timeout=-5)

    def test_dir_mount_requires_path(self) -> None:
        with pytest.raises(ValidationError):
            DirMount(path="")

    def test_push_requires_remote(self) -> None:
        with pytest.raises(ValidationError):
            PushOptions(remote_names=())

    def test_run_options_lists_become_tuples(self) -> None:
        options = RunOptions(disks=["a.img"], dirs=[{"path": "/tmp/x"}])  # type: ignore[arg-type]
        assert options.disks == ("a.img",)
        assert options.dirs == (DirMount(path="/tmp/x"),)
