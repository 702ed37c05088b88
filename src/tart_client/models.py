"""Data models for tart-client."""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class VmState(str, Enum):
    """Lifecycle state reported by `tart list`."""

    RUNNING = "running"
    STOPPED = "stopped"
    SUSPENDED = "suspended"
    UNKNOWN = "unknown"


class VmSource(str, Enum):
    """Where a VM image lives."""

    LOCAL = "local"
    REMOTE = "remote"


class Invocation(BaseModel):
    """A fully built tart command: arguments plus environment overlay."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    args: tuple[str, ...] = Field(min_length=1, description="Subcommand followed by its flags and operands")
    env: dict[str, str] = Field(default_factory=dict, description="Extra environment for this call only")
    input: bytes | None = Field(default=None, description="Bytes written to the child's stdin")

    @property
    def subcommand(self) -> str:
        return self.args[0]


class ExecutionResult(BaseModel):
    """Captured output of one finished tart invocation."""

    model_config = ConfigDict(frozen=True)

    stdout: bytes = Field(description="Standard output, verbatim")
    stderr: bytes = Field(description="Standard error, verbatim")
    exit_code: int = Field(description="Process exit code (0=success)")

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class VmDescriptor(BaseModel):
    """One record of `tart list --format json`.

    tart emits capitalised keys (``Name``, ``SizeOnDisk``); camelCase keys are
    accepted as well.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(validation_alias=AliasChoices("Name", "name"))
    source: VmSource = Field(validation_alias=AliasChoices("Source", "source"))
    state: VmState = Field(default=VmState.UNKNOWN, validation_alias=AliasChoices("State", "state"))
    disk: int = Field(default=0, validation_alias=AliasChoices("Disk", "disk"))
    size: int = Field(default=0, validation_alias=AliasChoices("Size", "size"))
    size_on_disk: int = Field(default=0, validation_alias=AliasChoices("SizeOnDisk", "sizeOnDisk", "size_on_disk"))
    running: bool | None = Field(default=None, validation_alias=AliasChoices("Running", "running"))

    @field_validator("state", mode="before")
    @classmethod
    def _unknown_state(cls, value: object) -> object:
        if isinstance(value, str) and value.lower() not in {s.value for s in VmState}:
            return VmState.UNKNOWN
        if isinstance(value, str):
            return value.lower()
        return value

    @field_validator("disk", "size", "size_on_disk", mode="before")
    @classmethod
    def _strict_int(cls, value: object) -> object:
        # Reject floats and numeric strings instead of silently truncating them
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"expected an integer, got {value!r}")
        return value
