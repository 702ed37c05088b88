"""Typed option models for each tart operation.

Every model is frozen and rejects unknown fields, so a builder in tart_cmd only
ever sees validated input. Defaults mean "omit the flag".
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from tart_client.models import VmSource


class _Options(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ListOptions(_Options):
    """Options for `tart list`."""

    source: VmSource | None = Field(default=None, description="Only list local or remote VMs")


class CreateOptions(_Options):
    """Options for `tart create`."""

    from_ipsw: str = Field(default="", description="IPSW path/URL, or 'latest'")
    linux: bool = Field(default=False, description="Create a Linux VM")
    disk_size: int = Field(default=0, ge=0, description="Disk size in GB (0 = tart default)")


class CloneOptions(_Options):
    """Options for `tart clone`."""

    insecure: bool = Field(default=False, description="Connect to the registry over plain HTTP")
    concurrency: int = Field(default=0, ge=0, description="Parallel layer downloads (0 = tart default)")


class DirMount(_Options):
    """A host directory shared into the guest with `tart run --dir`.

    Serialized as ``[name:]path[:ro][,tag=TAG][,sync=MODE]``.
    """

    path: str = Field(min_length=1, description="Host directory or archive URL")
    name: str = Field(default="", description="Mount name inside the guest")
    read_only: bool = Field(default=False, description="Mount read-only")
    tag: str = Field(default="", description="VirtioFS mount tag")
    sync: str = Field(default="", description="Disk synchronization mode, e.g. 'none'")


class RunOptions(_Options):
    """Options for `tart run`. Field order is the flag order on the command line."""

    no_graphics: bool = False
    serial: bool = False
    serial_path: str = ""
    no_audio: bool = False
    no_clipboard: bool = False
    recovery: bool = False
    vnc: bool = False
    vnc_experimental: bool = False
    disks: tuple[str, ...] = Field(default=(), description="Additional disk attachments, one --disk each")
    rosetta: str = Field(default="", description="Rosetta mount tag (Linux guests)")
    dirs: tuple[DirMount, ...] = Field(default=(), description="Shared directories, one --dir each")
    net_bridged: str = ""
    net_softnet: bool = False
    net_softnet_allow: str = ""
    net_host: bool = False
    root_disk_opts: str = ""
    suspendable: bool = False
    capture_system_keys: bool = False


class StopOptions(_Options):
    """Options for `tart stop`."""

    timeout: int = Field(default=0, ge=0, description="Seconds to wait for graceful shutdown (0 = tart default)")


class IpOptions(_Options):
    """Options for `tart ip`."""

    wait: int = Field(default=0, ge=0, description="Seconds to wait for an address (0 = tart default)")
    resolver: str = Field(default="", description="Address resolution strategy, e.g. 'dhcp', 'arp', 'agent'")


class VmConfig(_Options):
    """Settable VM parameters for `tart set`."""

    cpu_count: int = Field(default=0, ge=0)
    memory_size: int = Field(default=0, ge=0, description="Memory in MB")
    display_width: int = Field(default=0, ge=0)
    display_height: int = Field(default=0, ge=0)
    random_mac: bool = Field(default=False, description="Generate a new MAC address")


class PruneOptions(_Options):
    """Options for `tart prune`."""

    entries: str = Field(default="", description="'caches' or 'vms'")
    older_than: int = Field(default=0, ge=0, description="Days")
    space_budget: int = Field(default=0, ge=0, description="GB")


class LoginOptions(_Options):
    """Options for `tart login`."""

    username: str = ""
    password_stdin: bool = False
    insecure: bool = False
    no_validate: bool = False


class PushOptions(_Options):
    """Options for `tart push`."""

    remote_names: tuple[str, ...] = Field(min_length=1, description="Remote references to push to")
    insecure: bool = False
    concurrency: int = Field(default=0, ge=0)
    chunk_size: int = Field(default=0, ge=0, description="Layer chunk size in MB")
    populate_cache: bool = False


class PullOptions(_Options):
    """Options for `tart pull`."""

    insecure: bool = False
    concurrency: int = Field(default=0, ge=0)
