"""tart command line builders.

One pure function per tart operation. Builders never execute anything: the
same input always yields the same argument list, so they are tested without
spawning processes.

Conventions shared by every builder:
- Boolean flags are appended only when true, in a fixed order.
- Value flags are appended only when non-default (non-empty / positive).
- Repeatable fields produce one flag occurrence per element, in input order.
- The subject (VM name, source, host) goes last.
"""

from __future__ import annotations

from tart_client import constants
from tart_client.options import (
    CloneOptions,
    CreateOptions,
    DirMount,
    IpOptions,
    ListOptions,
    LoginOptions,
    PruneOptions,
    PullOptions,
    PushOptions,
    RunOptions,
    StopOptions,
    VmConfig,
)


def _flag(args: list[str], enabled: bool, flag: str) -> None:
    if enabled:
        args.append(flag)


def _value(args: list[str], flag: str, value: str | int) -> None:
    if isinstance(value, int):
        if value > 0:
            args.extend([flag, str(value)])
    elif value:
        args.extend([flag, value])


# ============================================================================
# Composite tokens
# ============================================================================


def serialize_dir_mount(mount: DirMount, *, legacy_sync: bool = False) -> str:
    """Serialize a directory mount into a single --dir token.

    Grammar: ``[name:]path[:OPTS]`` where OPTS is the comma-joined list of
    ``ro``, ``tag=TAG`` and ``sync=MODE``, in that order.

    Args:
        mount: Directory mount to serialize
        legacy_sync: Only emit ``sync=`` when a tag segment exists

    Returns:
        Token for ``tart run --dir``

    Example:
        >>> serialize_dir_mount(DirMount(name="shared", path="/tmp/x", read_only=True, tag="t1"))
        'shared:/tmp/x:ro,tag=t1'
        >>> serialize_dir_mount(DirMount(path="/tmp/y"))
        '/tmp/y'
    """
    token = f"{mount.name}:{mount.path}" if mount.name else mount.path

    opts: list[str] = []
    if mount.read_only:
        opts.append("ro")
    if mount.tag:
        opts.append(f"tag={mount.tag}")
    if mount.sync and (mount.tag or not legacy_sync):
        opts.append(f"sync={mount.sync}")

    if opts:
        token += ":" + ",".join(opts)
    return token


def format_display(width: int, height: int) -> str:
    """Serialize a display size as ``WIDTHxHEIGHT``."""
    return f"{width}x{height}"


# ============================================================================
# Inventory
# ============================================================================


def build_list_args(options: ListOptions) -> list[str]:
    args = ["list", "--format", constants.LIST_FORMAT]
    if options.source is not None:
        args.extend(["--source", options.source.value])
    return args


def build_ip_args(name: str, options: IpOptions) -> list[str]:
    args = ["ip"]
    _value(args, "--wait", options.wait)
    _value(args, "--resolver", options.resolver)
    args.append(name)
    return args


def build_get_args(name: str, output_format: str | None = None) -> list[str]:
    args = ["get"]
    _value(args, "--format", output_format or "")
    args.append(name)
    return args


def build_set_args(name: str, config: VmConfig) -> list[str]:
    """Build `tart set`. The display flag needs both dimensions."""
    args = ["set"]
    _value(args, "--cpu", config.cpu_count)
    _value(args, "--memory", config.memory_size)
    if config.display_width > 0 and config.display_height > 0:
        args.extend(["--display", format_display(config.display_width, config.display_height)])
    _flag(args, config.random_mac, "--random-mac")
    args.append(name)
    return args


# ============================================================================
# Lifecycle
# ============================================================================


def build_create_args(name: str, options: CreateOptions) -> list[str]:
    args = ["create"]
    _value(args, "--from-ipsw", options.from_ipsw)
    _flag(args, options.linux, "--linux")
    _value(args, "--disk-size", options.disk_size)
    args.append(name)
    return args


def build_clone_args(source: str, new_name: str, options: CloneOptions) -> list[str]:
    args = ["clone"]
    _flag(args, options.insecure, "--insecure")
    _value(args, "--concurrency", options.concurrency)
    args.extend([source, new_name])
    return args


def build_run_args(name: str, options: RunOptions, *, legacy_dir_sync: bool = False) -> list[str]:
    """Build `tart run` for the given VM.

    Args:
        name: VM to start
        options: Run options; field order is flag order
        legacy_dir_sync: Passed through to serialize_dir_mount()

    Returns:
        tart arguments, VM name last
    """
    args = ["run"]
    _flag(args, options.no_graphics, "--no-graphics")
    _flag(args, options.serial, "--serial")
    _value(args, "--serial-path", options.serial_path)
    _flag(args, options.no_audio, "--no-audio")
    _flag(args, options.no_clipboard, "--no-clipboard")
    _flag(args, options.recovery, "--recovery")
    _flag(args, options.vnc, "--vnc")
    _flag(args, options.vnc_experimental, "--vnc-experimental")
    for disk in options.disks:
        args.extend(["--disk", disk])
    _value(args, "--rosetta", options.rosetta)
    for mount in options.dirs:
        args.extend(["--dir", serialize_dir_mount(mount, legacy_sync=legacy_dir_sync)])
    _value(args, "--net-bridged", options.net_bridged)
    _flag(args, options.net_softnet, "--net-softnet")
    _value(args, "--net-softnet-allow", options.net_softnet_allow)
    _flag(args, options.net_host, "--net-host")
    _value(args, "--root-disk-opts", options.root_disk_opts)
    _flag(args, options.suspendable, "--suspendable")
    _flag(args, options.capture_system_keys, "--capture-system-keys")
    args.append(name)
    return args


def build_stop_args(name: str, options: StopOptions) -> list[str]:
    args = ["stop"]
    _value(args, "--timeout", options.timeout)
    args.append(name)
    return args


def build_suspend_args(name: str) -> list[str]:
    return ["suspend", name]


def build_delete_args(name: str) -> list[str]:
    return ["delete", name]


def build_rename_args(old_name: str, new_name: str) -> list[str]:
    return ["rename", old_name, new_name]


def build_import_args(path: str, name: str) -> list[str]:
    return ["import", path, name]


def build_export_args(name: str, path: str | None = None) -> list[str]:
    args = ["export", name]
    if path:
        args.append(path)
    return args


def build_prune_args(options: PruneOptions) -> list[str]:
    args = ["prune"]
    _value(args, "--entries", options.entries)
    _value(args, "--older-than", options.older_than)
    _value(args, "--space-budget", options.space_budget)
    return args


# ============================================================================
# Registry
# ============================================================================


def build_login_args(host: str, options: LoginOptions) -> list[str]:
    args = ["login"]
    _value(args, "--username", options.username)
    _flag(args, options.password_stdin, "--password-stdin")
    _flag(args, options.insecure, "--insecure")
    _flag(args, options.no_validate, "--no-validate")
    args.append(host)
    return args


def build_logout_args(host: str) -> list[str]:
    return ["logout", host]


def build_push_args(name: str, options: PushOptions) -> list[str]:
    args = ["push"]
    _flag(args, options.insecure, "--insecure")
    _value(args, "--concurrency", options.concurrency)
    _value(args, "--chunk-size", options.chunk_size)
    _flag(args, options.populate_cache, "--populate-cache")
    args.append(name)
    args.extend(options.remote_names)
    return args


def build_pull_args(name: str, options: PullOptions) -> list[str]:
    args = ["pull"]
    _flag(args, options.insecure, "--insecure")
    _value(args, "--concurrency", options.concurrency)
    args.append(name)
    return args
