"""Command-line interface for tart-client.

Usage:
    tartctl list                          # All VMs
    tartctl state builder --json          # One VM as JSON
    tartctl run builder --no-graphics     # Start, wait for "VM is up", supervise
    tartctl clone ghcr.io/cirruslabs/macos-sonoma-base:latest builder
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, NoReturn

import click

from tart_client import (
    CloneOptions,
    CreateOptions,
    DirMount,
    ExternalCommandFailedError,
    IpOptions,
    ListOptions,
    PreconditionFailedError,
    PullOptions,
    PushOptions,
    RunOptions,
    StopOptions,
    Tart,
    TartConfig,
    TartError,
    TartNotFoundError,
    VmDescriptor,
    VmSource,
    __version__,
)
from tart_client._logging import configure_logging
from tart_client.settings import Settings

# Exit codes following Unix conventions
EXIT_SUCCESS = 0
EXIT_CLI_ERROR = 2
EXIT_TART_ERROR = 125


def format_error(title: str, message: str, suggestions: list[str] | None = None) -> str:
    """Format an error message following What → Why → Fix pattern.

    Args:
        title: Short error title
        message: Detailed explanation
        suggestions: Optional list of suggestions to fix the issue

    Returns:
        Formatted error string
    """
    lines = [
        click.style(f"Error: {title}", fg="red", bold=True),
        "",
        f"  {message}",
    ]

    if suggestions:
        lines.extend(["", "  Suggestions:"])
        lines.extend(f"    • {suggestion}" for suggestion in suggestions)

    return "\n".join(lines)


def parse_dir_mount(value: str) -> DirMount:
    """Parse a --dir value of the form ``[name:]path[:ro]``.

    Raises:
        click.BadParameter: If the value is empty
    """
    parts = value.split(":")
    read_only = len(parts) > 1 and parts[-1] == "ro"
    if read_only:
        parts = parts[:-1]
    if len(parts) >= 2:
        name, path = parts[0], ":".join(parts[1:])
    else:
        name, path = "", parts[0]
    if not path:
        raise click.BadParameter(f"Invalid directory mount: '{value}'", param_hint="'--dir'")
    return DirMount(name=name, path=path, read_only=read_only)


def format_vm_json(vm: VmDescriptor) -> dict[str, Any]:
    return vm.model_dump(mode="json")


def format_vm_table(vms: list[VmDescriptor]) -> str:
    rows = [("NAME", "SOURCE", "STATE", "DISK", "SIZE")]
    rows.extend((vm.name, vm.source.value, vm.state.value, str(vm.disk), str(vm.size)) for vm in vms)
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    return "\n".join("  ".join(cell.ljust(width) for cell, width in zip(row, widths, strict=True)).rstrip() for row in rows)


def _error_exit_code(error: TartError) -> int:
    """Report a tart-client error on stderr and pick the process exit code."""
    if isinstance(error, TartNotFoundError):
        click.echo(
            format_error(
                "tart not found",
                error.message,
                ["Install tart: brew install cirruslabs/cli/tart", "Or point --binary at the executable"],
            ),
            err=True,
        )
        return EXIT_CLI_ERROR
    if isinstance(error, PreconditionFailedError):
        click.echo(format_error("Precondition failed", error.message), err=True)
        return EXIT_CLI_ERROR
    if isinstance(error, ExternalCommandFailedError):
        message = error.stderr.strip() or error.message
        click.echo(format_error(f"{error.message} (exit {error.exit_code})", message), err=True)
        return error.exit_code if error.exit_code > 0 else EXIT_TART_ERROR
    click.echo(format_error("tart-client error", error.message), err=True)
    return EXIT_TART_ERROR


def _run(ctx: click.Context, action: Callable[[Tart], Awaitable[None]]) -> NoReturn:
    """Build the client, run one async action and exit with the mapped code."""
    config: TartConfig = ctx.obj

    async def _main() -> None:
        await action(Tart(config))

    try:
        asyncio.run(_main())
    except TartError as e:
        sys.exit(_error_exit_code(e))
    except KeyboardInterrupt:
        sys.exit(130)
    sys.exit(EXIT_SUCCESS)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--binary", default=None, help="tart executable (default: tart on PATH)")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="tart state directory exported as TART_HOME (default: ~/.tart)",
)
@click.option("--host", default=None, help="Registry host for login/logout")
@click.option("-q", "--quiet", is_flag=True, help="Only log errors")
@click.option("-v", "--verbose", is_flag=True, help="Log every tart invocation")
@click.version_option(__version__, "-V", "--version", prog_name="tart-client")
@click.pass_context
def main(
    ctx: click.Context,
    binary: str | None,
    config_dir: Path | None,
    host: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """Drive the tart hypervisor from the command line."""
    configure_logging(level="DEBUG" if verbose else "INFO", quiet=quiet)

    settings = Settings()
    ctx.obj = TartConfig(
        binary=binary or settings.binary,
        config_dir=config_dir or settings.config_dir,
        manage_home=settings.manage_home,
        host=host or settings.host,
        legacy_dir_sync=settings.legacy_dir_sync,
    )


# =============================================================================
# Inventory
# =============================================================================


@main.command("list")
@click.option("--source", type=click.Choice([s.value for s in VmSource]), default=None, help="Filter by source")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def list_command(ctx: click.Context, source: str | None, json_output: bool) -> None:
    """List VMs."""

    async def action(tart: Tart) -> None:
        vms = await tart.list(ListOptions(source=VmSource(source) if source else None))
        if json_output:
            click.echo(json.dumps([format_vm_json(vm) for vm in vms], indent=2))
        else:
            click.echo(format_vm_table(vms))

    _run(ctx, action)


@main.command("state")
@click.argument("name")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def state_command(ctx: click.Context, name: str, json_output: bool) -> None:
    """Show one VM's state."""

    async def action(tart: Tart) -> None:
        vm = await tart.state(name)
        click.echo(json.dumps(format_vm_json(vm), indent=2) if json_output else vm.state.value)

    _run(ctx, action)


@main.command("ip")
@click.argument("name")
@click.option("--wait", type=click.IntRange(min=0), default=0, show_default=True, help="Seconds to wait for an address")
@click.option("--resolver", default="", help="Resolution strategy (dhcp, arp, agent)")
@click.pass_context
def ip_command(ctx: click.Context, name: str, wait: int, resolver: str) -> None:
    """Print a VM's IP address."""

    async def action(tart: Tart) -> None:
        click.echo(await tart.ip(name, IpOptions(wait=wait, resolver=resolver)))

    _run(ctx, action)


@main.command("get")
@click.argument("name")
@click.option("--format", "output_format", default=None, help="Output format (text, json)")
@click.pass_context
def get_command(ctx: click.Context, name: str, output_format: str | None) -> None:
    """Print a VM's configuration."""

    async def action(tart: Tart) -> None:
        click.echo(await tart.get_config(name, output_format))

    _run(ctx, action)


# =============================================================================
# Lifecycle
# =============================================================================


@main.command("create")
@click.argument("name")
@click.option("--from-ipsw", default="", help="IPSW path or URL ('latest' for the newest)")
@click.option("--linux", is_flag=True, help="Create a Linux VM")
@click.option("--disk-size", type=click.IntRange(min=0), default=0, help="Disk size in GB")
@click.pass_context
def create_command(ctx: click.Context, name: str, from_ipsw: str, linux: bool, disk_size: int) -> None:
    """Create a VM."""

    async def action(tart: Tart) -> None:
        await tart.create(name, CreateOptions(from_ipsw=from_ipsw, linux=linux, disk_size=disk_size))

    _run(ctx, action)


@main.command("clone")
@click.argument("source")
@click.argument("new_name")
@click.option("--insecure", is_flag=True, help="Use plain HTTP for the registry")
@click.option("--concurrency", type=click.IntRange(min=0), default=0, help="Parallel layer downloads")
@click.pass_context
def clone_command(ctx: click.Context, source: str, new_name: str, insecure: bool, concurrency: int) -> None:
    """Clone a local or remote VM."""

    async def action(tart: Tart) -> None:
        await tart.clone(source, new_name, CloneOptions(insecure=insecure, concurrency=concurrency))

    _run(ctx, action)


@main.command("run")
@click.argument("name")
@click.option("--no-graphics", is_flag=True, help="Do not open a VM window")
@click.option("--serial", is_flag=True, help="Open a serial console")
@click.option("--vnc", is_flag=True, help="Expose the display over VNC")
@click.option("--disk", "disks", multiple=True, help="Additional disk (repeatable)")
@click.option("--dir", "dirs", multiple=True, help="Shared directory [name:]path[:ro] (repeatable)")
@click.option("--net-bridged", default="", help="Bridge to this host interface")
@click.option("--net-softnet", is_flag=True, help="Use Softnet isolation")
@click.option("--suspendable", is_flag=True, help="Allow suspending the VM")
@click.pass_context
def run_command(
    ctx: click.Context,
    name: str,
    no_graphics: bool,
    serial: bool,
    vnc: bool,
    disks: tuple[str, ...],
    dirs: tuple[str, ...],
    net_bridged: str,
    net_softnet: bool,
    suspendable: bool,
) -> None:
    """Start a VM and supervise it until it stops.

    Returns control once the VM stops; Ctrl-C shuts it down.
    """
    try:
        mounts = tuple(parse_dir_mount(d) for d in dirs)
    except click.BadParameter as exc:
        raise click.UsageError(str(exc)) from exc

    options = RunOptions(
        no_graphics=no_graphics,
        serial=serial,
        vnc=vnc,
        disks=disks,
        dirs=mounts,
        net_bridged=net_bridged,
        net_softnet=net_softnet,
        suspendable=suspendable,
    )

    async def action(tart: Tart) -> None:
        vm = await tart.run(name, options)
        if not vm.ready:
            click.echo(f"{name} exited before reporting readiness", err=True)
            return
        click.echo(click.style(f"✓ {name} is up (pid {vm.pid})", fg="green"), err=True)
        try:
            exit_code = await vm.wait()
        except asyncio.CancelledError:
            await vm.terminate()
            await vm.wait()
            raise
        if exit_code != 0:
            raise ExternalCommandFailedError(
                "VM process exited with error",
                exit_code=exit_code,
                stderr=vm.stderr_tail,
                context={"operation": "run", "vm_name": name},
            )

    _run(ctx, action)


@main.command("stop")
@click.argument("name")
@click.option("--timeout", type=click.IntRange(min=0), default=0, help="Seconds to wait for graceful shutdown")
@click.pass_context
def stop_command(ctx: click.Context, name: str, timeout: int) -> None:
    """Stop a VM."""

    async def action(tart: Tart) -> None:
        await tart.stop(name, StopOptions(timeout=timeout))

    _run(ctx, action)


@main.command("suspend")
@click.argument("name")
@click.pass_context
def suspend_command(ctx: click.Context, name: str) -> None:
    """Suspend a VM."""

    async def action(tart: Tart) -> None:
        await tart.suspend(name)

    _run(ctx, action)


@main.command("delete")
@click.argument("name")
@click.pass_context
def delete_command(ctx: click.Context, name: str) -> None:
    """Delete a VM."""

    async def action(tart: Tart) -> None:
        await tart.delete(name)

    _run(ctx, action)


# =============================================================================
# Registry
# =============================================================================


@main.command("pull")
@click.argument("name")
@click.option("--insecure", is_flag=True, help="Use plain HTTP for the registry")
@click.option("--concurrency", type=click.IntRange(min=0), default=0, help="Parallel layer downloads")
@click.pass_context
def pull_command(ctx: click.Context, name: str, insecure: bool, concurrency: int) -> None:
    """Pull a VM image from a registry."""

    async def action(tart: Tart) -> None:
        await tart.pull(name, PullOptions(insecure=insecure, concurrency=concurrency))

    _run(ctx, action)


@main.command("push")
@click.argument("name")
@click.argument("remote_names", nargs=-1, required=True)
@click.option("--insecure", is_flag=True, help="Use plain HTTP for the registry")
@click.option("--concurrency", type=click.IntRange(min=0), default=0, help="Parallel layer uploads")
@click.option("--chunk-size", type=click.IntRange(min=0), default=0, help="Layer chunk size in MB")
@click.option("--populate-cache", is_flag=True, help="Cache pushed layers locally")
@click.pass_context
def push_command(
    ctx: click.Context,
    name: str,
    remote_names: tuple[str, ...],
    insecure: bool,
    concurrency: int,
    chunk_size: int,
    populate_cache: bool,
) -> None:
    """Push a VM to one or more registry references."""
    options = PushOptions(
        remote_names=remote_names,
        insecure=insecure,
        concurrency=concurrency,
        chunk_size=chunk_size,
        populate_cache=populate_cache,
    )

    async def action(tart: Tart) -> None:
        await tart.push(name, options)

    _run(ctx, action)


if __name__ == "__main__":
    main()
