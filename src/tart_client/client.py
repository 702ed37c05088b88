"""Tart client: one async method per tart operation.

Example:
    ```python
    from tart_client import Tart, RunOptions

    tart = Tart()
    await tart.clone("ghcr.io/cirruslabs/macos-sonoma-base:latest", "builder")
    vm = await tart.run("builder", RunOptions(no_graphics=True))
    print(await tart.ip("builder"))
    await tart.stop("builder")
    await vm.wait()
    ```

Every method is a single subprocess lifecycle (state checks add one `tart
list` round trip). Nothing is cached and nothing is retried.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from tart_client import tart_cmd
from tart_client._logging import get_logger
from tart_client.config import TartConfig
from tart_client.decoders import decode_text, decode_vm_list
from tart_client.environment import TartEnvironment, resolve_environment
from tart_client.exceptions import (
    DecodeFailedError,
    PreconditionFailedError,
    TartError,
    VmAlreadyExistsError,
    VmAlreadyRunningError,
    VmNotFoundError,
)
from tart_client.models import ExecutionResult, Invocation, VmDescriptor, VmState
from tart_client.options import (
    CloneOptions,
    CreateOptions,
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
from tart_client.readiness import RunningVm, watch_for_readiness
from tart_client.runner import run_invocation

logger = get_logger(__name__)


class Tart:
    """Client for the tart hypervisor CLI.

    Construction resolves the executable and the state directory once; both
    are preconditions, so a missing `tart` fails here rather than on the first
    call. The resolved environment is immutable and safe to share between
    concurrent calls.

    Raises:
        TartNotFoundError: tart is not on PATH
        ConfigDirError: State directory cannot be determined or created
    """

    def __init__(self, config: TartConfig | None = None) -> None:
        self.config = config or TartConfig.from_settings()
        self.environment: TartEnvironment = resolve_environment(self.config)

    @property
    def config_dir(self) -> Path | None:
        return self.environment.config_dir

    async def _execute(
        self,
        args: Sequence[str],
        *,
        vm_name: str | None = None,
        input: bytes | None = None,
    ) -> ExecutionResult:
        invocation = Invocation(args=tuple(args), input=input)
        return await run_invocation(self.environment, invocation, operation=invocation.subcommand, vm_name=vm_name)

    # =========================================================================
    # Inventory
    # =========================================================================

    async def list(self, options: ListOptions | None = None) -> list[VmDescriptor]:
        """List VMs (`tart list --format json`)."""
        result = await self._execute(tart_cmd.build_list_args(options or ListOptions()))
        try:
            return decode_vm_list(result.stdout)
        except DecodeFailedError as e:
            e.context.setdefault("operation", "list")
            raise

    async def _find(self, name: str, operation: str) -> VmDescriptor | None:
        """Look a VM up by name through one `tart list` call.

        Errors from the listing are re-attributed to the calling operation
        and VM; tart_args still shows the list invocation that failed.
        """
        try:
            vms = await self.list()
        except TartError as e:
            e.context.update({"operation": operation, "vm_name": name})
            raise
        for vm in vms:
            if vm.name == name:
                return vm
        return None

    async def state(self, name: str) -> VmDescriptor:
        """Get a VM's descriptor.

        Derived from a full listing, so it costs one `tart list` call.

        Raises:
            VmNotFoundError: No VM with that name
        """
        vm = await self._find(name, "state")
        if vm is None:
            raise VmNotFoundError(
                f"VM with name {name} does not exist",
                context={"operation": "state", "vm_name": name},
            )
        return vm

    async def exists(self, name: str) -> bool:
        return await self._find(name, "exists") is not None

    async def _has_state(self, name: str, state: VmState) -> bool:
        vm = await self._find(name, "state")
        return vm is not None and vm.state == state

    async def running(self, name: str) -> bool:
        """Whether the VM is running. Unknown VMs are not running."""
        return await self._has_state(name, VmState.RUNNING)

    async def stopped(self, name: str) -> bool:
        return await self._has_state(name, VmState.STOPPED)

    async def suspended(self, name: str) -> bool:
        return await self._has_state(name, VmState.SUSPENDED)

    async def ip(self, name: str, options: IpOptions | None = None) -> str:
        """Get the VM's IP address."""
        result = await self._execute(tart_cmd.build_ip_args(name, options or IpOptions()), vm_name=name)
        return decode_text(result.stdout)

    async def get_config(self, name: str, output_format: str | None = None) -> str:
        """Dump the VM's configuration (`tart get`), e.g. output_format="json"."""
        result = await self._execute(tart_cmd.build_get_args(name, output_format), vm_name=name)
        return decode_text(result.stdout)

    async def set_config(self, name: str, config: VmConfig) -> None:
        """Change CPU, memory, display or MAC address (`tart set`)."""
        await self._execute(tart_cmd.build_set_args(name, config), vm_name=name)
        logger.info("Updated VM configuration", extra={"vm_name": name})

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def _ensure_absent(self, name: str, operation: str) -> None:
        if await self._find(name, operation) is not None:
            raise VmAlreadyExistsError(
                f"VM with name {name} already exists",
                context={"operation": operation, "vm_name": name},
            )

    async def create(self, name: str, options: CreateOptions | None = None) -> None:
        """Create a new VM.

        Raises:
            VmAlreadyExistsError: The name is taken
        """
        await self._ensure_absent(name, "create")
        await self._execute(tart_cmd.build_create_args(name, options or CreateOptions()), vm_name=name)
        logger.info("Created VM", extra={"vm_name": name})

    async def clone(self, source: str, new_name: str, options: CloneOptions | None = None) -> None:
        """Clone a local or remote VM under a new name.

        Raises:
            VmAlreadyExistsError: new_name is taken
        """
        await self._ensure_absent(new_name, "clone")
        await self._execute(tart_cmd.build_clone_args(source, new_name, options or CloneOptions()), vm_name=new_name)
        logger.info("Cloned VM", extra={"vm_name": new_name, "source": source})

    async def import_vm(self, path: str | Path, name: str) -> None:
        """Import a VM from a compressed .tvm file.

        Raises:
            VmAlreadyExistsError: The name is taken
        """
        await self._ensure_absent(name, "import")
        await self._execute(tart_cmd.build_import_args(str(path), name), vm_name=name)
        logger.info("Imported VM", extra={"vm_name": name, "path": str(path)})

    async def export(self, name: str, path: str | Path | None = None) -> None:
        """Export a VM to a compressed .tvm file (tart picks the path when None)."""
        await self._execute(tart_cmd.build_export_args(name, str(path) if path else None), vm_name=name)

    async def rename(self, old_name: str, new_name: str) -> None:
        await self._execute(tart_cmd.build_rename_args(old_name, new_name), vm_name=old_name)
        logger.info("Renamed VM", extra={"vm_name": old_name, "new_name": new_name})

    async def run(self, name: str, options: RunOptions | None = None) -> RunningVm:
        """Start a VM and return once it reports "VM is up".

        The returned RunningVm owns the `tart run` supervisor, which keeps
        running after this call returns. Stop the VM with stop(), or signal
        the supervisor with RunningVm.terminate().

        Raises:
            VmNotFoundError: No VM with that name
            VmAlreadyRunningError: The VM is already running
            ExternalCommandFailedError: tart exited non-zero before readiness
            StreamReadFailedError: Reading the supervisor's output failed
        """
        vm = await self._find(name, "run")
        if vm is None:
            raise VmNotFoundError(
                f"VM with name {name} does not exist",
                context={"operation": "run", "vm_name": name},
            )
        if vm.state == VmState.RUNNING:
            raise VmAlreadyRunningError(
                f"VM {name} is already running",
                context={"operation": "run", "vm_name": name},
            )

        args = tart_cmd.build_run_args(name, options or RunOptions(), legacy_dir_sync=self.config.legacy_dir_sync)
        return await watch_for_readiness(self.environment, Invocation(args=tuple(args)), vm_name=name)

    async def stop(self, name: str, options: StopOptions | None = None) -> None:
        await self._execute(tart_cmd.build_stop_args(name, options or StopOptions()), vm_name=name)
        logger.info("Stopped VM", extra={"vm_name": name})

    async def suspend(self, name: str) -> None:
        await self._execute(tart_cmd.build_suspend_args(name), vm_name=name)
        logger.info("Suspended VM", extra={"vm_name": name})

    async def delete(self, name: str) -> None:
        await self._execute(tart_cmd.build_delete_args(name), vm_name=name)
        logger.info("Deleted VM", extra={"vm_name": name})

    async def prune(self, options: PruneOptions | None = None) -> None:
        """Prune OCI/IPSW caches or local VMs."""
        await self._execute(tart_cmd.build_prune_args(options or PruneOptions()))

    # =========================================================================
    # Registry
    # =========================================================================

    def _registry_host(self, operation: str) -> str:
        if not self.config.host:
            raise PreconditionFailedError(
                "No registry host configured (set TartConfig.host or TART_CLIENT_HOST)",
                context={"operation": operation},
            )
        return self.config.host

    async def login(self, options: LoginOptions | None = None, password: str | None = None) -> None:
        """Log in to the configured registry.

        Args:
            options: Login flags
            password: Password fed on stdin; implies --password-stdin
        """
        host = self._registry_host("login")
        options = options or LoginOptions()
        if password is not None and not options.password_stdin:
            options = options.model_copy(update={"password_stdin": True})
        await self._execute(
            tart_cmd.build_login_args(host, options),
            input=password.encode() if password is not None else None,
        )
        logger.info("Logged in to registry", extra={"host": host, "username": options.username})

    async def logout(self) -> None:
        host = self._registry_host("logout")
        await self._execute(tart_cmd.build_logout_args(host))

    async def push(self, name: str, options: PushOptions) -> None:
        """Push a local VM to one or more remote references."""
        await self._execute(tart_cmd.build_push_args(name, options), vm_name=name)
        logger.info("Pushed VM", extra={"vm_name": name, "remote_names": list(options.remote_names)})

    async def pull(self, name: str, options: PullOptions | None = None) -> None:
        """Pull a VM image from a registry into the local cache."""
        await self._execute(tart_cmd.build_pull_args(name, options or PullOptions()), vm_name=name)
        logger.info("Pulled VM", extra={"vm_name": name})
