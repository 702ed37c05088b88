"""tart-client: asyncio control-plane client for the Tart hypervisor.

Drives the `tart` executable: builds argument lists from typed options, runs
them as subprocesses and turns their output into typed results or
classified errors.

Quick Start:
    ```python
    import asyncio

    from tart_client import Tart

    async def main() -> None:
        tart = Tart()
        for vm in await tart.list():
            print(vm.name, vm.state.value)

    asyncio.run(main())
    ```

Starting a VM:
    ```python
    from tart_client import DirMount, RunOptions, Tart

    tart = Tart()
    vm = await tart.run(
        "builder",
        RunOptions(no_graphics=True, dirs=(DirMount(name="src", path="/Users/me/src", read_only=True),)),
    )
    # Returns as soon as tart prints "VM is up"; the VM keeps running.
    await tart.stop("builder")
    await vm.wait()
    ```

Requirements:
    - macOS with tart installed and on PATH
    - Python 3.12+
"""

from tart_client.client import Tart
from tart_client.config import TartConfig
from tart_client.exceptions import (
    ConfigDirError,
    DecodeFailedError,
    ExternalCommandFailedError,
    LaunchFailedError,
    PreconditionFailedError,
    StreamReadFailedError,
    TartError,
    TartNotFoundError,
    VmAlreadyExistsError,
    VmAlreadyRunningError,
    VmNotFoundError,
)
from tart_client.models import ExecutionResult, Invocation, VmDescriptor, VmSource, VmState
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
from tart_client.readiness import RunningVm

__all__ = [
    "CloneOptions",
    "ConfigDirError",
    "CreateOptions",
    "DecodeFailedError",
    "DirMount",
    "ExecutionResult",
    "ExternalCommandFailedError",
    "Invocation",
    "IpOptions",
    "LaunchFailedError",
    "ListOptions",
    "LoginOptions",
    "PreconditionFailedError",
    "PruneOptions",
    "PullOptions",
    "PushOptions",
    "RunOptions",
    "RunningVm",
    "StopOptions",
    "StreamReadFailedError",
    "Tart",
    "TartConfig",
    "TartError",
    "TartNotFoundError",
    "VmAlreadyExistsError",
    "VmAlreadyRunningError",
    "VmConfig",
    "VmDescriptor",
    "VmNotFoundError",
    "VmSource",
    "VmState",
]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tart-client")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
