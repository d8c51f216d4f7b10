"""Async bridge for event-loop hosts.

Every operation is the blocking one from proc_supervisor.runtime, moved to a
worker thread with anyio so the event loop keeps running. Semantics and
errors are unchanged.

Example:
    registry = AsyncProcessRegistry()
    proc_id = await registry.start(LaunchSpec("sleep", "60"))
    await registry.remove(proc_id)

    result = await arun_command("echo", "hello", timeout_ms=2000)
"""

from __future__ import annotations

from functools import partial
from typing import Any

import anyio.to_thread

from .models import CommandResult
from .runtime.launch import LaunchSpec
from .runtime.registry import ProcessRegistry
from .runtime.runner import CommandRunner

__all__ = ["AsyncProcessRegistry", "arun_command"]


async def arun_command(
    command: str,
    arguments: str = "",
    timeout_ms: int | None = None,
    *,
    runner: CommandRunner | None = None,
    **kwargs: Any,
) -> CommandResult:
    """Async counterpart of run_command.

    Args:
        command: Executable name or path
        arguments: Argument string
        timeout_ms: Timeout in milliseconds
        runner: Runner to use (default: a new CommandRunner)
        **kwargs: Passed to CommandRunner.run (cwd, env)

    Returns:
        The result of the execution
    """
    runner = runner or CommandRunner()
    return await anyio.to_thread.run_sync(
        partial(runner.run, command, arguments, timeout_ms, **kwargs)
    )


class AsyncProcessRegistry:
    """Awaitable facade over a ProcessRegistry.

    Attributes:
        registry: The wrapped registry, shared with sync callers if desired
    """

    def __init__(self, registry: ProcessRegistry | None = None) -> None:
        self.registry = registry if registry is not None else ProcessRegistry()

    async def start(self, spec: LaunchSpec) -> str:
        return await anyio.to_thread.run_sync(self.registry.start, spec)

    async def get_output(self, identifier: str) -> str:
        return await anyio.to_thread.run_sync(self.registry.get_output, identifier)

    async def get_error_output(self, identifier: str) -> str:
        return await anyio.to_thread.run_sync(self.registry.get_error_output, identifier)

    async def wait_for_exit(self, identifier: str, timeout: float | None = None) -> bool:
        return await anyio.to_thread.run_sync(self.registry.wait_for_exit, identifier, timeout)

    async def kill(self, identifier: str) -> None:
        await anyio.to_thread.run_sync(self.registry.kill, identifier)

    async def remove(self, identifier: str) -> None:
        await anyio.to_thread.run_sync(self.registry.remove, identifier)

    async def reset(self) -> None:
        await anyio.to_thread.run_sync(self.registry.reset)

    def __len__(self) -> int:
        return len(self.registry)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.registry
