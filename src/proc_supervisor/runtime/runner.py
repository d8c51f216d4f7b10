"""Bounded one-shot command execution.

proc-supervisor runtime module v0.1.0

Three outcomes are kept apart:
- the program could not be launched at all -> LaunchFailureError
- it ran past its timeout -> CommandResult(finished=False), tree killed
- it exited in time -> CommandResult(finished=True)

Processes started here are never registered in a ProcessRegistry.
"""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..config import get_config
from ..errors import InvalidArgumentError
from ..models import CommandResult
from .launch import LaunchSpec, spawn
from .termination import kill_process_tree

__all__ = ["CommandRunner", "run_command"]

logger = logging.getLogger(__name__)

# A launcher returns None for a launch the OS rejected without raising
Launcher = Callable[[LaunchSpec], subprocess.Popen | None]


@dataclass
class CommandRunner:
    """Runs one command to completion or forced termination.

    Example:
        runner = CommandRunner()
        result = runner.run("echo", "Hello World!")
        assert result.finished
        print(result.output)
    """

    default_timeout_ms: int = field(default_factory=lambda: get_config().default_timeout_ms)
    term_grace: float = field(default_factory=lambda: get_config().term_grace)
    kill_timeout: float = field(default_factory=lambda: get_config().kill_timeout)
    encoding: str = field(default_factory=lambda: get_config().encoding)
    launcher: Launcher = spawn

    def run(
        self,
        command: str,
        arguments: str = "",
        timeout_ms: int | None = None,
        *,
        cwd: Any = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run ``command`` and wait at most ``timeout_ms`` for it to exit.

        The timeout only bounds the wait for exit. A successful launch always
        reports ``started=True``, even with a zero timeout.

        Args:
            command: Executable name or path
            arguments: Argument string, passed as a single string
            timeout_ms: Timeout in milliseconds (default_timeout_ms if None)
            cwd: Working directory
            env: Environment variables (None = inherit parent)

        Returns:
            The result of the execution

        Raises:
            InvalidArgumentError: If command/arguments are None or the timeout
                is invalid
            LaunchFailureError: If the OS cannot execute the program
        """
        if timeout_ms is None:
            timeout_ms = self.default_timeout_ms
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int):
            raise InvalidArgumentError(f"timeout_ms must be int, got {timeout_ms!r}")
        if timeout_ms < 0:
            raise InvalidArgumentError(f"timeout_ms must not be negative, got {timeout_ms}")

        spec = LaunchSpec(command=command, arguments=arguments, cwd=cwd, env=env)
        command_line = spec.command_line

        process = self.launcher(spec)
        if process is None:
            logger.warning(f"Launch rejected: {command_line}")
            return CommandResult.not_started(command_line)

        stopwatch = time.perf_counter()
        finished = True
        stdout: bytes | None = None
        stderr: bytes | None = None

        try:
            # communicate() keeps both pipes drained while waiting
            stdout, stderr = process.communicate(timeout=timeout_ms / 1000)
        except subprocess.TimeoutExpired:
            finished = False
            kill_process_tree(
                process,
                term_grace=self.term_grace,
                kill_timeout=self.kill_timeout,
            )
        except BaseException:
            kill_process_tree(process, kill_timeout=self.kill_timeout)
            raise

        elapsed_ms = int((time.perf_counter() - stopwatch) * 1000)

        if not finished:
            stdout, stderr = self._collect_remaining(process)
            logger.info(f"Command overran {timeout_ms}ms and was killed: {command_line}")

        result = CommandResult(
            command=command_line,
            started=True,
            finished=finished,
            output=self._decode(stdout),
            error=self._decode(stderr),
            runtime=max(elapsed_ms, 0),
        )
        logger.debug(
            f"Command completed pid={process.pid} returncode={process.returncode} "
            f"finished={finished} runtime={result.runtime}ms"
        )
        return result

    def _collect_remaining(
        self,
        process: subprocess.Popen[bytes],
    ) -> tuple[bytes | None, bytes | None]:
        """Read the killed process's buffered output to completion."""
        try:
            return process.communicate(timeout=self.kill_timeout)
        except subprocess.TimeoutExpired:
            # A descendant outside the process group still holds the pipes
            logger.warning(
                f"Output pipes still open after kill pid={process.pid}, "
                f"discarding remaining output"
            )
            for pipe in (process.stdout, process.stderr):
                if pipe is not None:
                    pipe.close()
            return None, None

    def _decode(self, data: bytes | None) -> str:
        if not data:
            return ""
        return data.decode(self.encoding, errors="replace")


def run_command(
    command: str,
    arguments: str = "",
    timeout_ms: int | None = None,
    **kwargs: Any,
) -> CommandResult:
    """Run a bounded command with a default CommandRunner.

    Args:
        command: Executable name or path
        arguments: Argument string
        timeout_ms: Timeout in milliseconds
        **kwargs: Passed to CommandRunner.run (cwd, env)

    Returns:
        The result of the execution
    """
    return CommandRunner().run(command, arguments, timeout_ms, **kwargs)
