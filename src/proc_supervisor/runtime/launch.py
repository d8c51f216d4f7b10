"""Launch specification and process spawning.

proc-supervisor runtime module v0.1.0

Key design points:
- The argument string is passed as one string, not an argv array. On Windows
  it becomes part of the command line; on POSIX it is split with shlex the
  way a command-line launcher would.
- POSIX: start_new_session=True so the whole tree shares one process group
- Windows: CREATE_NEW_PROCESS_GROUP for the same reason
- stdin is always DEVNULL so children never inherit the host's stdin
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..errors import InvalidArgumentError, LaunchFailureError

__all__ = [
    "IS_WINDOWS",
    "LaunchSpec",
    "build_argv",
    "spawn",
]

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"


@dataclass(frozen=True)
class LaunchSpec:
    """Specification for a subprocess to launch.

    Attributes:
        command: Executable name or path
        arguments: Argument string handed to the OS as a single string
        cwd: Working directory (None = inherit)
        env: Environment variables (None = inherit parent)
        redirect_stdout: Capture standard output through a pipe
        redirect_stderr: Capture standard error through a pipe
    """

    command: str
    arguments: str = ""
    cwd: str | os.PathLike[str] | None = None
    env: Mapping[str, str] | None = None
    redirect_stdout: bool = True
    redirect_stderr: bool = True

    def __post_init__(self) -> None:
        if self.command is None:
            raise InvalidArgumentError("command must not be None")
        if not isinstance(self.command, str) or not self.command.strip():
            raise InvalidArgumentError(f"command must be a non-empty str, got {self.command!r}")
        if self.arguments is None:
            raise InvalidArgumentError("arguments must not be None")
        if not isinstance(self.arguments, str):
            raise InvalidArgumentError(
                f"arguments must be str, got {type(self.arguments).__name__}"
            )

    @property
    def command_line(self) -> str:
        """Literal command line used for reporting."""
        return f"{self.command} {self.arguments}"


def build_argv(spec: LaunchSpec) -> str | list[str]:
    """Build what Popen receives as its first argument.

    Args:
        spec: Launch specification

    Returns:
        A command-line string on Windows, an argv list on POSIX

    Raises:
        InvalidArgumentError: If the argument string cannot be tokenized
    """
    if IS_WINDOWS:
        executable = subprocess.list2cmdline([spec.command])
        if spec.arguments:
            return f"{executable} {spec.arguments}"
        return executable

    try:
        arguments = shlex.split(spec.arguments)
    except ValueError as e:
        # Unbalanced quotes
        raise InvalidArgumentError(f"Cannot parse arguments {spec.arguments!r}: {e}") from e
    return [spec.command, *arguments]


def _build_popen_kwargs(spec: LaunchSpec) -> dict[str, Any]:
    """Build platform-specific Popen kwargs.

    Args:
        spec: Launch specification

    Returns:
        Dict of kwargs for subprocess.Popen
    """
    kwargs: dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.PIPE if spec.redirect_stdout else None,
        "stderr": subprocess.PIPE if spec.redirect_stderr else None,
    }

    if spec.cwd is not None:
        kwargs["cwd"] = spec.cwd

    if spec.env is not None:
        kwargs["env"] = dict(spec.env)

    if IS_WINDOWS:
        kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        kwargs["start_new_session"] = True

    return kwargs


def spawn(spec: LaunchSpec) -> subprocess.Popen[bytes]:
    """Start the OS process described by ``spec``.

    Pipes are binary; decoding is left to the caller.

    Args:
        spec: Launch specification

    Returns:
        The running process

    Raises:
        LaunchFailureError: If the OS cannot execute the program
    """
    argv = build_argv(spec)
    kwargs = _build_popen_kwargs(spec)

    try:
        process = subprocess.Popen(argv, **kwargs)
    except OSError as e:
        logger.debug(f"Launch failed command={spec.command} cwd={spec.cwd}: {e}")
        raise LaunchFailureError(spec.command_line, str(e)) from e

    logger.debug(
        f"Started subprocess pid={process.pid} "
        f"command={spec.command} cwd={spec.cwd}"
    )
    return process
