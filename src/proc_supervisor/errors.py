"""proc-supervisor exception classes.

Timeouts are not errors: an overrun command comes back as a normal
``CommandResult`` with ``finished=False``.
"""

from __future__ import annotations

__all__ = [
    "ProcessSupervisorError",
    "InvalidArgumentError",
    "ProcessNotFoundError",
    "LaunchFailureError",
]


class ProcessSupervisorError(Exception):
    """Base exception for proc-supervisor."""
    pass


class InvalidArgumentError(ProcessSupervisorError, ValueError):
    """A required value was missing or malformed (e.g. a None command)."""
    pass


class ProcessNotFoundError(ProcessSupervisorError, LookupError):
    """No tracked process is registered under the given identifier.

    Attributes:
        identifier: The identifier that could not be resolved
    """

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"No tracked process with identifier [{identifier}]")


class LaunchFailureError(ProcessSupervisorError):
    """The OS refused or could not execute the requested program.

    The originating ``OSError`` is chained as ``__cause__``.

    Attributes:
        command: The command line that failed to launch
        message: Error message
    """

    def __init__(self, command: str, message: str) -> None:
        self.command = command
        self.message = message
        super().__init__(f"Unable to launch [{command}]: {message}")
