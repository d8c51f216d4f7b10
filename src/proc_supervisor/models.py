"""Result model shared with reporting layers.

proc-supervisor models v0.1.0

``CommandResult`` is the only structure meant to leave the process. Its field
names (``command``, ``started``, ``finished``, ``output``, ``error``,
``runtime``) are the serialized names and must not change.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .errors import InvalidArgumentError

__all__ = ["CommandResult"]

_TEXT_FIELDS = ("command", "output", "error")


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one bounded command execution.

    Attributes:
        command: Literal command line executed (command + " " + arguments)
        started: Whether the OS accepted the launch
        finished: Whether the process exited within its timeout
        output: Captured standard output text
        error: Captured standard error text
        runtime: Elapsed wall-clock time in milliseconds (unsigned)
    """

    command: str
    started: bool
    finished: bool
    output: str
    error: str
    runtime: int

    def __post_init__(self) -> None:
        for name in _TEXT_FIELDS:
            value = getattr(self, name)
            if value is None:
                raise InvalidArgumentError(f"{name} must not be None")
            if not isinstance(value, str):
                raise InvalidArgumentError(
                    f"{name} must be str, got {type(value).__name__}"
                )

        if isinstance(self.runtime, bool) or not isinstance(self.runtime, int):
            raise InvalidArgumentError(
                f"runtime must be int, got {type(self.runtime).__name__}"
            )
        if self.runtime < 0:
            raise InvalidArgumentError(f"runtime must be unsigned, got {self.runtime}")

        if not self.started and (self.finished or self.output or self.error):
            raise InvalidArgumentError(
                "a result that never started cannot be finished or carry output"
            )

    @classmethod
    def not_started(cls, command: str) -> "CommandResult":
        """Result for a launch the OS rejected without raising."""
        return cls(
            command=command,
            started=False,
            finished=False,
            output="",
            error="",
            runtime=0,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return _ADAPTER.dump_python(self, mode="json")

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialize to a JSON string."""
        return _ADAPTER.dump_json(self, indent=indent).decode("utf-8")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CommandResult":
        """Rebuild a result from its serialized form.

        Raises:
            InvalidArgumentError: If a text field is missing or None, or the
                data does not validate
        """
        for name in _TEXT_FIELDS:
            if data.get(name) is None:
                raise InvalidArgumentError(f"{name} must not be None")
        try:
            return _ADAPTER.validate_python(dict(data))
        except ValidationError as e:
            raise InvalidArgumentError(str(e)) from e


_ADAPTER: TypeAdapter[CommandResult] = TypeAdapter(CommandResult)
