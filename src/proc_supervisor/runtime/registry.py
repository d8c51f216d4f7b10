"""Registry of tracked subprocesses.

proc-supervisor runtime module v0.1.0

Provides:
- ProcessRegistry: start, read, kill, remove and reset identifier-keyed
  subprocesses
- get_registry(): optional process-wide instance for callers that do not
  hold their own

Thread safety: the identifier table is guarded by a reader/writer lock.
Lookups share it; start/remove/reset take it exclusively. Work on a single
entry (reading, killing) happens outside the table lock, serialized by the
entry's own lock.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from ..config import get_config
from ..errors import ProcessNotFoundError
from .launch import LaunchSpec
from .priority import raise_process_priority
from .tracked import TrackedProcess

__all__ = ["ProcessRegistry", "get_registry"]

logger = logging.getLogger(__name__)


class _ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ProcessRegistry:
    """Authoritative table of tracked subprocesses.

    Example:
        ```python
        registry = ProcessRegistry()

        proc_id = registry.start(LaunchSpec("ls", "-la"))
        registry.wait_for_exit(proc_id)
        print(registry.get_output(proc_id))

        registry.remove(proc_id)
        ```
    """

    def __init__(
        self,
        *,
        term_grace: float | None = None,
        kill_timeout: float | None = None,
        encoding: str | None = None,
        raise_priority: bool | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            term_grace: Seconds between SIGTERM and SIGKILL (default from config)
            kill_timeout: Seconds to wait for a killed process to be reaped
            encoding: Encoding used to decode captured output
            raise_priority: Try to raise this process's own priority
        """
        config = get_config()
        self.term_grace = term_grace if term_grace is not None else config.term_grace
        self.kill_timeout = kill_timeout if kill_timeout is not None else config.kill_timeout
        self.encoding = encoding if encoding is not None else config.encoding

        self._entries: dict[str, TrackedProcess] = {}
        self._table_lock = _ReadWriteLock()

        if raise_priority if raise_priority is not None else config.high_priority:
            raise_process_priority()

    @staticmethod
    def generate_identifier() -> str:
        """Generate a unique identifier.

        Returns:
            UUID4 string
        """
        return str(uuid.uuid4())

    def start(self, spec: LaunchSpec) -> str:
        """Register and start a new subprocess.

        Standard output and error are always redirected, whatever ``spec``
        says.

        Args:
            spec: Launch specification

        Returns:
            Identifier of the new entry

        Raises:
            LaunchFailureError: If the OS cannot start the program; the entry
                is removed again before the error propagates
            ProcessNotFoundError: If a concurrent remove/reset dropped the
                entry before start returned; nothing is left running
        """
        identifier = self.generate_identifier()
        entry = TrackedProcess(identifier, spec, encoding=self.encoding)

        with self._table_lock.write():
            self._entries[identifier] = entry

        try:
            entry.start()
        except Exception as e:
            with self._table_lock.write():
                self._entries.pop(identifier, None)
            if entry.released:
                logger.warning(f"Entry [{identifier}] disposed before launch, not started")
                raise ProcessNotFoundError(identifier) from e
            logger.warning(f"Start failed, rolled back [{identifier}] {spec.command_line}: {e}")
            raise

        if identifier not in self:
            # Dropped by a concurrent remove/reset while launching
            self._dispose(entry)
            logger.warning(f"Entry [{identifier}] disposed during launch, process killed")
            raise ProcessNotFoundError(identifier)

        logger.info(f"Started tracked process: {entry}")
        return identifier

    def get(self, identifier: str) -> TrackedProcess:
        """Look up an entry.

        Raises:
            ProcessNotFoundError: If the identifier is unknown
        """
        with self._table_lock.read():
            entry = self._entries.get(identifier)
        if entry is None:
            raise ProcessNotFoundError(identifier)
        return entry

    def get_output(self, identifier: str) -> str:
        """Read standard output to EOF and return all of it.

        Raises:
            ProcessNotFoundError: If the identifier is unknown
        """
        return self.get(identifier).read_output()

    def get_error_output(self, identifier: str) -> str:
        """Read standard error to EOF and return all of it.

        Raises:
            ProcessNotFoundError: If the identifier is unknown
        """
        return self.get(identifier).read_error_output()

    def wait_for_exit(self, identifier: str, timeout: float | None = None) -> bool:
        """Block until the process exits or ``timeout`` seconds pass.

        Returns:
            Whether the process has exited

        Raises:
            ProcessNotFoundError: If the identifier is unknown
        """
        return self.get(identifier).wait(timeout)

    def has_exited(self, identifier: str) -> bool:
        """Raises ProcessNotFoundError if the identifier is unknown."""
        return self.get(identifier).has_exited

    def kill(self, identifier: str) -> None:
        """Forcibly terminate the process and its descendants.

        Killing an already-exited process is not an error.

        Raises:
            ProcessNotFoundError: If the identifier is unknown
        """
        entry = self.get(identifier)
        entry.kill(term_grace=self.term_grace, kill_timeout=self.kill_timeout)
        logger.info(f"Killed tracked process: {entry}")

    def remove(self, identifier: str) -> None:
        """Kill the process, release its handles and forget the identifier.

        Raises:
            ProcessNotFoundError: If the identifier is unknown
        """
        with self._table_lock.write():
            entry = self._entries.pop(identifier, None)
        if entry is None:
            raise ProcessNotFoundError(identifier)

        self._dispose(entry)
        logger.info(f"Removed tracked process: {entry}")

    def reset(self) -> None:
        """Kill every tracked process and empty the registry."""
        with self._table_lock.write():
            entries = list(self._entries.values())
            self._entries = {}

        for entry in entries:
            self._dispose(entry)

        if entries:
            logger.info(f"Reset registry, disposed {len(entries)} process(es)")

    def identifiers(self) -> list[str]:
        """List the identifiers currently registered."""
        with self._table_lock.read():
            return list(self._entries)

    def _dispose(self, entry: TrackedProcess) -> None:
        # Idempotent: kill is a no-op once exited, release once released
        entry.kill(term_grace=self.term_grace, kill_timeout=self.kill_timeout)
        entry.release(kill_timeout=self.kill_timeout)

    def __len__(self) -> int:
        """Number of registered entries."""
        with self._table_lock.read():
            return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        with self._table_lock.read():
            return identifier in self._entries


# Process-wide instance, created on first access
_registry: ProcessRegistry | None = None
_registry_lock = threading.Lock()


def get_registry() -> ProcessRegistry:
    """Get the process-wide registry, creating it on first access."""
    global _registry
    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = ProcessRegistry()
    return _registry
