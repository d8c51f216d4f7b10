"""Tracked subprocess with on-demand output draining.

proc-supervisor runtime module v0.1.0

There is no background reader: output is pulled from the pipes only when a
caller asks for it. Reading a stream waits for its EOF, like reading a file
to the end, while the other stream keeps being drained so a child blocked on
a full stderr pipe cannot stall a stdout read.

Key design points:
- POSIX: pipes are switched to non-blocking and read with os.read until EAGAIN
- Windows: PeekNamedPipe reports the available byte count, exactly that much
  is read
- The entry lock is only held for each non-blocking drain, never while
  waiting, so kill/release stay possible during a read
- An incremental decoder per stream keeps multi-byte characters that straddle
  two drains intact
- release() closes pipes and reaps the process deterministically
"""

from __future__ import annotations

import codecs
import logging
import os
import subprocess
import threading
import time
from dataclasses import replace
from typing import IO

from ..errors import InvalidArgumentError
from .launch import IS_WINDOWS, LaunchSpec, spawn
from .termination import kill_process_tree

if IS_WINDOWS:
    import _winapi
    import msvcrt

__all__ = ["TrackedProcess"]

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 65536
# Seconds between drains while waiting for EOF
POLL_INTERVAL = 0.01


class _StreamBuffer:
    """Accumulated text of one redirected stream."""

    def __init__(self, stream: IO[bytes] | None, encoding: str) -> None:
        self._stream = stream
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._chunks: list[str] = []
        self._eof = stream is None
        if stream is not None and not IS_WINDOWS:
            os.set_blocking(stream.fileno(), False)

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    @property
    def eof(self) -> bool:
        return self._eof

    def drain(self) -> str:
        """Read whatever is available right now and return the full text."""
        while not self._eof:
            data = self._read_available()
            if data is None:
                break
            if not data:
                self._finish()
                break
            self._append(self._decoder.decode(data))
        return self.text

    def close(self) -> None:
        """Final drain, then close the pipe."""
        self.drain()
        if self._stream is not None:
            self._finish()
            try:
                self._stream.close()
            except OSError as e:
                logger.debug(f"Error closing pipe: {e}")
            self._stream = None

    def _append(self, text: str) -> None:
        if text:
            self._chunks.append(text)
            # Keep the list short so .text stays cheap
            if len(self._chunks) > 64:
                self._chunks = ["".join(self._chunks)]

    def _finish(self) -> None:
        if not self._eof:
            self._eof = True
            self._append(self._decoder.decode(b"", final=True))

    def _read_available(self) -> bytes | None:
        """Non-blocking read.

        Returns:
            Bytes read, b"" at EOF, or None when nothing is available yet
        """
        assert self._stream is not None
        fd = self._stream.fileno()

        if IS_WINDOWS:
            try:
                available, _ = _winapi.PeekNamedPipe(msvcrt.get_osfhandle(fd), 0)
            except BrokenPipeError:
                return b""
            if not available:
                return None
            return os.read(fd, min(available, READ_CHUNK_SIZE))

        try:
            return os.read(fd, READ_CHUNK_SIZE)
        except BlockingIOError:
            return None


class TrackedProcess:
    """An OS child process plus the output drained from it so far.

    All access to the process and its buffers goes through ``self._lock`` so
    a kill and a drain on the same entry never interleave.

    Attributes:
        identifier: Registry identifier (not the OS pid)
        spec: Launch specification, with both streams redirected
    """

    def __init__(
        self,
        identifier: str,
        spec: LaunchSpec,
        *,
        encoding: str = "utf-8",
    ) -> None:
        if identifier is None:
            raise InvalidArgumentError("identifier must not be None")
        if not isinstance(identifier, str) or not identifier:
            raise InvalidArgumentError(f"identifier must be a non-empty str, got {identifier!r}")
        if spec is None:
            raise InvalidArgumentError("spec must not be None")
        if encoding is None:
            raise InvalidArgumentError("encoding must not be None")

        self.identifier = identifier
        self.spec = replace(spec, redirect_stdout=True, redirect_stderr=True)
        self._encoding = encoding
        self._lock = threading.Lock()
        self._process: subprocess.Popen[bytes] | None = None
        self._stdout: _StreamBuffer | None = None
        self._stderr: _StreamBuffer | None = None
        self._released = False

    def start(self) -> None:
        """Launch the OS process.

        Raises:
            LaunchFailureError: If the OS cannot execute the program
            RuntimeError: If the entry was already started or released
        """
        with self._lock:
            if self._released:
                raise RuntimeError(f"Process [{self.identifier}] was released before start")
            if self._process is not None:
                raise RuntimeError(f"Process [{self.identifier}] already started")
            process = spawn(self.spec)
            self._process = process
            self._stdout = _StreamBuffer(process.stdout, self._encoding)
            self._stderr = _StreamBuffer(process.stderr, self._encoding)

    @property
    def process(self) -> subprocess.Popen[bytes] | None:
        return self._process

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def has_exited(self) -> bool:
        """Whether the OS process has terminated."""
        if self._process is None:
            return False
        return self._process.poll() is not None

    @property
    def returncode(self) -> int | None:
        if self._process is None:
            return None
        return self._process.poll()

    @property
    def released(self) -> bool:
        return self._released

    def read_output(self) -> str:
        """Read standard output to EOF and return all of it.

        Blocks until the child closes its stdout (normally: exits). Repeated
        calls return the same text.
        """
        return self._read_to_end(error=False)

    def read_error_output(self) -> str:
        """Read standard error to EOF and return all of it."""
        return self._read_to_end(error=True)

    def _read_to_end(self, *, error: bool) -> str:
        while True:
            with self._lock:
                target, other = (self._stderr, self._stdout) if error else (self._stdout, self._stderr)
                if target is None:
                    return ""
                if self._released:
                    return target.text
                text = target.drain()
                if other is not None:
                    other.drain()
                if target.eof:
                    return text
            time.sleep(POLL_INTERVAL)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the process exits.

        Args:
            timeout: Seconds to wait, None for no limit

        Returns:
            True if the process has exited
        """
        # Not under self._lock: a kill must stay possible while someone waits
        if self._process is None:
            return False
        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def kill(self, *, term_grace: float = 0.0, kill_timeout: float = 1.0) -> None:
        """Forcibly terminate the process and its descendants.

        No-op if the process already exited or was never started.
        """
        with self._lock:
            if self._process is None:
                return
            kill_process_tree(
                self._process,
                term_grace=term_grace,
                kill_timeout=kill_timeout,
            )

    def release(self, *, kill_timeout: float = 1.0) -> None:
        """Close the pipes and reap the process.

        Idempotent. Accumulated text stays readable afterwards.
        """
        with self._lock:
            if self._released:
                return
            self._released = True
            if self._stdout is not None:
                self._stdout.close()
            if self._stderr is not None:
                self._stderr.close()
            if self._process is not None:
                try:
                    self._process.wait(timeout=kill_timeout)
                except subprocess.TimeoutExpired:
                    logger.warning(
                        f"Released process [{self.identifier}] pid={self._process.pid} "
                        f"is still running"
                    )
        logger.debug(f"Released tracked process [{self.identifier}]")

    def __repr__(self) -> str:
        status = "exited" if self.has_exited else "running"
        if self._process is None:
            status = "not started"
        return (
            f"TrackedProcess(id={self.identifier[:8]}..., "
            f"pid={self.pid}, "
            f"command={self.spec.command}, "
            f"status={status})"
        )
