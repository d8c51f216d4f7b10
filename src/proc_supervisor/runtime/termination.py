"""Recursive process termination.

proc-supervisor runtime module v0.1.0

Termination strategy:
1. Optionally send SIGTERM to the process group and wait term_grace seconds
2. Send SIGKILL to the process group (taskkill /T /F on Windows)
3. Wait up to kill_timeout for the main process to be reaped

Children are launched in their own session/process group, so signalling the
group reaches every descendant that did not detach itself.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess

from .launch import IS_WINDOWS

__all__ = ["kill_process_tree"]

logger = logging.getLogger(__name__)


def kill_process_tree(
    process: subprocess.Popen,
    *,
    term_grace: float = 0.0,
    kill_timeout: float = 1.0,
) -> None:
    """Forcibly terminate ``process`` and its descendants.

    If the process already exited, only descendants left in its process
    group are killed (POSIX); with none left this is a no-op.

    Args:
        process: The subprocess to terminate
        term_grace: Seconds to wait after a graceful signal before killing;
            0 skips the graceful step
        kill_timeout: Seconds to wait for the process to be reaped
    """
    pid = process.pid

    if process.poll() is not None:
        logger.debug(f"Subprocess already exited pid={pid} returncode={process.returncode}")
        if not IS_WINDOWS:
            # Descendants left behind in the group
            _posix_signal_group(process, signal.SIGKILL)
        return

    logger.debug(f"Terminating subprocess tree pid={pid}")

    try:
        if term_grace > 0:
            if IS_WINDOWS:
                _windows_terminate(process)
            else:
                _posix_signal_group(process, signal.SIGTERM)
            try:
                process.wait(timeout=term_grace)
                logger.debug(
                    f"Subprocess terminated gracefully pid={pid} "
                    f"returncode={process.returncode}"
                )
                if not IS_WINDOWS:
                    # Leader is gone, stragglers in the group are not
                    _posix_signal_group(process, signal.SIGKILL)
                return
            except subprocess.TimeoutExpired:
                pass

        if IS_WINDOWS:
            _windows_kill_tree(process)
        else:
            _posix_signal_group(process, signal.SIGKILL)

        try:
            process.wait(timeout=kill_timeout)
            logger.debug(f"Subprocess killed pid={pid} returncode={process.returncode}")
        except subprocess.TimeoutExpired:
            logger.warning(f"Subprocess did not exit after kill pid={pid}")

    except ProcessLookupError:
        logger.debug(f"Subprocess already exited pid={pid}")


def _posix_signal_group(process: subprocess.Popen, sig: signal.Signals) -> None:
    """Send ``sig`` to the process group on POSIX systems.

    Args:
        process: The subprocess (a session leader)
        sig: Signal to deliver
    """
    # start_new_session makes the child its own group leader, so pgid == pid.
    # os.getpgid would fail once the leader is reaped.
    pgid = process.pid
    try:
        os.killpg(pgid, sig)
        logger.debug(f"Sent {sig.name} to process group pgid={pgid}")
    except ProcessLookupError:
        pass
    except OSError as e:
        logger.debug(f"killpg failed, falling back to single process: {e}")
        if process.poll() is None:
            process.send_signal(sig)


def _windows_terminate(process: subprocess.Popen) -> None:
    """Send CTRL_BREAK_EVENT on Windows.

    Args:
        process: The subprocess
    """
    try:
        # Works because the child got CREATE_NEW_PROCESS_GROUP
        os.kill(process.pid, signal.CTRL_BREAK_EVENT)
        logger.debug(f"Sent CTRL_BREAK_EVENT to pid={process.pid}")
    except OSError as e:
        logger.debug(f"CTRL_BREAK_EVENT failed, falling back: {e}")
        process.terminate()


def _windows_kill_tree(process: subprocess.Popen) -> None:
    """Force kill a process tree on Windows.

    Args:
        process: The subprocess
    """
    try:
        subprocess.run(
            ["taskkill", "/T", "/F", "/PID", str(process.pid)],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
        )
        logger.debug(f"taskkill /T /F on pid={process.pid}")
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug(f"taskkill failed, falling back to kill(): {e}")
        if process.poll() is None:
            process.kill()
