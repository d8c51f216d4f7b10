"""Best-effort elevation of the supervising process's own priority."""

from __future__ import annotations

import logging
import os

from .launch import IS_WINDOWS

__all__ = ["raise_process_priority"]

logger = logging.getLogger(__name__)

# Windows HIGH_PRIORITY_CLASS
_HIGH_PRIORITY_CLASS = 0x00000080
# POSIX niceness for "high"; negative values need privileges
_HIGH_PRIORITY_NICE = -10


def raise_process_priority() -> bool:
    """Try to run the current process at high priority.

    Never raises: lacking the privilege is an expected condition.

    Returns:
        Whether the priority was raised
    """
    try:
        if IS_WINDOWS:
            import ctypes

            kernel32 = ctypes.windll.kernel32
            if not kernel32.SetPriorityClass(kernel32.GetCurrentProcess(), _HIGH_PRIORITY_CLASS):
                raise ctypes.WinError()
        else:
            os.setpriority(os.PRIO_PROCESS, 0, _HIGH_PRIORITY_NICE)
    except OSError as e:
        logger.warning(
            f"Unable to set process priority to high ({e}). "
            f"Consider running with elevated permissions."
        )
        return False

    logger.info("Process priority set to high")
    return True
