"""Runtime module for subprocess supervision.

This module provides the registry of tracked subprocesses, the bounded
one-shot command runner, and the launch/termination primitives they share.
"""

from __future__ import annotations

from .launch import LaunchSpec
from .registry import ProcessRegistry, get_registry
from .runner import CommandRunner, run_command
from .tracked import TrackedProcess

__all__ = [
    "CommandRunner",
    "LaunchSpec",
    "ProcessRegistry",
    "TrackedProcess",
    "get_registry",
    "run_command",
]
