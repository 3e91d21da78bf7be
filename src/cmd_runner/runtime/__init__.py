"""Runtime module for child process spawning.

This module isolates the OS-level process primitive (spawn, terminate, kill)
from the Runner's lifecycle and broadcast logic.
"""

from __future__ import annotations

from .process import IS_WINDOWS, ProcessSpec, kill_process, spawn_process, terminate_process

__all__ = [
    "IS_WINDOWS",
    "ProcessSpec",
    "kill_process",
    "spawn_process",
    "terminate_process",
]
