"""Child process spawning and termination.

cmd-runner runtime module v0.1.0

This module provides:
- Spawning a child with stdin/stdout/stderr piped in text mode
- Graceful termination (SIGTERM) and forced kill (SIGKILL)
- Tolerance for children that have already exited

The Runner owns lifecycle and threading; this module only talks to the OS.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

__all__ = [
    "IS_WINDOWS",
    "ProcessSpec",
    "spawn_process",
    "terminate_process",
    "kill_process",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"


@dataclass(frozen=True)
class ProcessSpec:
    """Specification for a subprocess to run.

    Attributes:
        argv: Command line arguments (first element is the executable)
        cwd: Working directory for the process (None = inherit parent)
        env: Full environment for the process (None = inherit parent)
        encoding: Encoding of the standard streams
    """

    argv: list[str]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    encoding: str = "utf-8"


def _build_subprocess_kwargs(spec: ProcessSpec) -> dict[str, Any]:
    """Build kwargs for subprocess.Popen.

    Args:
        spec: Process specification

    Returns:
        Dict of kwargs for subprocess.Popen
    """
    kwargs: dict[str, Any] = {
        "stdin": subprocess.PIPE,
        "stdout": subprocess.PIPE,
        "stderr": subprocess.PIPE,
        "text": True,
        "encoding": spec.encoding,
        "errors": "replace",
        "bufsize": 1,  # line buffered stdin
    }

    if spec.cwd is not None:
        kwargs["cwd"] = spec.cwd

    if spec.env is not None:
        kwargs["env"] = dict(spec.env)

    return kwargs


def spawn_process(spec: ProcessSpec) -> subprocess.Popen[str]:
    """Launch the child process.

    Args:
        spec: Process specification

    Returns:
        The running Popen handle

    Raises:
        OSError: If the process cannot be started (missing executable,
            bad working directory, permission denied)
        ValueError: If argv is empty
    """
    if not spec.argv or not spec.argv[0]:
        raise ValueError("empty command")

    process = subprocess.Popen(spec.argv, **_build_subprocess_kwargs(spec))

    logger.debug(
        f"Started subprocess pid={process.pid} "
        f"argv={spec.argv[0]} cwd={spec.cwd}"
    )
    return process


def terminate_process(process: subprocess.Popen[str]) -> None:
    """Ask the process to exit (SIGTERM on POSIX, TerminateProcess on Windows).

    Args:
        process: The subprocess
    """
    try:
        process.terminate()
        logger.debug(f"Sent terminate to pid={process.pid}")
    except ProcessLookupError:
        logger.debug(f"Subprocess already exited pid={process.pid}")
    except OSError as e:
        logger.warning(f"Error terminating subprocess pid={process.pid}: {e}")


def kill_process(process: subprocess.Popen[str]) -> None:
    """Force kill the process (SIGKILL on POSIX).

    Args:
        process: The subprocess
    """
    try:
        process.kill()
        logger.debug(f"Sent kill to pid={process.pid}")
    except ProcessLookupError:
        logger.debug(f"Subprocess already exited pid={process.pid}")
    except OSError as e:
        logger.warning(f"Error killing subprocess pid={process.pid}: {e}")
