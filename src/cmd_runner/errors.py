"""Runner exception classes.

cmd-runner v0.1.0
"""

from __future__ import annotations

from typing import Sequence

from .status import Status

__all__ = [
    "RunnerError",
    "InvalidTransition",
    "ProcessExitError",
    "ProcessStoppedError",
    "IOFailure",
]


class RunnerError(Exception):
    """Base exception for the runner package."""
    pass


class InvalidTransition(RunnerError):
    """An operation was called from a state that does not allow it.

    Attributes:
        operation: Name of the rejected operation
        status: Status the Runner was in when the call was rejected
    """

    def __init__(self, operation: str, status: Status) -> None:
        self.operation = operation
        self.status = status
        super().__init__(f"cannot {operation} a runner in state {status.value}")


class ProcessExitError(RunnerError):
    """The child process exited with an error or could not be launched.

    Attributes:
        argv: Command line of the child
        returncode: Exit code, negative for a signal, None for a launch failure
    """

    def __init__(
        self,
        argv: Sequence[str],
        returncode: int | None,
        message: str = "",
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        if not message:
            if returncode is None:
                message = "process could not be started"
            elif returncode < 0:
                message = f"process terminated by signal {-returncode}"
            else:
                message = f"process exited with status {returncode}"
        self.message = message
        super().__init__(f"{self.argv[0] if self.argv else '<empty>'}: {message}")


class ProcessStoppedError(ProcessExitError):
    """The child process exited because the Runner was stopped."""

    def __init__(self, argv: Sequence[str], returncode: int | None) -> None:
        super().__init__(argv, returncode, "process stopped")


class IOFailure(RunnerError):
    """Writing to the child's input stream failed."""
    pass
