"""cmd-runner - supervise a single child process.

Starts a command, tracks it through READY/RUNNING/COMPLETED/STOPPED/FAILED,
captures its combined output and broadcasts each line to live subscribers.

Environment variables:
    RUNNER_TERM_TIMEOUT: SIGTERM to SIGKILL grace period (default 2.0)
    RUNNER_DRAIN_TIMEOUT: output drain wait after exit (default 2.0)
    RUNNER_BUFFER_SIZE: per-subscriber queue size (default 10000, 0 = unbounded)
    RUNNER_ENCODING: encoding of the child's standard streams (default utf-8)
    RUNNER_LOG_DEBUG: debug logging for the cmd_runner loggers (default false)

Usage:
    python -m cmd_runner -- echo hi
"""

__version__ = "0.1.0"

from .broadcast import Broadcaster, Subscription
from .errors import (
    InvalidTransition,
    IOFailure,
    ProcessExitError,
    ProcessStoppedError,
    RunnerError,
)
from .runner import Runner, RunnerConfig
from .status import Status

__all__ = [
    "__version__",
    "Broadcaster",
    "InvalidTransition",
    "IOFailure",
    "ProcessExitError",
    "ProcessStoppedError",
    "Runner",
    "RunnerConfig",
    "RunnerError",
    "Status",
    "Subscription",
]
