"""Supervisor for a single child-process execution.

cmd-runner v0.1.0

This module provides:
- A READY -> RUNNING -> COMPLETED/FAILED/STOPPED lifecycle guarded by one lock
- Line readers for stdout and stderr feeding a shared log and live subscribers
- A waiter thread that records the exit error and fires completion exactly once
- Cancellation by SIGTERM, escalated to SIGKILL after term_timeout

Key design points:
- Status is only written under the status lock. The exit path re-checks
  RUNNING so a concurrent stop() keeps STOPPED.
- The broadcast registry has its own lock. Lock order is status -> registry;
  readers take only the registry lock.
- Subscribers bound their live lines with drop-oldest buffers, so a slow
  consumer cannot stall log capture. Replay and close never drop a line.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

import anyio

from .broadcast import Broadcaster, Subscription
from .config import get_config
from .errors import (
    InvalidTransition,
    IOFailure,
    ProcessExitError,
    ProcessStoppedError,
)
from .runtime.process import (
    ProcessSpec,
    kill_process,
    spawn_process,
    terminate_process,
)
from .status import Status

__all__ = [
    "Runner",
    "RunnerConfig",
]

logger = logging.getLogger(__name__)


@dataclass
class RunnerConfig:
    """What to run and how.

    Attributes:
        command: Executable to run
        args: Arguments passed to the executable
        env: Full child environment (None = inherit parent)
        cwd: Working directory (None = inherit parent)
        term_timeout: Seconds between SIGTERM and SIGKILL after stop()
        drain_timeout: Seconds to wait for output readers after exit
        buffer_size: Per-subscriber queue size (0 = unbounded)
        encoding: Encoding of the child's standard streams
    """

    command: str
    args: list[str] = field(default_factory=list)
    env: Mapping[str, str] | None = None
    cwd: str | Path | None = None
    term_timeout: float = field(default_factory=lambda: get_config().term_timeout)
    drain_timeout: float = field(default_factory=lambda: get_config().drain_timeout)
    buffer_size: int = field(default_factory=lambda: get_config().buffer_size)
    encoding: str = field(default_factory=lambda: get_config().encoding)

    def __post_init__(self) -> None:
        if isinstance(self.cwd, str):
            self.cwd = Path(self.cwd)
        self.args = list(self.args)

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]


class Runner:
    """Runs one command and supervises it until it exits or is stopped.

    Example:
        runner = Runner(RunnerConfig(command="echo", args=["hi"]))
        output = runner.read_output()
        runner.start()
        for line in output:
            print(line)
        error = runner.wait()

    Attributes:
        config: The RunnerConfig this runner was built from
        error: Terminal error once the process has exited (None on success)
    """

    def __init__(self, config: RunnerConfig) -> None:
        self.config = config
        self.error: ProcessExitError | None = None

        self._spec = ProcessSpec(
            argv=config.argv,
            cwd=config.cwd,  # type: ignore[arg-type]
            env=config.env,
            encoding=config.encoding,
        )
        self._process: subprocess.Popen[str] | None = None
        self._status = Status.READY
        self._status_lock = threading.Lock()
        self._input_lock = threading.Lock()
        self._broadcaster = Broadcaster(buffer_size=config.buffer_size)
        self._readers: list[threading.Thread] = []
        self._exited = threading.Event()
        self._done = threading.Event()

    def __repr__(self) -> str:
        return (
            f"Runner(argv={self._spec.argv!r}, "
            f"status={self._status.value}, "
            f"pid={self.pid})"
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def status(self) -> Status:
        """Current lifecycle state. May be momentarily stale."""
        return self._status

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    def read_log(self) -> str:
        """Return all output captured so far, concatenated in arrival order."""
        return self._broadcaster.text()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Launch the process and begin capturing its output.

        A launch failure does not raise: the runner moves to FAILED and the
        error is available from wait() and the error attribute.

        Raises:
            InvalidTransition: If the runner is not READY
        """
        with self._status_lock:
            if self._status is not Status.READY:
                raise InvalidTransition("start", self._status)

            try:
                process = spawn_process(self._spec)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to start {self._spec.argv[0]!r}: {e}")
                error = ProcessExitError(self._spec.argv, None, f"failed to start: {e}")
                error.__cause__ = e
                self.error = error
                self._status = Status.FAILED
                self._broadcaster.close_all()
                self._done.set()
                return

            self._process = process
            name = Path(self._spec.argv[0]).name
            self._readers = [
                threading.Thread(
                    target=self._read_stream,
                    args=(process.stdout,),
                    daemon=True,
                    name=f"{name}-stdout",
                ),
                threading.Thread(
                    target=self._read_stream,
                    args=(process.stderr,),
                    daemon=True,
                    name=f"{name}-stderr",
                ),
            ]
            for reader in self._readers:
                reader.start()
            threading.Thread(
                target=self._wait_for_exit,
                daemon=True,
                name=f"{name}-waiter",
            ).start()

            self._status = Status.RUNNING

    def stop(self) -> None:
        """Stop a running process.

        Sets STOPPED, closes every subscription and sends SIGTERM. Does not
        wait for the process to exit; SIGKILL follows after term_timeout if
        it is still alive.

        Raises:
            InvalidTransition: If the runner is not RUNNING
        """
        with self._status_lock:
            if self._status is not Status.RUNNING:
                raise InvalidTransition("stop", self._status)
            self._status = Status.STOPPED
            process = self._process
            assert process is not None

            # Close before signalling so nothing the child prints while
            # shutting down reaches a subscriber
            self._broadcaster.close_all()

            logger.info(f"Stopping subprocess pid={process.pid}")
            terminate_process(process)
            threading.Thread(
                target=self._escalate,
                args=(process,),
                daemon=True,
                name=f"{Path(self._spec.argv[0]).name}-kill",
            ).start()

    def wait(self) -> ProcessExitError | None:
        """Block until the runner is terminal and return its error.

        Returns:
            None if the process completed successfully, otherwise the
            ProcessExitError (ProcessStoppedError after stop()). Every caller
            receives the same object.

        Raises:
            InvalidTransition: If called before start()
        """
        if self._status is Status.READY:
            raise InvalidTransition("wait for", self._status)
        self._done.wait()
        return self.error

    async def wait_async(self) -> ProcessExitError | None:
        """Async variant of wait(), run in a worker thread."""
        if self._status is Status.READY:
            raise InvalidTransition("wait for", self._status)
        await anyio.to_thread.run_sync(self._done.wait, abandon_on_cancel=True)
        return self.error

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def write_input(self, text: str) -> None:
        """Send text to the process's stdin.

        The text is logged and broadcast before it is written, so subscribers
        see the input ahead of any output it causes.

        Raises:
            InvalidTransition: If the runner is not RUNNING
            IOFailure: If writing to stdin fails
        """
        if self._status is not Status.RUNNING:
            raise InvalidTransition("write input to", self._status)
        process = self._process
        assert process is not None and process.stdin is not None

        with self._input_lock:
            self._broadcaster.publish(text)
            try:
                process.stdin.write(text)
                process.stdin.flush()
            except (OSError, ValueError) as e:
                raise IOFailure(f"failed to write to pid={process.pid}: {e}") from e

    def close_input(self) -> None:
        """Close the process's stdin so it sees end of input.

        Raises:
            InvalidTransition: If the runner is not RUNNING
            IOFailure: If closing stdin fails
        """
        if self._status is not Status.RUNNING:
            raise InvalidTransition("close input of", self._status)
        process = self._process
        assert process is not None and process.stdin is not None

        with self._input_lock:
            try:
                process.stdin.close()
            except OSError as e:
                raise IOFailure(f"failed to close stdin of pid={process.pid}: {e}") from e

    def read_output(self) -> Subscription:
        """Subscribe to the output.

        The subscription first replays everything captured so far, then
        receives each new line until the runner stops or the process exits,
        at which point it is closed.
        """
        return self._broadcaster.subscribe()

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Close a subscription early. Returns whether it was still live."""
        return self._broadcaster.unsubscribe(subscription)

    # ------------------------------------------------------------------
    # Background threads
    # ------------------------------------------------------------------

    def _read_stream(self, stream: IO[str] | None) -> None:
        """Publish each line of a stream until EOF."""
        if stream is None:
            return
        try:
            for line in stream:
                self._broadcaster.publish(line.rstrip("\n"))
        except (OSError, ValueError) as e:
            # The pipe was closed underneath us
            logger.debug(f"Output reader stopped: {e}")
        finally:
            stream.close()

    def _wait_for_exit(self) -> None:
        """Record the exit, drain the readers and fire completion."""
        process = self._process
        assert process is not None

        returncode = process.wait()
        self._exited.set()
        logger.debug(
            f"Subprocess completed pid={process.pid} returncode={returncode}"
        )

        error: ProcessExitError | None = None
        with self._status_lock:
            if self._status is Status.RUNNING:
                if returncode == 0:
                    self._status = Status.COMPLETED
                else:
                    error = ProcessExitError(self._spec.argv, returncode)
                    self._status = Status.FAILED
            elif self._status is Status.STOPPED:
                error = ProcessStoppedError(self._spec.argv, returncode)
            self.error = error

        for reader in self._readers:
            reader.join(self.config.drain_timeout)
            if reader.is_alive():
                logger.warning(
                    f"Output reader {reader.name} still open "
                    f"{self.config.drain_timeout}s after exit, giving up"
                )

        with self._input_lock:
            if process.stdin is not None and not process.stdin.closed:
                try:
                    process.stdin.close()
                except OSError as e:
                    logger.debug(f"Error closing stdin of pid={process.pid}: {e}")

        self._broadcaster.close_all()
        self._done.set()

    def _escalate(self, process: subprocess.Popen[str]) -> None:
        """Kill the process if SIGTERM did not end it within term_timeout."""
        if self._exited.wait(self.config.term_timeout):
            return
        logger.warning(
            f"Subprocess pid={process.pid} ignored SIGTERM for "
            f"{self.config.term_timeout}s, killing"
        )
        kill_process(process)
