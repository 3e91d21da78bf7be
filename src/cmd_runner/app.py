"""Command-line front end.

Usage:
    python -m cmd_runner [--cwd DIR] [--env KEY=VALUE ...] -- COMMAND [ARGS...]

Prints every output line of the child, forwards stdin lines to it, and turns
the first Ctrl+C into a stop. Exits with the child's status.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from typing import IO

from .config import Config, get_config
from .errors import InvalidTransition, IOFailure
from .runner import Runner, RunnerConfig
from .status import Status

__all__ = ["main"]

logger = logging.getLogger(__name__)

EXIT_STOPPED = 130
EXIT_LAUNCH_FAILED = 1


def _setup_logging(config: Config) -> None:
    """Configure handlers: temp file at DEBUG, or stderr at INFO."""
    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Keep third-party loggers quiet
    logging.basicConfig(level=logging.WARNING, handlers=log_handlers, force=True)
    logging.getLogger("cmd_runner").setLevel(log_level)

    if config.log_file:
        logger.info(f"Debug log: {config.log_file}")


def _parse_env(pairs: list[str]) -> dict[str, str] | None:
    """Merge KEY=VALUE pairs over the current environment."""
    if not pairs:
        return None
    env = dict(os.environ)
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"invalid --env value: {pair!r}")
        env[key] = value
    return env


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cmd-runner",
        description="Run a command, stream its output and forward stdin to it.",
    )
    parser.add_argument("--cwd", default=None, help="Working directory")
    parser.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Extra environment variable (repeatable)",
    )
    parser.add_argument(
        "--no-input",
        action="store_true",
        help="Do not forward stdin to the command",
    )
    parser.add_argument("command", help="Command to run")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Command arguments")
    return parser


def _forward_input(runner: Runner, stdin: IO[str]) -> None:
    """Copy stdin lines to the child until EOF, then close its stdin."""
    try:
        for line in stdin:
            runner.write_input(line)
        runner.close_input()
    except (InvalidTransition, IOFailure, OSError) as e:
        logger.debug(f"Input forwarding stopped: {e}")


def _stop_quietly(runner: Runner) -> None:
    try:
        runner.stop()
    except InvalidTransition:
        logger.debug("Stop requested after the command finished")


def exit_code_for(runner: Runner) -> int:
    """Map the runner's terminal state to a process exit code."""
    if runner.status is Status.COMPLETED:
        return 0
    if runner.status is Status.STOPPED:
        return EXIT_STOPPED
    returncode = runner.error.returncode if runner.error is not None else None
    if returncode is None:
        return EXIT_LAUNCH_FAILED
    if returncode < 0:
        return 128 - returncode
    return returncode


def main(
    argv: list[str] | None = None,
    stdin: IO[str] | None = None,
    stdout: IO[str] | None = None,
) -> int:
    """Entry point. Returns the exit code."""
    config = get_config()
    _setup_logging(config)

    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        env = _parse_env(args.env)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout

    runner = Runner(RunnerConfig(
        command=args.command,
        args=args.args,
        env=env,
        cwd=args.cwd,
    ))
    logger.debug(f"Starting {runner!r}")

    output = runner.read_output()
    runner.start()

    if runner.status is Status.RUNNING and not args.no_input:
        threading.Thread(
            target=_forward_input,
            args=(runner, stdin),
            daemon=True,
            name="stdin-forwarder",
        ).start()

    def handle_sigint(signum, frame) -> None:
        # stop() takes the status lock; never run it inside the handler
        logger.info("Interrupted, stopping command")
        threading.Thread(target=_stop_quietly, args=(runner,), daemon=True).start()

    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        previous_handler = signal.signal(signal.SIGINT, handle_sigint)

    try:
        for line in output:
            stdout.write(line.rstrip("\n") + "\n")
            stdout.flush()
        error = runner.wait()
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    if error is not None:
        logger.info(f"Command ended: {error}")
    return exit_code_for(runner)
