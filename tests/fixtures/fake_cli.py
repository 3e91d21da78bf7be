#!/usr/bin/env python3
"""Fake CLI for runner tests.

This script simulates a child process with predictable output. It responds to
SIGTERM by exiting with 143 unless told to ignore it.

Usage:
    python fake_cli.py [--lines N] [--stderr N] [--echo] [--duration SECONDS]
                       [--ignore-term] [--exit-code CODE]

Arguments:
    --lines: Number of "out N" lines to print on stdout (default: 0)
    --stderr: Number of "err N" lines to print on stderr (default: 0)
    --echo: Print "got: <line>" for every stdin line until EOF
    --duration: Sleep this long before exiting (default: 0)
    --ignore-term: Ignore SIGTERM (only SIGKILL ends the process)
    --exit-code: Exit code (default: 0)
"""

from __future__ import annotations

import argparse
import signal
import sys
import time
from typing import NoReturn

# Flag to indicate if we should stop
_should_stop = False


def signal_handler(signum: int, frame) -> None:
    """Handle SIGTERM."""
    global _should_stop
    print(f"received {signal.Signals(signum).name}", flush=True)
    _should_stop = True


def main() -> NoReturn:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Fake CLI for testing")
    parser.add_argument("--lines", type=int, default=0, help="stdout lines")
    parser.add_argument("--stderr", type=int, default=0, help="stderr lines")
    parser.add_argument("--echo", action="store_true", help="Echo stdin lines")
    parser.add_argument("--duration", type=float, default=0.0, help="Duration in seconds")
    parser.add_argument("--ignore-term", action="store_true", help="Ignore SIGTERM")
    parser.add_argument("--exit-code", type=int, default=0, help="Exit code")

    args = parser.parse_args()

    if args.ignore_term:
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
    else:
        signal.signal(signal.SIGTERM, signal_handler)

    for i in range(args.lines):
        print(f"out {i}", flush=True)

    for i in range(args.stderr):
        print(f"err {i}", file=sys.stderr, flush=True)

    if args.echo:
        for line in sys.stdin:
            print(f"got: {line.rstrip()}", flush=True)

    deadline = time.time() + args.duration
    while not _should_stop and time.time() < deadline:
        time.sleep(0.05)

    if _should_stop:
        sys.exit(128 + signal.SIGTERM)

    sys.exit(args.exit_code)


if __name__ == "__main__":
    main()
