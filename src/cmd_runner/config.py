"""Runner environment configuration.

Environment variables:
    RUNNER_TERM_TIMEOUT: seconds between SIGTERM and SIGKILL after stop()
        - default 2.0, clamped to 0.1-60

    RUNNER_DRAIN_TIMEOUT: seconds the waiter waits for output readers to
        finish after the child exits
        - default 2.0, clamped to 0.1-60

    RUNNER_BUFFER_SIZE: per-subscriber queue size
        - default 10000
        - 0 = unbounded

    RUNNER_ENCODING: encoding of the child's standard streams
        - default utf-8

    RUNNER_LOG_DEBUG: CLI debug logging
        - true/1/yes = on (DEBUG level, written to a temp file)
        - false/0/no = off (default, INFO level on stderr)
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config"]

DEFAULT_TERM_TIMEOUT = 2.0
DEFAULT_DRAIN_TIMEOUT = 2.0
DEFAULT_BUFFER_SIZE = 10_000
DEFAULT_ENCODING = "utf-8"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_timeout(value: str | None, default: float) -> float:
    """Parse a timeout in seconds, clamped to 0.1-60."""
    if not value:
        return default
    try:
        timeout = float(value)
    except ValueError:
        return default
    return max(0.1, min(timeout, 60.0))


def _parse_buffer_size(value: str | None) -> int:
    """Parse the subscriber buffer size; negative or invalid means default."""
    if not value:
        return DEFAULT_BUFFER_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_BUFFER_SIZE
    return size if size >= 0 else DEFAULT_BUFFER_SIZE


def _parse_encoding(value: str | None) -> str:
    """Parse an encoding name, falling back to utf-8 when unknown."""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


@dataclass
class Config:
    """Runner configuration.

    Attributes:
        term_timeout: Grace period between SIGTERM and SIGKILL on stop
        drain_timeout: How long to wait for output readers after exit
        buffer_size: Per-subscriber queue size (0 = unbounded)
        encoding: Encoding of the child's standard streams
        log_debug: CLI debug logging into a temp file
        log_file: Log file path (set when log_debug=True)
    """

    term_timeout: float = DEFAULT_TERM_TIMEOUT
    drain_timeout: float = DEFAULT_DRAIN_TIMEOUT
    buffer_size: int = DEFAULT_BUFFER_SIZE
    encoding: str = DEFAULT_ENCODING
    log_debug: bool = False
    log_file: str | None = None


def _generate_log_file_path() -> str:
    """Build a timestamped log file path under the system temp directory."""
    log_dir = Path(tempfile.gettempdir()) / "cmd-runner"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"runner_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("RUNNER_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        term_timeout=_parse_timeout(
            os.environ.get("RUNNER_TERM_TIMEOUT"), DEFAULT_TERM_TIMEOUT
        ),
        drain_timeout=_parse_timeout(
            os.environ.get("RUNNER_DRAIN_TIMEOUT"), DEFAULT_DRAIN_TIMEOUT
        ),
        buffer_size=_parse_buffer_size(os.environ.get("RUNNER_BUFFER_SIZE")),
        encoding=_parse_encoding(os.environ.get("RUNNER_ENCODING")),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global config instance, loaded lazily
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload the global configuration (used by tests)."""
    global _config
    _config = load_config()
    return _config
