"""Config module tests.

Tests RUNNER_* environment variable parsing and the global config instance.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest import mock

import pytest

from cmd_runner.config import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_DRAIN_TIMEOUT,
    DEFAULT_TERM_TIMEOUT,
    Config,
    get_config,
    load_config,
    reload_config,
)
from cmd_runner.runner import RunnerConfig

RUNNER_VARS = (
    "RUNNER_TERM_TIMEOUT",
    "RUNNER_DRAIN_TIMEOUT",
    "RUNNER_BUFFER_SIZE",
    "RUNNER_ENCODING",
    "RUNNER_LOG_DEBUG",
)


@pytest.fixture
def clean_env():
    """Environment without any RUNNER_* variables."""
    env = {k: v for k, v in os.environ.items() if k not in RUNNER_VARS}
    with mock.patch.dict(os.environ, env, clear=True):
        yield
    reload_config()


class TestDefaults:
    """Test default values."""

    def test_unset_means_defaults(self, clean_env):
        config = load_config()

        assert config.term_timeout == DEFAULT_TERM_TIMEOUT
        assert config.drain_timeout == DEFAULT_DRAIN_TIMEOUT
        assert config.buffer_size == DEFAULT_BUFFER_SIZE
        assert config.encoding == "utf-8"
        assert config.log_debug is False
        assert config.log_file is None

    def test_dataclass_defaults_match(self):
        assert Config() == Config(
            term_timeout=DEFAULT_TERM_TIMEOUT,
            drain_timeout=DEFAULT_DRAIN_TIMEOUT,
            buffer_size=DEFAULT_BUFFER_SIZE,
        )


class TestParseTimeouts:
    """Test timeout parsing."""

    def test_valid_timeout(self, clean_env):
        with mock.patch.dict(os.environ, {"RUNNER_TERM_TIMEOUT": "5.5"}):
            assert load_config().term_timeout == 5.5

    def test_timeout_clamped(self, clean_env):
        with mock.patch.dict(
            os.environ,
            {"RUNNER_TERM_TIMEOUT": "0", "RUNNER_DRAIN_TIMEOUT": "1000"},
        ):
            config = load_config()
            assert config.term_timeout == 0.1
            assert config.drain_timeout == 60.0

    def test_invalid_timeout_uses_default(self, clean_env):
        with mock.patch.dict(os.environ, {"RUNNER_DRAIN_TIMEOUT": "soon"}):
            assert load_config().drain_timeout == DEFAULT_DRAIN_TIMEOUT


class TestParseBufferSize:
    """Test subscriber buffer size parsing."""

    def test_zero_means_unbounded(self, clean_env):
        with mock.patch.dict(os.environ, {"RUNNER_BUFFER_SIZE": "0"}):
            assert load_config().buffer_size == 0

    def test_negative_uses_default(self, clean_env):
        with mock.patch.dict(os.environ, {"RUNNER_BUFFER_SIZE": "-5"}):
            assert load_config().buffer_size == DEFAULT_BUFFER_SIZE

    def test_invalid_uses_default(self, clean_env):
        with mock.patch.dict(os.environ, {"RUNNER_BUFFER_SIZE": "lots"}):
            assert load_config().buffer_size == DEFAULT_BUFFER_SIZE


class TestParseEncoding:
    """Test encoding parsing."""

    def test_normalized(self, clean_env):
        with mock.patch.dict(os.environ, {"RUNNER_ENCODING": " Latin-1 "}):
            assert load_config().encoding == "iso8859-1"

    def test_unknown_uses_default(self, clean_env):
        with mock.patch.dict(os.environ, {"RUNNER_ENCODING": "no-such-codec"}):
            assert load_config().encoding == "utf-8"


class TestLogDebug:
    """Test RUNNER_LOG_DEBUG."""

    @pytest.mark.parametrize("value", ["true", "1", "yes", "ON"])
    def test_enabled_values(self, clean_env, value):
        with mock.patch.dict(os.environ, {"RUNNER_LOG_DEBUG": value}):
            config = load_config()
            assert config.log_debug is True
            assert config.log_file is not None
            assert Path(config.log_file).parent.name == "cmd-runner"

    @pytest.mark.parametrize("value", ["false", "0", "no", ""])
    def test_disabled_values(self, clean_env, value):
        with mock.patch.dict(os.environ, {"RUNNER_LOG_DEBUG": value}):
            config = load_config()
            assert config.log_debug is False
            assert config.log_file is None


class TestGlobalConfig:
    """Test get_config / reload_config."""

    def test_get_config_is_cached(self, clean_env):
        first = reload_config()
        assert get_config() is first

    def test_reload_picks_up_changes(self, clean_env):
        reload_config()
        with mock.patch.dict(os.environ, {"RUNNER_BUFFER_SIZE": "7"}):
            assert reload_config().buffer_size == 7
            assert get_config().buffer_size == 7

    def test_runner_config_uses_global_defaults(self, clean_env):
        with mock.patch.dict(os.environ, {"RUNNER_TERM_TIMEOUT": "3"}):
            reload_config()
            cfg = RunnerConfig(command="echo", args=("hi",))

        assert cfg.term_timeout == 3.0
        assert cfg.args == ["hi"]
        assert cfg.argv == ["echo", "hi"]

    def test_runner_config_explicit_values_win(self, clean_env):
        reload_config()
        cfg = RunnerConfig(command="echo", buffer_size=1, cwd="/tmp")

        assert cfg.buffer_size == 1
        assert cfg.cwd == Path("/tmp")
