"""
Unit tests for configuration resolution.
"""

import argparse

import pytest

from snooze.config import DEFAULT_MESSAGE, DEFAULT_PORT, ServerConfig
from snooze.errors import ConfigError


def cli(**kwargs) -> argparse.Namespace:
    """Namespace shaped like the CLI parser output (unset flags are None)."""
    values = dict(
        host=None, port=None, default_message=None, log_level=None,
        log_format=None, workers=None,
    )
    values.update(kwargs)
    return argparse.Namespace(**values)


class TestDefaults:
    """Tests for built-in defaults."""

    def test_defaults(self):
        config = ServerConfig.resolve(cli(), environ={})

        assert config.host == "0.0.0.0"
        assert config.port == DEFAULT_PORT == 80
        assert config.default_message == DEFAULT_MESSAGE == "Hello from snooze!\n"
        assert config.backlog == 10
        assert config.workers == 0
        assert config.log_level == "INFO"
        assert config.log_format == "json"
        assert config.server_name == "snooze"
        assert not config.is_concurrent

    def test_no_args_at_all(self):
        assert ServerConfig.resolve(None, environ={}) == ServerConfig()


class TestPrecedence:
    """Environment > CLI flags > defaults."""

    def test_cli_overrides_defaults(self):
        config = ServerConfig.resolve(
            cli(port=8080, default_message="flag\n", host="127.0.0.1", workers=3),
            environ={},
        )

        assert config.port == 8080
        assert config.default_message == "flag\n"
        assert config.host == "127.0.0.1"
        assert config.workers == 3
        assert config.is_concurrent

    def test_env_overrides_cli(self):
        config = ServerConfig.resolve(
            cli(port=8080, default_message="flag\n"),
            environ={"PORT": "9090", "MESSAGE": "env\n"},
        )

        assert config.port == 9090
        assert config.default_message == "env\n"

    @pytest.mark.parametrize("raw", ["0", "-1", "abc", "", " ", "80.5"])
    def test_invalid_port_env_ignored(self, raw: str):
        """Test that a non-positive or non-numeric PORT falls back to the flag."""
        config = ServerConfig.resolve(cli(port=8080), environ={"PORT": raw})

        assert config.port == 8080

    def test_invalid_port_env_falls_back_to_default(self):
        config = ServerConfig.resolve(cli(), environ={"PORT": "nope"})

        assert config.port == DEFAULT_PORT

    def test_port_env_with_whitespace(self):
        config = ServerConfig.resolve(cli(), environ={"PORT": " 8081 "})

        assert config.port == 8081

    def test_empty_message_env_is_used(self):
        """Test that MESSAGE set to empty still wins (empty body)."""
        config = ServerConfig.resolve(cli(default_message="flag"), environ={"MESSAGE": ""})

        assert config.default_message == ""

    def test_other_env_vars(self):
        config = ServerConfig.resolve(cli(), environ={
            "HOST": "::1",
            "LOG_LEVEL": "debug",
            "LOG_FORMAT": "TEXT",
            "SNOOZE_WORKERS": "4",
            "READ_TIMEOUT": "2.5",
        })

        assert config.host == "::1"
        assert config.log_level == "DEBUG"
        assert config.log_format == "text"
        assert config.workers == 4
        assert config.read_timeout == 2.5

    def test_bad_numeric_env_raises(self):
        with pytest.raises(ConfigError, match="SNOOZE_WORKERS"):
            ServerConfig.resolve(cli(), environ={"SNOOZE_WORKERS": "many"})

    def test_from_env(self):
        config = ServerConfig.from_env({"PORT": "7000"})

        assert config.port == 7000

    def test_from_env_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("PORT", "7001")
        monkeypatch.delenv("MESSAGE", raising=False)

        assert ServerConfig.from_env().port == 7001


class TestValidation:
    """Tests for ServerConfig.validate()."""

    @pytest.mark.parametrize("changes", [
        {"port": -1},
        {"port": 65536},
        {"backlog": 0},
        {"workers": -1},
        {"read_timeout": 0},
        {"shutdown_timeout": -5},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
    ])
    def test_invalid_values(self, changes: dict):
        with pytest.raises(ConfigError):
            ServerConfig().with_overrides(**changes)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            ServerConfig(port=70000).validate()

    def test_port_zero_allowed(self):
        """Port 0 asks the OS for an ephemeral port."""
        ServerConfig(port=0).validate()

    def test_read_timeout_none_allowed(self):
        ServerConfig(read_timeout=None).validate()

    def test_resolve_validates(self):
        with pytest.raises(ConfigError):
            ServerConfig.resolve(cli(log_format="yaml"), environ={})

    def test_frozen(self):
        config = ServerConfig()

        with pytest.raises(AttributeError):
            config.port = 1234

    def test_with_overrides_returns_copy(self):
        config = ServerConfig()
        other = config.with_overrides(port=1234)

        assert other.port == 1234
        assert config.port == DEFAULT_PORT
