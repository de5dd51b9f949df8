"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the snooze server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Environment variables                                          │
    │      └── PORT=8080 MESSAGE="hi" snooze                             │
    │                                                                      │
    │   2. Command-line arguments                                         │
    │      └── snooze --port 8080 --message "hi"                         │
    │                                                                      │
    │   3. Built-in defaults                                              │
    │      └── port 80, "Hello from snooze!\n"                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Environment wins over flags here. snooze is usually started from a
container image whose ENTRYPOINT bakes in flags, so the orchestrator's
environment has to be able to override them without rebuilding.

A PORT value that is not a positive integer is ignored and the flag (or
the default) applies instead.

=============================================================================
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from .errors import ConfigError


DEFAULT_PORT = 80
DEFAULT_MESSAGE = "Hello from snooze!\n"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS = ("json", "text")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the snooze server.

    Frozen: once resolved at start-up the configuration never changes for
    the lifetime of the process. Use dataclasses.replace() to derive a
    modified copy (tests do this a lot).

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, read_timeout

    RESPONSE
    - default_message, server_name

    CONCURRENCY
    - workers (0 = serial, one connection at a time)
    - shutdown_timeout

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to. snooze runs in containers, so all
    interfaces is the default.
    """

    port: int = DEFAULT_PORT
    """
    The port number to listen on. 0 asks the OS for a free port, which
    is what the test-suite uses.
    """

    backlog: int = 10
    """Maximum number of queued connections waiting for accept()."""

    read_timeout: Optional[float] = 30.0
    """
    Per-connection socket timeout while reading the request.
    A client that connects and never sends anything is cut off after this.
    None blocks forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE
    # ─────────────────────────────────────────────────────────────────────

    default_message: str = DEFAULT_MESSAGE
    """Body sent for every path that is not a snooze route."""

    server_name: str = "snooze"
    """Value of the Server response header."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 0
    """
    Number of worker threads.
    0 keeps the serial model: each connection (delay included) is handled
    completely before the next one is accepted.
    """

    shutdown_timeout: float = 30.0
    """
    How long to wait for in-flight connections after a stop signal
    before in-progress delays are aborted.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    log_format: str = "json"
    """Access log format: 'json' (one object per line) or 'text'."""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables only.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HOST            Bind address (default: 0.0.0.0)
        PORT            Listen port (default: 80, ignored unless > 0)
        MESSAGE         Default response body
        LOG_LEVEL       Logging level (default: INFO)
        LOG_FORMAT      json or text (default: json)
        SNOOZE_WORKERS  Worker threads, 0 = serial (default: 0)
        READ_TIMEOUT    Request read timeout in seconds (default: 30)

        =====================================================================
        """
        return cls.resolve(None, environ)

    @classmethod
    def resolve(
        cls,
        args: Optional[Any] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ServerConfig":
        """
        Build the configuration from CLI arguments and the environment.

        Args:
            args: argparse.Namespace (or anything with the same attributes).
                  Attributes that are missing or None are treated as unset.
            environ: Environment mapping. Defaults to os.environ.

        Returns:
            A validated ServerConfig.

        Raises:
            ConfigError: If the resolved values are invalid.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        # Layer 2: command-line flags
        for name in ("host", "port", "default_message", "log_level",
                     "log_format", "workers", "read_timeout"):
            value = getattr(args, name, None) if args is not None else None
            if value is not None:
                values[name] = value

        # Layer 1: environment, overriding flags
        port = _positive_int(env.get("PORT"))
        if port is not None:
            values["port"] = port

        if env.get("MESSAGE") is not None:
            values["default_message"] = env["MESSAGE"]

        if env.get("HOST"):
            values["host"] = env["HOST"]

        if env.get("LOG_LEVEL"):
            values["log_level"] = env["LOG_LEVEL"].upper()

        if env.get("LOG_FORMAT"):
            values["log_format"] = env["LOG_FORMAT"].lower()

        if env.get("SNOOZE_WORKERS"):
            values["workers"] = _parse(int, "SNOOZE_WORKERS", env["SNOOZE_WORKERS"])

        if env.get("READ_TIMEOUT"):
            values["read_timeout"] = _parse(float, "READ_TIMEOUT", env["READ_TIMEOUT"])

        config = cls(**values)
        config.validate()
        return config

    def with_overrides(self, **changes: Any) -> "ServerConfig":
        """Return a validated copy with the given fields replaced."""
        config = replace(self, **changes)
        config.validate()
        return config

    def validate(self) -> None:
        """
        Validate configuration values.

        We validate at startup, not at first use, so a bad deployment fails
        immediately with a clear message instead of on the first request.

        Raises:
            ConfigError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ConfigError("backlog must be >= 1")

        if self.workers < 0:
            raise ConfigError("workers must be >= 0")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ConfigError("read_timeout must be > 0")

        if self.shutdown_timeout <= 0:
            raise ConfigError("shutdown_timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level: {self.log_level}. Choose from {', '.join(LOG_LEVELS)}."
            )

        if self.log_format not in LOG_FORMATS:
            raise ConfigError(
                f"Invalid log format: {self.log_format}. Choose from {', '.join(LOG_FORMATS)}."
            )

    @property
    def is_concurrent(self) -> bool:
        """True when connections are dispatched to a worker pool."""
        return self.workers > 0


def _positive_int(raw: Optional[str]) -> Optional[int]:
    """Parse PORT the forgiving way: anything but a positive integer is unset."""
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value > 0 else None


def _parse(convert, name: str, raw: str):
    try:
        return convert(raw.strip())
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: {raw!r}") from None


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Frozen dataclass: the config cannot drift while the server runs
# 2. Precedence: environment > CLI flags > defaults
# 3. Validation at startup (fail-fast, ConfigError)
#
# DEPLOYMENT CHECKLIST:
# □ Bind to 0.0.0.0 inside containers (the default)
# □ Ports < 1024 need root or CAP_NET_BIND_SERVICE
# □ Keep workers=0 unless clients can tolerate interleaved timing
# =============================================================================
