"""
=============================================================================
ACCESS LOGGING
=============================================================================

One structured entry per connection, emitted when the connection is done:

    {"timestamp": "2026-10-18T09:14:03.512Z", "level": "info",
     "subsystem": "snooze.access", "exec_time_seconds": 5.0021,
     "method": "GET", "path": "/snooze/5", "user_agent": "curl/8.5.0",
     "other_headers": [["Host", "localhost:8080"], ["Accept", "*/*"]],
     "client_ip": "172.17.0.1", "snooze_seconds": 5, "responded": true}

exec_time_seconds covers reading + handling, the snooze delay included,
and excludes the time spent waiting in accept() or in the worker queue.

=============================================================================
WHO DECIDES WHAT
=============================================================================

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │  Connection handler  │  builds the RequestLog (fields, timing)      │
    │  AccessLog.record()  │  hands it to the "snooze.access" logger      │
    │  logging config      │  decides whether it is emitted (level) and   │
    │                      │  how it looks (json or text)                 │
    └──────────────────────┴──────────────────────────────────────────────┘

The handler never checks log levels itself.

=============================================================================
FORMATS
=============================================================================

json: every record, access or operational, is one JSON object per line.
      This is what log shippers (Loki, ELK, Datadog) want from a container.

text: "%(asctime)s [%(levelname)s] %(name)s: %(message)s", with access
      entries rendered as a single readable line.

=============================================================================
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TextIO, Tuple


ACCESS_LOGGER = "snooze.access"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def utc_timestamp(when: Optional[datetime] = None) -> str:
    """ISO 8601 UTC timestamp with millisecond precision."""
    when = when or datetime.now(timezone.utc)
    return when.strftime("%Y-%m-%dT%H:%M:%S.") + f"{when.microsecond // 1000:03d}Z"


@dataclass
class RequestLog:
    """
    Structured log entry for one handled connection.

    =========================================================================
    FIELDS
    =========================================================================

    timestamp:          When the connection finished (ISO 8601, UTC)
    level:              Log level name, lower case ("info")
    subsystem:          Logger name the entry belongs to
    exec_time_seconds:  Read + handle duration, snooze included
    method:             Request method ("GET" if unparsable)
    path:               Request target ("/" if unparsable)
    user_agent:         User-Agent header ("unknown" if absent)
    other_headers:      Remaining headers as [name, value] pairs in
                        encounter order, repeats included
    client_ip:          Peer address
    snooze_seconds:     Delay that was requested (0 for the default route)
    responded:          False if no response was written (peer closed
                        before sending anything, send failure, abort)

    =========================================================================
    """

    exec_time_seconds: float
    method: str
    path: str
    user_agent: str
    other_headers: List[Tuple[str, str]] = field(default_factory=list)
    client_ip: str = ""
    snooze_seconds: int = 0
    responded: bool = True
    level: str = "info"
    subsystem: str = ACCESS_LOGGER
    timestamp: str = field(default_factory=utc_timestamp)

    @property
    def levelno(self) -> int:
        return logging.getLevelName(self.level.upper())

    @property
    def attributes(self) -> Dict[str, Any]:
        """Request-derived fields, without the envelope."""
        return {
            "method": self.method,
            "path": self.path,
            "user_agent": self.user_agent,
            "other_headers": [[name, value] for name, value in self.other_headers],
            "client_ip": self.client_ip,
            "snooze_seconds": self.snooze_seconds,
            "responded": self.responded,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Flat dict for JSON serialization."""
        entry = {
            "timestamp": self.timestamp,
            "level": self.level,
            "subsystem": self.subsystem,
            "exec_time_seconds": round(self.exec_time_seconds, 4),
        }
        entry.update(self.attributes)
        return entry

    def to_text(self) -> str:
        """Single human readable line."""
        headers = "; ".join(f"{name}: {value}" for name, value in self.other_headers)
        outcome = "" if self.responded else " (no response)"
        return (
            f'{self.client_ip or "-"} "{self.method} {self.path}" '
            f'{self.exec_time_seconds:.3f}s ua="{self.user_agent}" '
            f"headers=[{headers}]{outcome}"
        )


class AccessLog:
    """
    Sink for RequestLog entries.

    Usage:
        access_log = AccessLog()
        access_log.record(entry)
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(ACCESS_LOGGER)

    def record(self, entry: RequestLog) -> None:
        """Emit one entry. Level filtering is up to the logging config."""
        self.logger.log(entry.levelno, entry.to_text(), extra={"access": entry.to_dict()})


class JsonFormatter(logging.Formatter):
    """
    Render every record as a single JSON object.

    Access records carry their fields in record.access and are emitted
    as-is; anything else gets a small envelope around its message.
    """

    def format(self, record: logging.LogRecord) -> str:
        access = getattr(record, "access", None)
        if access is not None:
            return json.dumps(access, ensure_ascii=False)

        entry = {
            "timestamp": utc_timestamp(datetime.fromtimestamp(record.created, timezone.utc)),
            "level": record.levelname.lower(),
            "subsystem": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Configure logging for the process.

    Installs one stream handler on the root logger through
    logging.basicConfig, so it is a no-op if logging was already
    configured by the embedding application.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "json" or "text".
        stream: Output stream, stderr by default.

    Returns:
        The handler that was created.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stderr)
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT))

    logging.basicConfig(level=numeric_level, handlers=[handler])
    logging.getLogger("snooze").setLevel(numeric_level)
    return handler
