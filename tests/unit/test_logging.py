"""
Unit tests for access log entries and formatting.
"""

import io
import json
import logging
import re
import sys
from datetime import datetime, timezone

import pytest

from snooze.logging import (
    ACCESS_LOGGER,
    AccessLog,
    JsonFormatter,
    RequestLog,
    setup_logging,
    utc_timestamp,
)


@pytest.fixture
def entry() -> RequestLog:
    return RequestLog(
        exec_time_seconds=3.004567,
        method="GET",
        path="/snooze/3",
        user_agent="curl/8.5.0",
        other_headers=[("Host", "localhost"), ("Accept", "*/*")],
        client_ip="10.0.0.7",
        snooze_seconds=3,
    )


class TestRequestLog:
    """Tests for RequestLog."""

    def test_to_dict(self, entry: RequestLog):
        data = entry.to_dict()

        assert data["level"] == "info"
        assert data["subsystem"] == ACCESS_LOGGER
        assert data["exec_time_seconds"] == 3.0046
        assert data["method"] == "GET"
        assert data["path"] == "/snooze/3"
        assert data["user_agent"] == "curl/8.5.0"
        assert data["client_ip"] == "10.0.0.7"
        assert data["snooze_seconds"] == 3
        assert data["responded"] is True

    def test_other_headers_keep_order(self, entry: RequestLog):
        """Test that other_headers serialize as pairs in encounter order."""
        data = json.loads(json.dumps(entry.to_dict()))

        assert data["other_headers"] == [["Host", "localhost"], ["Accept", "*/*"]]

    def test_repeated_headers_survive_json(self):
        """Test that a repeated header name keeps every value and its position."""
        entry = RequestLog(
            exec_time_seconds=0.0,
            method="GET",
            path="/",
            user_agent="unknown",
            other_headers=[("A", "1"), ("B", "2"), ("A", "3")],
        )

        data = json.loads(json.dumps(entry.to_dict()))

        assert [tuple(pair) for pair in data["other_headers"]] == [("A", "1"), ("B", "2"), ("A", "3")]

    def test_envelope_keys_first(self, entry: RequestLog):
        keys = list(entry.to_dict())

        assert keys[:4] == ["timestamp", "level", "subsystem", "exec_time_seconds"]

    def test_timestamp_format(self, entry: RequestLog):
        assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", entry.timestamp)

    def test_to_text(self, entry: RequestLog):
        line = entry.to_text()

        assert line.startswith('10.0.0.7 "GET /snooze/3" 3.005s')
        assert 'ua="curl/8.5.0"' in line
        assert "headers=[Host: localhost; Accept: */*]" in line
        assert "no response" not in line

    def test_to_text_unanswered(self):
        entry = RequestLog(0.0, "GET", "/", "unknown", responded=False)

        assert entry.to_text().startswith('- "GET /"')
        assert entry.to_text().endswith("(no response)")

    def test_levelno(self, entry: RequestLog):
        assert entry.levelno == logging.INFO


class TestAccessLog:
    """Tests for AccessLog."""

    def test_record_emits_one_info_line(self, entry: RequestLog, caplog):
        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            AccessLog().record(entry)

        records = [r for r in caplog.records if r.name == ACCESS_LOGGER]
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        assert records[0].access == entry.to_dict()
        assert records[0].getMessage() == entry.to_text()

    def test_custom_logger(self, entry: RequestLog, caplog):
        with caplog.at_level(logging.INFO, logger="custom.access"):
            AccessLog(logging.getLogger("custom.access")).record(entry)

        assert [r.name for r in caplog.records] == ["custom.access"]


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name="snooze.server", level=logging.WARNING, pathname=__file__,
            lineno=1, msg="careful %s", args=("now",), exc_info=None,
        )
        record.__dict__.update(extra)
        return record

    def test_access_record_rendered_as_is(self, entry: RequestLog):
        line = JsonFormatter().format(self._record(access=entry.to_dict()))

        assert json.loads(line) == entry.to_dict()

    def test_plain_record_gets_envelope(self):
        data = json.loads(JsonFormatter().format(self._record()))

        assert data["level"] == "warning"
        assert data["subsystem"] == "snooze.server"
        assert data["message"] == "careful now"
        assert "timestamp" in data

    def test_exception_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = self._record(exc_info=sys.exc_info())

        data = json.loads(JsonFormatter().format(record))

        assert "ValueError: bad" in data["exception"]

    def test_single_line(self, entry: RequestLog):
        entry.user_agent = "multi\nline"
        line = JsonFormatter().format(self._record(access=entry.to_dict()))

        assert "\n" not in line


class TestSetupLogging:
    """Tests for setup_logging()."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        snooze_logger = logging.getLogger("snooze")
        handlers, root_level, level = root.handlers[:], root.level, snooze_logger.level
        yield
        root.handlers[:] = handlers
        root.setLevel(root_level)
        snooze_logger.setLevel(level)

    def test_json_handler(self):
        stream = io.StringIO()
        handler = setup_logging("DEBUG", "json", stream=stream)

        assert isinstance(handler.formatter, JsonFormatter)
        assert handler.stream is stream
        assert logging.getLogger("snooze").level == logging.DEBUG

    def test_text_handler(self):
        handler = setup_logging("WARNING", "text", stream=io.StringIO())

        assert not isinstance(handler.formatter, JsonFormatter)
        assert logging.getLogger("snooze").level == logging.WARNING

    def test_handler_output(self, entry: RequestLog):
        stream = io.StringIO()
        handler = setup_logging("INFO", "json", stream=stream)

        record = logging.LogRecord(
            ACCESS_LOGGER, logging.INFO, __file__, 1, entry.to_text(), (), None,
        )
        record.access = entry.to_dict()
        handler.handle(record)

        assert json.loads(stream.getvalue()) == entry.to_dict()


def test_utc_timestamp_fixed():
    when = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)

    assert utc_timestamp(when) == "2024-05-01T12:30:45.123Z"
