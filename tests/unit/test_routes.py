"""
Unit tests for snooze route matching.
"""

import pytest

from snooze.http.request import Request
from snooze.http.routes import match_snooze, resolve_snooze


class TestMatchSnooze:
    """Tests for match_snooze()."""

    @pytest.mark.parametrize("path,expected", [
        ("/snooze/5", 5),
        ("/snooze/0", 0),
        ("/snooze/007", 7),
        ("/snooze/120", 120),
    ])
    def test_snooze_paths(self, path: str, expected: int):
        assert match_snooze(path) == expected

    @pytest.mark.parametrize("path", [
        "/",
        "/snooze",
        "/snooze/",
        "/snooze/12a",
        "/snooze/-3",
        "/snooze/+3",
        "/snooze/5/",
        "/snooze/5?x=1",
        "/snooze/ 5",
        "/SNOOZE/5",
        "/api/snooze/5",
        "snooze/5",
        "/snooze/٣",  # Arabic-Indic digit three
    ])
    def test_non_snooze_paths(self, path: str):
        assert match_snooze(path) is None

    @pytest.mark.parametrize("digits", ["86401", "100000", "9" * 40])
    def test_large_values_kept_exactly(self, digits: str):
        """Test that no upper bound is applied to the requested delay."""
        assert match_snooze("/snooze/" + digits) == int(digits)


class TestResolveSnooze:
    """Tests for resolve_snooze()."""

    def test_sets_seconds(self):
        request = resolve_snooze(Request(path="/snooze/4"))

        assert request.snooze_seconds == 4
        assert request.is_snooze

    def test_default_route(self):
        request = resolve_snooze(Request(path="/hello"))

        assert request.snooze_seconds == 0
        assert not request.is_snooze

    def test_returns_same_object(self):
        request = Request(path="/snooze/1")

        assert resolve_snooze(request) is request
