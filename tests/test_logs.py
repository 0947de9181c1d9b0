"""tests/test_logs.py

Unit tests for the server log store and redaction (cvbot/logs.py).
"""

from __future__ import annotations

# Standard Library
import logging
from collections.abc import Iterator

# Third-Party Libraries
import pytest

# Local Modules
from cvbot.logs import REDACTED, LogStore, sanitize_for_logging


@pytest.fixture
def store_logger() -> Iterator[tuple[LogStore, logging.Logger]]:
    """A logger wired only to a fresh LogStore."""
    store = LogStore(capacity=3)
    log = logging.getLogger("cvbot.tests.logs")
    log.setLevel(logging.DEBUG)
    log.propagate = False
    log.addHandler(store)
    yield store, log
    log.removeHandler(store)


class TestSanitize:
    """Context redaction."""

    def test_sensitive_keys_redacted(self) -> None:
        """Test keys containing sensitive markers are hidden at any depth."""
        data = {"apiKey": "x", "nested": {"Authorization": "Bearer y", "ok": 1}, "user_password": "z"}
        assert sanitize_for_logging(data) == {
            "apiKey": REDACTED,
            "nested": {"Authorization": REDACTED, "ok": 1},
            "user_password": REDACTED,
        }

    def test_long_strings_truncated(self) -> None:
        """Test strings over the limit are cut."""
        result = sanitize_for_logging("a" * 600)
        assert result == "a" * 100 + "...[TRUNCATED]"

    def test_lists_capped(self) -> None:
        """Test lists keep only their first ten items."""
        assert sanitize_for_logging(list(range(20))) == list(range(10))

    def test_depth_capped(self) -> None:
        """Test deep nesting is cut off."""
        deep: dict = {"v": 1}
        for _ in range(8):
            deep = {"n": deep}
        flattened = sanitize_for_logging(deep)
        for _ in range(6):
            flattened = flattened["n"]
        assert flattened == "[MAX_DEPTH_EXCEEDED]"


class TestLogStore:
    """Buffering, filtering and summaries."""

    def test_keeps_warnings_and_important_info(self, store_logger) -> None:
        """Test plain info/debug records are dropped."""
        store, log = store_logger
        log.debug("debug")
        log.info("routine")
        log.info("login failed", extra={"important": True})
        log.warning("careful")

        messages = [entry["message"] for entry in store.recent()]
        assert messages == ["careful", "login failed"]
        assert store.recent()[0]["level"] == "warn"

    def test_capacity_and_order(self, store_logger) -> None:
        """Test the newest entries win once full."""
        store, log = store_logger
        for i in range(5):
            log.error("error %d", i)

        assert [e["message"] for e in store.recent()] == ["error 4", "error 3", "error 2"]

    def test_context_is_redacted(self, store_logger) -> None:
        """Test structured context is sanitized on the way in."""
        store, log = store_logger
        log.warning("bad request", extra={"context": {"token": "abc", "ip": "1.2.3.4"}})
        assert store.recent()[0]["context"] == {"token": REDACTED, "ip": "1.2.3.4"}

    def test_filter_summary_clear(self, store_logger) -> None:
        """Test level filter, summary counts and clearing."""
        store, log = store_logger
        log.error("e")
        log.warning("w")
        log.info("i", extra={"important": True})

        assert [e["message"] for e in store.recent(level="error")] == ["e"]
        assert store.recent(limit=1)[0]["message"] == "i"
        assert store.summary() == {"total": 3, "error": 1, "warn": 1, "info": 1}

        store.clear()
        assert store.summary()["total"] == 0
