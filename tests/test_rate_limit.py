"""tests/test_rate_limit.py

Unit tests for the per-client RateLimiter (cvbot/rate_limit.py).
"""

from __future__ import annotations

# Standard Library
import logging

# Third-Party Libraries
import pytest

# Local Modules
from cvbot.rate_limit import DAILY_LIMIT_REASON, SLOW_DOWN_REASON, RateLimiter


class TestShortWindow:
    """Tests for the sliding per-minute window."""

    def test_eleventh_request_in_a_minute_denied(self, clock) -> None:
        """Test the 11th request inside 60 s is rejected with the slow-down text."""
        limiter = RateLimiter(10, 100, clock=clock)
        for _ in range(10):
            assert limiter.admit("1.2.3.4").allowed
            clock.advance(1)

        admission = limiter.admit("1.2.3.4")
        assert not admission.allowed
        assert admission.reason == SLOW_DOWN_REASON

    def test_admitted_again_after_window(self, clock) -> None:
        """Test the first request after the window passes is admitted."""
        limiter = RateLimiter(10, 100, clock=clock)
        for _ in range(10):
            limiter.admit("1.2.3.4")
        assert not limiter.admit("1.2.3.4").allowed

        clock.advance(60)
        assert limiter.admit("1.2.3.4").allowed

    def test_clients_are_independent(self, clock) -> None:
        """Test one client's burst does not affect another."""
        limiter = RateLimiter(2, 100, clock=clock)
        limiter.admit("a")
        limiter.admit("a")
        assert not limiter.admit("a").allowed
        assert limiter.admit("b").allowed


class TestDailyWindow:
    """Tests for the reset-on-expiry daily cap."""

    def test_101st_request_denied(self, clock) -> None:
        """Test the daily cap applies regardless of the short window."""
        limiter = RateLimiter(10, 100, clock=clock)
        for _ in range(100):
            assert limiter.admit("ip").allowed
            clock.advance(61)

        admission = limiter.admit("ip")
        assert not admission.allowed
        assert admission.reason == DAILY_LIMIT_REASON

    def test_daily_window_resets(self, clock) -> None:
        """Test the counter restarts once the day has passed."""
        limiter = RateLimiter(10, 2, clock=clock)
        limiter.admit("ip")
        clock.advance(61)
        limiter.admit("ip")
        clock.advance(61)
        assert not limiter.admit("ip").allowed

        clock.advance(24 * 60 * 60)
        assert limiter.admit("ip").allowed


class TestMaintenance:
    """Tests for sweeping and reset."""

    def test_sweep_drops_stale_clients(self, clock) -> None:
        """Test stale clients are removed once the threshold is exceeded."""
        limiter = RateLimiter(10, 100, sweep_threshold=3, clock=clock)
        for client in ("a", "b", "c"):
            limiter.admit(client)
        clock.advance(120)
        limiter.admit("d")

        assert limiter.tracked_clients() == 1
        assert limiter.daily_records() == 4

    def test_sweep_drops_expired_daily_records(self, clock) -> None:
        """Test daily counters older than a day are swept with the windows."""
        limiter = RateLimiter(10, 100, sweep_threshold=3, clock=clock)
        for i in range(50):
            limiter.admit(f"10.0.0.{i}")
        clock.advance(2 * 24 * 60 * 60)
        limiter.admit("fresh")

        assert limiter.tracked_clients() == 1
        assert limiter.daily_records() == 1

    def test_reset_clears_state(self, clock) -> None:
        """Test reset forgets all counters."""
        limiter = RateLimiter(1, 100, clock=clock)
        limiter.admit("ip")
        assert not limiter.admit("ip").allowed

        limiter.reset()
        assert limiter.admit("ip").allowed


class TestRejectionLogging:
    """Tests for the warning emitted on every rejection."""

    def test_short_window_rejection_logged(self, clock, caplog: pytest.LogCaptureFixture) -> None:
        """Test a burst rejection is a WARNING naming the client."""
        limiter = RateLimiter(1, 100, clock=clock)
        limiter.admit("5.6.7.8")
        with caplog.at_level(logging.WARNING, logger="cvbot.rate_limit"):
            limiter.admit("5.6.7.8")

        (record,) = caplog.records
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Rate limit exceeded for 5.6.7.8"
        assert record.context == {"ip": "5.6.7.8"}

    def test_daily_rejection_logged(self, clock, caplog: pytest.LogCaptureFixture) -> None:
        """Test a daily-cap rejection is a WARNING naming the client."""
        limiter = RateLimiter(10, 1, clock=clock)
        limiter.admit("5.6.7.8")
        with caplog.at_level(logging.WARNING, logger="cvbot.rate_limit"):
            limiter.admit("5.6.7.8")

        (record,) = caplog.records
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Daily rate limit exceeded for 5.6.7.8"
        assert record.context == {"ip": "5.6.7.8"}

    def test_admission_not_logged(self, clock, caplog: pytest.LogCaptureFixture) -> None:
        """Test admitted requests emit no warning."""
        with caplog.at_level(logging.WARNING, logger="cvbot.rate_limit"):
            RateLimiter(10, 100, clock=clock).admit("5.6.7.8")
        assert caplog.records == []
