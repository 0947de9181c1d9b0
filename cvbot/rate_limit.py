"""cvbot/rate_limit.py

Per-client admission control for the chat endpoint.

Two windows per client id (normally the visitor's IP):

- a sliding short window: timestamps within the trailing ``window_seconds``,
  capped at ``per_window``;
- a reset-on-expiry daily window: a counter that restarts once more than
  ``day_seconds`` passed since it started, capped at ``per_day``.

State is in memory and lost on restart.
"""

from __future__ import annotations

# Standard Library
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0
DAY_SECONDS = 24 * 60 * 60.0
SWEEP_THRESHOLD = 1000

DAILY_LIMIT_REASON = (
    "You have reached the daily message limit. Please try again tomorrow! 🌙"
)
SLOW_DOWN_REASON = "Whoa, slow down! 🚦 Too many messages too fast. Please wait a moment."


@dataclass(frozen=True, slots=True)
class Admission:
    allowed: bool
    reason: str | None = None


@dataclass(slots=True)
class _DailyRecord:
    count: int
    start: float


class RateLimiter:
    """Sliding-window plus daily-cap limiter keyed by client id."""

    def __init__(
        self,
        per_window: int = 10,
        per_day: int = 100,
        *,
        window_seconds: float = WINDOW_SECONDS,
        day_seconds: float = DAY_SECONDS,
        sweep_threshold: int = SWEEP_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.per_window = per_window
        self.per_day = per_day
        self.window_seconds = window_seconds
        self.day_seconds = day_seconds
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._requests: dict[str, list[float]] = {}
        self._daily: dict[str, _DailyRecord] = {}
        self._lock = threading.Lock()

    def admit(self, client_id: str) -> Admission:
        """Decide whether ``client_id`` may make another chat request.

        Args:
            client_id: Stable identifier for the caller.

        Returns:
            An :class:`Admission`; ``reason`` is user-facing when denied.
        """
        with self._lock:
            now = self._clock()

            daily = self._daily.get(client_id)
            if daily is None or now - daily.start > self.day_seconds:
                self._daily[client_id] = _DailyRecord(count=1, start=now)
            elif daily.count >= self.per_day:
                logger.warning(
                    "Daily rate limit exceeded for %s",
                    client_id,
                    extra={"context": {"ip": client_id}},
                )
                return Admission(False, DAILY_LIMIT_REASON)
            else:
                daily.count += 1

            recent = [t for t in self._requests.get(client_id, []) if now - t < self.window_seconds]
            if len(recent) >= self.per_window:
                self._requests[client_id] = recent
                logger.warning(
                    "Rate limit exceeded for %s",
                    client_id,
                    extra={"context": {"ip": client_id}},
                )
                return Admission(False, SLOW_DOWN_REASON)

            recent.append(now)
            self._requests[client_id] = recent

            if len(self._requests) > self.sweep_threshold:
                self._sweep(now)

            return Admission(True)

    def _sweep(self, now: float) -> None:
        for client_id, stamps in list(self._requests.items()):
            live = [t for t in stamps if now - t < self.window_seconds]
            if live:
                self._requests[client_id] = live
            else:
                del self._requests[client_id]
        for client_id, record in list(self._daily.items()):
            if now - record.start > self.day_seconds:
                del self._daily[client_id]
        logger.debug(
            "Rate limiter sweep kept %d clients (%d daily records)",
            len(self._requests),
            len(self._daily),
        )

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._requests)

    def daily_records(self) -> int:
        with self._lock:
            return len(self._daily)

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()
            self._daily.clear()
