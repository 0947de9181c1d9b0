"""cvbot/logs.py

Logging setup plus the bounded, admin-viewable server log store.

Every module logs through the standard ``logging`` module. ``LogStore`` is a
``logging.Handler`` that keeps the newest warning/error records (and info
records flagged ``important``) in memory so the dashboard can show them
without shell access to the host. Structured context travels in
``extra={"context": {...}}`` and is redacted before it is stored.
"""

from __future__ import annotations

# Standard Library
import logging
import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

MAX_LOG_ENTRIES = 100
MAX_DEPTH = 5
MAX_STRING_LENGTH = 500
MAX_LIST_ITEMS = 10

# Matched case-insensitively as substrings of context keys.
SENSITIVE_KEYS: tuple[str, ...] = (
    "password",
    "api_key",
    "apikey",
    "token",
    "secret",
    "authorization",
    "cookie",
    "session",
)

REDACTED = "[REDACTED]"

_LEVEL_NAMES: dict[int, str] = {
    logging.ERROR: "error",
    logging.WARNING: "warn",
    logging.INFO: "info",
}


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def sanitize_for_logging(value: Any, depth: int = 0) -> Any:
    """Return a copy of ``value`` that is safe to keep in the log store.

    Sensitive keys are replaced with ``[REDACTED]``, long strings are
    truncated, lists are capped and nesting is bounded.

    Args:
        value: Arbitrary JSON-like data.
        depth: Current recursion depth.

    Returns:
        Sanitized data.
    """
    if depth > MAX_DEPTH:
        return "[MAX_DEPTH_EXCEEDED]"
    if value is None:
        return None
    if isinstance(value, str):
        if len(value) > MAX_STRING_LENGTH:
            return value[:100] + "...[TRUNCATED]"
        return value
    if isinstance(value, dict):
        return {
            str(key): REDACTED
            if _is_sensitive(str(key))
            else sanitize_for_logging(item, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        return [sanitize_for_logging(item, depth + 1) for item in list(value)[:MAX_LIST_ITEMS]]
    if isinstance(value, (int, float, bool)):
        return value
    return sanitize_for_logging(str(value), depth + 1)


class LogStore(logging.Handler):
    """Fixed-size, newest-first buffer of log entries for the admin API."""

    def __init__(self, capacity: int = MAX_LOG_ENTRIES) -> None:
        super().__init__(level=logging.INFO)
        self.capacity = capacity
        self._entries: deque[dict[str, Any]] = deque(maxlen=capacity)
        self._entries_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        if record.levelno < logging.WARNING and not getattr(record, "important", False):
            return
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        level = _LEVEL_NAMES.get(record.levelno, "error" if record.levelno > logging.ERROR else "info")
        entry = {
            "id": uuid.uuid4().hex[:12],
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": level,
            "logger": record.name,
            "message": message,
            "context": sanitize_for_logging(getattr(record, "context", {}) or {}),
        }
        with self._entries_lock:
            self._entries.appendleft(entry)

    def recent(self, limit: int = 50, level: str | None = None) -> list[dict[str, Any]]:
        """Return up to ``limit`` entries, newest first, optionally by level."""
        with self._entries_lock:
            entries = list(self._entries)
        if level:
            entries = [entry for entry in entries if entry["level"] == level]
        return entries[:limit]

    def summary(self) -> dict[str, int]:
        """Count stored entries per level."""
        with self._entries_lock:
            entries = list(self._entries)
        counts = {"total": len(entries), "error": 0, "warn": 0, "info": 0}
        for entry in entries:
            if entry["level"] in counts:
                counts[entry["level"]] += 1
        return counts

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()


def configure_logging(level: str = "INFO", store: LogStore | None = None) -> LogStore:
    """Configure root logging and attach the log store.

    Args:
        level: Root level name (e.g. ``"INFO"``).
        store: Existing store to attach; a new one is created when omitted.

    Returns:
        The attached :class:`LogStore`.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    store = store or LogStore()
    root = logging.getLogger()
    if store not in root.handlers:
        root.addHandler(store)
    return store
