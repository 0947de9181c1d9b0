"""cvbot/store.py

JSON file storage for the profile, bot configuration and secrets, with a
short-lived read cache in front of the first two.

Files live in ``Settings.data_dir``: ``profile.json``, ``botConfig.json``
and ``secrets.json``. A missing or unreadable file falls back to defaults;
writes replace the whole file (last writer wins) and drop the cache entry.
"""

from __future__ import annotations

# Standard Library
import json
import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

# Third-Party Libraries
from pydantic import ValidationError

# Local Modules
from cvbot.models import BotConfig, Profile

logger = logging.getLogger(__name__)

PROFILE_FILE = "profile.json"
BOT_CONFIG_FILE = "botConfig.json"
SECRETS_FILE = "secrets.json"


class TTLCache:
    """Tiny thread-safe key/value cache with per-entry expiry."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            hit = self._entries.get(key)
            if hit is None:
                return None
            expires, value = hit
            if self._clock() >= expires:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl <= 0:
            return
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl, value)

    def invalidate(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)


class DataStore:
    """File-backed accessor for profile, bot config and raw secrets."""

    def __init__(
        self,
        data_dir: Path | str,
        *,
        cache_ttl: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory holding the JSON files. Created on first write.
            cache_ttl: Seconds a parsed profile/config stays cached. ``0``
                disables caching.
            clock: Monotonic clock, injectable for tests.
        """
        self.data_dir = Path(data_dir)
        self.cache = TTLCache(cache_ttl, clock)
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Raw JSON
    # ------------------------------------------------------------------

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def read_json(self, name: str) -> dict[str, Any] | None:
        """Read one JSON document; ``None`` when missing or unreadable."""
        path = self._path(name)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(
                "Error reading JSON file %s: %s",
                path,
                exc,
                extra={"context": {"path": str(path), "error": str(exc)}},
            )
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object JSON document in %s", path)
            return None
        return data

    def write_json(self, name: str, data: dict[str, Any]) -> None:
        """Replace one JSON document atomically."""
        path = self._path(name)
        with self._write_lock:
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                tmp = path.with_suffix(path.suffix + ".tmp")
                tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
                tmp.replace(path)
            except OSError as exc:
                logger.error(
                    "Error writing JSON file %s: %s",
                    path,
                    exc,
                    extra={"context": {"path": str(path), "error": str(exc)}},
                )
                raise
        self.cache.invalidate(name)

    # ------------------------------------------------------------------
    # Profile / bot config
    # ------------------------------------------------------------------

    def read_profile(self) -> Profile:
        cached = self.cache.get(PROFILE_FILE)
        if cached is not None:
            return cached
        profile = self._load(PROFILE_FILE, Profile)
        self.cache.set(PROFILE_FILE, profile)
        return profile

    def write_profile(self, profile: Profile) -> None:
        self.write_json(PROFILE_FILE, profile.to_json_dict())
        logger.info("Profile updated", extra={"important": True})

    def read_bot_config(self) -> BotConfig:
        cached = self.cache.get(BOT_CONFIG_FILE)
        if cached is not None:
            return cached
        config = self._load(BOT_CONFIG_FILE, BotConfig)
        self.cache.set(BOT_CONFIG_FILE, config)
        return config

    def write_bot_config(self, config: BotConfig) -> None:
        self.write_json(BOT_CONFIG_FILE, config.to_json_dict())
        logger.info("Bot config updated", extra={"important": True})

    def _load(self, name: str, model: type[Profile] | type[BotConfig]) -> Any:
        data = self.read_json(name)
        if data is None:
            return model()
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Stored %s is invalid, using defaults: %s",
                name,
                exc,
                extra={"context": {"path": name, "errors": exc.errors()}},
            )
            return model()
