"""cvbot/secrets.py

Storage for the language-model API key entered through the dashboard.

The key is encrypted at rest with Fernet, using a key derived from
``JWT_SECRET``. An operator-set ``GEMINI_API_KEY`` environment value always
wins and makes the dashboard value read-only.
"""

from __future__ import annotations

# Standard Library
import base64
import hashlib
import logging
from datetime import datetime, timezone
from typing import Any

# Third-Party Libraries
from cryptography.fernet import Fernet, InvalidToken

# Local Modules
from cvbot.store import SECRETS_FILE, DataStore

logger = logging.getLogger(__name__)

MIN_KEY_LENGTH = 10
API_KEY_FIELD = "geminiApiKey"
UPDATED_AT_FIELD = "geminiApiKeyUpdatedAt"


def derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key (urlsafe base64 of 32 bytes) from a passphrase."""
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def mask_key(key: str | None) -> str | None:
    """Show just enough of ``key`` to recognise it, e.g. ``AIza...xGk4``."""
    if not key:
        return None
    if len(key) > 12:
        return f"{key[:4]}...{key[-4:]}"
    return "****"


class SecretStore:
    """Resolves and stores the model API key."""

    def __init__(self, store: DataStore, encryption_secret: str, env_key: str = "") -> None:
        """Initialize the secret store.

        Args:
            store: File store holding ``secrets.json``.
            encryption_secret: Passphrase the at-rest key is derived from.
            env_key: Operator-set key from the environment; takes priority.
        """
        self._store = store
        self._fernet = Fernet(derive_fernet_key(encryption_secret))
        self._env_key = env_key.strip()

    def _read(self) -> dict[str, Any]:
        return self._store.read_json(SECRETS_FILE) or {}

    def get_api_key(self) -> str | None:
        """Return the key to use: environment first, then the dashboard value."""
        if self._env_key:
            return self._env_key
        token = self._read().get(API_KEY_FIELD)
        if not token:
            return None
        try:
            return self._fernet.decrypt(str(token).encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError) as exc:
            logger.error(
                "Decryption of stored API key failed: %s",
                type(exc).__name__,
                extra={"context": {"file": SECRETS_FILE}},
            )
            return None

    def set_api_key(self, api_key: str) -> None:
        """Encrypt and store a dashboard-entered key.

        Raises:
            ValueError: The key is not a string of at least 10 characters.
        """
        if not isinstance(api_key, str) or len(api_key.strip()) < MIN_KEY_LENGTH:
            raise ValueError("Invalid API key format")
        secrets = self._read()
        secrets[API_KEY_FIELD] = self._fernet.encrypt(api_key.strip().encode("utf-8")).decode("ascii")
        secrets[UPDATED_AT_FIELD] = datetime.now(timezone.utc).isoformat()
        self._store.write_json(SECRETS_FILE, secrets)
        logger.info("Gemini API key updated via dashboard", extra={"important": True})

    def delete_api_key(self) -> None:
        secrets = self._read()
        secrets.pop(API_KEY_FIELD, None)
        secrets.pop(UPDATED_AT_FIELD, None)
        self._store.write_json(SECRETS_FILE, secrets)
        logger.info("Gemini API key deleted", extra={"important": True})

    @property
    def from_environment(self) -> bool:
        return bool(self._env_key)

    def masked_key(self) -> str | None:
        return mask_key(self.get_api_key())

    def status(self) -> dict[str, Any]:
        """Dashboard status: configured flag, source, masked key, editability."""
        masked = self.masked_key()
        if self.from_environment:
            source = "environment"
        elif masked:
            source = "dashboard"
        else:
            source = "none"
        return {
            "configured": masked is not None,
            "source": source,
            "maskedKey": masked,
            "canEdit": not self.from_environment,
        }
