"""cvbot/auth.py

Dashboard authentication: one shared password exchanged for a signed,
expiring token that the API stores in an HttpOnly cookie.
"""

from __future__ import annotations

# Standard Library
import hmac
import logging
import time
from typing import Any

# Third-Party Libraries
import jwt

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth_token"
TOKEN_LIFETIME_SECONDS = 60 * 60 * 24 * 7
ALGORITHM = "HS256"


class DashboardAuth:
    """Password check plus JWT issue/verify for the admin dashboard."""

    def __init__(self, password: str, secret: str, *, lifetime: int = TOKEN_LIFETIME_SECONDS) -> None:
        self._password = password
        self._secret = secret
        self.lifetime = lifetime

    def verify_password(self, candidate: Any) -> bool:
        if not isinstance(candidate, str):
            return False
        valid = hmac.compare_digest(candidate.encode("utf-8"), self._password.encode("utf-8"))
        if not valid:
            logger.info("Failed login attempt", extra={"important": True})
        return valid

    def create_token(self, now: float | None = None) -> str:
        issued = int(now if now is not None else time.time())
        payload = {"authenticated": True, "iat": issued, "exp": issued + self.lifetime}
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify_token(self, token: str | None) -> bool:
        """Return ``True`` for a valid, unexpired dashboard token."""
        if not token:
            return False
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.debug("Authentication check failed: token expired")
            return False
        except jwt.InvalidTokenError as exc:
            logger.debug("Authentication check failed: %s", exc)
            return False
        return bool(payload.get("authenticated"))
