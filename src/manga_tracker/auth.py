"""Session handling for the single editor account."""

import logging
import secrets
import threading
from typing import Optional

from .config import Settings

logger = logging.getLogger(__name__)


class AuthManager:
    """Checks editor credentials and tracks issued session tokens in memory."""

    def __init__(self, username: Optional[str], password: Optional[str]):
        self.username = username
        self.password = password
        self._tokens: set[str] = set()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthManager":
        return cls(settings.auth_username, settings.auth_password)

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    def validate_credentials(self, username: str, password: str) -> bool:
        if not self.configured:
            logger.warning("Login attempted but no editor credentials are configured")
            return False
        user_ok = secrets.compare_digest(username.encode(), self.username.encode())
        pass_ok = secrets.compare_digest(password.encode(), self.password.encode())
        return user_ok and pass_ok

    def login(self, username: str, password: str) -> Optional[str]:
        """Return a new session token, or None for bad credentials."""
        if not self.validate_credentials(username, password):
            logger.warning(f"Failed login for user {username!r}")
            return None
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens.add(token)
        logger.info(f"User {username} logged in")
        return token

    def logout(self, token: str) -> None:
        with self._lock:
            self._tokens.discard(token)

    def is_authenticated(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            return token in self._tokens
