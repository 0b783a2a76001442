"""
Admin authentication: password checks and the session gate.

A session is either anonymous (no row, or a row without ``isAdmin``) or
authenticated. Login creates an authenticated session, logout or expiry
ends it.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

import bcrypt

from guidesite.errors import AuthFailedError, AuthRequiredError
from guidesite.sessions import SessionStore
from guidesite.settings_store import ADMIN_PASSWORD, SettingsStore

logger = logging.getLogger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def is_password_hash(value: str) -> bool:
    return value.startswith(_BCRYPT_PREFIXES)


def verify_password(plain_password: str, stored: str) -> bool:
    """Check a password against a bcrypt hash or a legacy plain-text value."""
    if is_password_hash(stored):
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), stored.encode("utf-8"))
        except ValueError:
            return False
    return hmac.compare_digest(plain_password.encode("utf-8"), stored.encode("utf-8"))


class AdminAuth:
    def __init__(
        self,
        settings_store: SettingsStore,
        sessions: SessionStore,
        default_password: str,
    ):
        self.settings_store = settings_store
        self.sessions = sessions
        self.default_password = default_password

    def login(self, password: str, current_sid: Optional[str] = None) -> str:
        """Return the id of a new authenticated session, or raise AuthFailedError."""
        stored = self.settings_store.get(ADMIN_PASSWORD)
        expected = stored if stored is not None else self.default_password
        if not verify_password(password, expected):
            logger.info("Admin login failed")
            raise AuthFailedError()

        # Fresh id on every login; the old one is dropped.
        self.sessions.destroy(current_sid)
        sid = self.sessions.create({"isAdmin": True})
        self.sessions.purge_expired()
        logger.info("Admin login succeeded")
        return sid

    def is_authenticated(self, sid: Optional[str]) -> bool:
        data = self.sessions.get(sid)
        return bool(data and data.get("isAdmin"))

    def require(self, sid: Optional[str]) -> None:
        if not self.is_authenticated(sid):
            raise AuthRequiredError()

    def logout(self, sid: Optional[str]) -> None:
        self.sessions.destroy(sid)
        logger.info("Admin logged out")
