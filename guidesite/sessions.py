"""
Server-side session store backed by the ``sessions`` table.

The client only ever holds the opaque session id; the payload stays here.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from typing import Optional

from guidesite.db import Backend

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, db: Backend, ttl_seconds: int):
        self.db = db
        self.ttl_seconds = ttl_seconds

    def create(self, data: dict) -> str:
        """Persist a new session and return its id once the row is committed."""
        sid = secrets.token_urlsafe(32)
        expire = int(time.time()) + self.ttl_seconds
        self.db.execute(
            "INSERT INTO sessions (sid, sess, expire) VALUES (?, ?, ?)",
            [sid, json.dumps(data), expire],
        )
        return sid

    def get(self, sid: Optional[str]) -> Optional[dict]:
        if not sid:
            return None
        row = self.db.execute(
            "SELECT sess FROM sessions WHERE sid = ? AND expire > ?",
            [sid, int(time.time())],
        ).first()
        if row is None:
            return None
        try:
            return json.loads(row["sess"])
        except ValueError:
            logger.warning("Discarding unreadable session payload")
            return None

    def destroy(self, sid: Optional[str]) -> None:
        if not sid:
            return
        self.db.execute("DELETE FROM sessions WHERE sid = ?", [sid])

    def purge_expired(self) -> int:
        result = self.db.execute(
            "DELETE FROM sessions WHERE expire <= ?", [int(time.time())]
        )
        if result.rowcount:
            logger.info("Purged %d expired sessions", result.rowcount)
        return result.rowcount
