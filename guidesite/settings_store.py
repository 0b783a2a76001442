"""
Key/value store for site-wide settings.

Values are plain text. Structured values such as the contact-link list are
serialized by the caller before ``set_many`` and parsed by the caller after
``get_all``.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from guidesite.db import Backend

logger = logging.getLogger(__name__)

SITE_NAME = "siteName"
PRIMARY_COLOR = "primaryColor"
ADMIN_PASSWORD = "adminPassword"
LOGO_URL = "logoUrl"
CONTACT_INFO = "contactInfo"
CONTACT_LINKS = "contactLinks"


class SettingsStore:
    def __init__(self, db: Backend):
        self.db = db

    def get_all(self) -> dict[str, str]:
        rows = self.db.execute("SELECT key, value FROM settings").rows
        return {row["key"]: row["value"] for row in rows}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        row = self.db.execute(
            "SELECT value FROM settings WHERE key = ?", [key]
        ).first()
        if row is None:
            return default
        return row["value"]

    def set_many(self, values: Mapping[str, Optional[str]]) -> list[str]:
        """
        Upsert every key whose value is not None and leave the rest alone.

        Returns the keys that were written.
        """
        written = []
        with self.db.transaction() as tx:
            for key, value in values.items():
                if value is None:
                    continue
                tx.execute(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                    [key, value],
                )
                written.append(key)
        if written:
            logger.info("Updated settings: %s", ", ".join(sorted(written)))
        return written

    def count(self) -> int:
        value = self.db.execute("SELECT COUNT(*) AS count FROM settings").scalar()
        return int(value or 0)
