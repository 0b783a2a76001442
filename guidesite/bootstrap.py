"""
Schema creation and first-run seeding.

Both steps are idempotent and run once at startup, before the app accepts
requests.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

from guidesite.auth import hash_password, is_password_hash
from guidesite.config import Settings
from guidesite.db import Backend
from guidesite.repositories import (
    CategoryRepository,
    FaqRepository,
    PostRepository,
    TrainingStepRepository,
)
from guidesite.sessions import SessionStore
from guidesite.settings_store import ADMIN_PASSWORD, SettingsStore

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        category TEXT,
        icon TEXT,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS training_process (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        step_order INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        display_order INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS faqs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        question TEXT NOT NULL,
        answer TEXT NOT NULL,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        sid TEXT PRIMARY KEY,
        sess TEXT NOT NULL,
        expire BIGINT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_expire ON sessions (expire)",
)


def create_schema(db: Backend) -> None:
    for statement in SCHEMA:
        db.execute_ddl(statement.strip())
    logger.info("Schema ready on %s backend", db.name)


def load_seed(path: Optional[str]) -> Optional[dict]:
    """Read the seed payload; a missing or unreadable file means no seeding."""
    if not path or not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        logger.error("Error reading %s: %s", path, exc)
        return None
    if not isinstance(payload, dict):
        logger.error("Ignoring %s: expected a JSON object", path)
        return None
    return payload


def _setting_value(key: str, value: Any) -> str:
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value)
    text = str(value)
    if key == ADMIN_PASSWORD and not is_password_hash(text):
        return hash_password(text)
    return text


def seed(db: Backend, payload: dict) -> dict[str, int]:
    """Populate each empty table from the payload. Returns rows added per table."""
    added: dict[str, int] = {}

    posts = PostRepository(db)
    if payload.get("posts") and posts.count() == 0:
        for item in payload["posts"]:
            posts.create(
                item["title"], item["content"], item.get("category"), item.get("icon")
            )
        added["posts"] = len(payload["posts"])

    steps = TrainingStepRepository(db)
    if payload.get("training_process") and steps.count() == 0:
        steps.replace_all(payload["training_process"])
        added["training_process"] = len(payload["training_process"])

    settings_store = SettingsStore(db)
    if payload.get("settings") and settings_store.count() == 0:
        values = {
            key: _setting_value(key, value)
            for key, value in payload["settings"].items()
            if value is not None
        }
        settings_store.set_many(values)
        added["settings"] = len(values)

    categories = CategoryRepository(db)
    if payload.get("categories") and categories.count() == 0:
        categories.replace_all(payload["categories"])
        added["categories"] = len(payload["categories"])

    faqs = FaqRepository(db)
    if payload.get("faqs") and faqs.count() == 0:
        for item in payload["faqs"]:
            faqs.create(item["question"], item["answer"])
        added["faqs"] = len(payload["faqs"])

    for table, count in added.items():
        logger.info("Seeded %s with %d rows", table, count)
    return added


def initialize(db: Backend, settings: Settings) -> None:
    create_schema(db)
    payload = load_seed(settings.initial_data_path)
    if payload:
        seed(db, payload)
    SessionStore(db, settings.session_ttl_seconds).purge_expired()
