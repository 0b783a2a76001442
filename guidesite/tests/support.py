"""
Shared helpers for the test suites.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import unittest

from guidesite.bootstrap import create_schema
from guidesite.config import Settings
from guidesite.db import SqliteBackend


def make_settings(directory: str, **overrides) -> Settings:
    values = dict(
        database_url=f"sqlite+pysqlite:///{os.path.join(directory, 'test.sqlite')}",
        uploads_dir=os.path.join(directory, "uploads"),
        initial_data_path=None,
        default_admin_password="letmein",
        session_cookie_secure=False,
        vercel=False,
        s3_bucket=None,
    )
    values.update(overrides)
    return Settings(**values)


class TempDirTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir, True)


class DatabaseTestCase(TempDirTestCase):
    """Fresh SQLite file with the full schema for every test."""

    def setUp(self):
        super().setUp()
        self.db = SqliteBackend.from_path(os.path.join(self.tmpdir, "test.sqlite"))
        self.addCleanup(self.db.dispose)
        create_schema(self.db)
