import json
import os
import unittest

from guidesite.auth import is_password_hash, verify_password
from guidesite.bootstrap import create_schema, initialize, load_seed, seed
from guidesite.repositories import (
    CategoryRepository,
    FaqRepository,
    PostRepository,
    TrainingStepRepository,
)
from guidesite.settings_store import ADMIN_PASSWORD, CONTACT_LINKS, SITE_NAME, SettingsStore
from guidesite.tests.support import DatabaseTestCase, make_settings

PAYLOAD = {
    "settings": {
        "siteName": "Seeded",
        "adminPassword": "seedpass",
        "contactLinks": [{"label": "Mail", "url": "mailto:x@y.z", "icon": "mail"}],
    },
    "categories": [{"name": "One", "display_order": 1}, {"name": "Two", "display_order": 2}],
    "posts": [{"title": "P", "content": "C", "category": "One", "icon": "i"}],
    "faqs": [{"question": "Q", "answer": "A"}],
    "training_process": [{"title": "S", "description": "D", "step_order": 1}],
}


class SchemaTests(DatabaseTestCase):
    def test_create_schema_is_idempotent(self):
        create_schema(self.db)
        create_schema(self.db)
        tables = {
            row["name"]
            for row in self.db.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).rows
        }
        self.assertTrue(
            {"settings", "posts", "training_process", "categories", "faqs", "sessions"}
            <= tables
        )


class SeedTests(DatabaseTestCase):
    def test_seed_fills_empty_tables(self):
        added = seed(self.db, PAYLOAD)
        self.assertEqual(
            added,
            {"posts": 1, "training_process": 1, "settings": 3, "categories": 2, "faqs": 1},
        )
        self.assertEqual(PostRepository(self.db).list_all()[0].title, "P")
        self.assertEqual(FaqRepository(self.db).list_all()[0].question, "Q")
        self.assertEqual(TrainingStepRepository(self.db).list_all()[0].title, "S")
        self.assertEqual(
            [c.name for c in CategoryRepository(self.db).list_all()], ["One", "Two"]
        )

    def test_seed_serializes_settings(self):
        seed(self.db, PAYLOAD)
        store = SettingsStore(self.db)
        self.assertEqual(store.get(SITE_NAME), "Seeded")
        self.assertEqual(
            json.loads(store.get(CONTACT_LINKS)), PAYLOAD["settings"]["contactLinks"]
        )
        stored_password = store.get(ADMIN_PASSWORD)
        self.assertTrue(is_password_hash(stored_password))
        self.assertTrue(verify_password("seedpass", stored_password))

    def test_seed_leaves_populated_tables_alone(self):
        FaqRepository(self.db).create("Existing", "kept")
        added = seed(self.db, PAYLOAD)
        self.assertNotIn("faqs", added)
        self.assertEqual(
            [f.question for f in FaqRepository(self.db).list_all()], ["Existing"]
        )

    def test_seed_twice_adds_nothing(self):
        seed(self.db, PAYLOAD)
        self.assertEqual(seed(self.db, PAYLOAD), {})
        self.assertEqual(PostRepository(self.db).count(), 1)

    def test_initialize_reads_seed_file(self):
        path = os.path.join(self.tmpdir, "seed.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(PAYLOAD, f)
        initialize(self.db, make_settings(self.tmpdir, initial_data_path=path))
        self.assertEqual(CategoryRepository(self.db).count(), 2)


class LoadSeedTests(DatabaseTestCase):
    def test_missing_file(self):
        self.assertIsNone(load_seed(os.path.join(self.tmpdir, "absent.json")))
        self.assertIsNone(load_seed(None))

    def test_malformed_file(self):
        path = os.path.join(self.tmpdir, "broken.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("{not json")
        self.assertIsNone(load_seed(path))

    def test_non_object_file(self):
        path = os.path.join(self.tmpdir, "list.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("[1, 2]")
        self.assertIsNone(load_seed(path))

    def test_bundled_seed_file_loads(self):
        root = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
        payload = load_seed(os.path.join(root, "initial-data.json"))
        self.assertIsNotNone(payload)
        self.assertIn("settings", payload)


if __name__ == "__main__":
    unittest.main()
