"""
Unit tests for the SQLite local annotation index.

Covers idempotent puts, no-op page updates, lookup misses, removal and
persistence across reopen.
"""

import sqlite3
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from collabsync.domain.errors import IndexPersistenceError
from collabsync.infrastructure.sqlite import SCHEMA_VERSION, AnnotationIndexStore


class TestAnnotationIndexStore(unittest.TestCase):
    """Index contract against an in-memory database."""

    def setUp(self):
        self.store = AnnotationIndexStore(":memory:")
        self.store.initialize_schema()

    def tearDown(self):
        self.store.close()

    def test_put_then_lookup(self):
        self.store.put("a1", "s1", "d1", 2)
        self.assertEqual(self.store.lookup_server_id("a1", "d1", 2), "s1")
        self.assertEqual(self.store.lookup_page_number("a1", "d1"), 2)

    def test_put_is_idempotent(self):
        """Replayed adds leave one record and write once."""
        self.store.put("a1", "s1", "d1", 2)
        self.store.put("a1", "s1", "d1", 2)
        self.store.put("a1", "s1", "d1", 2)

        self.assertEqual(self.store.count(), 1)
        self.assertEqual(self.store.write_count, 1)

    def test_put_on_other_page_moves_record(self):
        self.store.put("a1", "s1", "d1", 2)
        self.store.put("a1", "s1", "d1", 5)

        records = self.store.records()
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].page_number, 5)
        self.assertIsNone(self.store.lookup_server_id("a1", "d1", 2))

    def test_same_annotation_in_two_documents(self):
        self.store.put("a1", "s1", "d1", 1)
        self.store.put("a1", "s9", "d2", 1)

        self.assertEqual(self.store.lookup_server_id("a1", "d1", 1), "s1")
        self.assertEqual(self.store.lookup_server_id("a1", "d2", 1), "s9")

    def test_lookup_misses_return_none(self):
        self.assertIsNone(self.store.lookup_server_id("nope", "d1", 1))
        self.assertIsNone(self.store.lookup_page_number("nope", "d1"))

        self.store.put("a1", "s1", "d1", 2)
        # Exact match on all three keys
        self.assertIsNone(self.store.lookup_server_id("a1", "d1", 3))
        self.assertIsNone(self.store.lookup_server_id("a1", "d2", 2))

    def test_empty_server_id_is_not_found(self):
        self.store.put("a1", "", "d1", 1)
        self.assertIsNone(self.store.lookup_server_id("a1", "d1", 1))
        self.assertEqual(self.store.lookup_page_number("a1", "d1"), 1)

    def test_update_page_number_same_page_writes_nothing(self):
        self.store.put("a1", "s1", "d1", 2)
        writes = self.store.write_count

        self.store.update_page_number("a1", "s1", "d1", 2)

        self.assertEqual(self.store.write_count, writes)

    def test_update_page_number_moves_record(self):
        self.store.put("a1", "s1", "d1", 2)
        self.store.update_page_number("a1", "s1", "d1", 4)

        self.assertEqual(self.store.lookup_page_number("a1", "d1"), 4)
        self.assertEqual(self.store.lookup_server_id("a1", "d1", 4), "s1")
        self.assertEqual(self.store.count(), 1)

    def test_update_page_number_requires_matching_server_id(self):
        self.store.put("a1", "s1", "d1", 2)
        writes = self.store.write_count

        self.store.update_page_number("a1", "other", "d1", 4)

        self.assertEqual(self.store.lookup_page_number("a1", "d1"), 2)
        self.assertEqual(self.store.write_count, writes)

    def test_remove_clears_mapping(self):
        self.store.put("a1", "s1", "d1", 2)
        self.store.remove("a1", "d1", 2)

        self.assertIsNone(self.store.lookup_server_id("a1", "d1", 2))
        self.assertIsNone(self.store.lookup_page_number("a1", "d1"))

    def test_remove_absent_is_noop(self):
        self.store.put("a1", "s1", "d1", 2)
        writes = self.store.write_count

        self.store.remove("a1", "d1", 3)
        self.store.remove("zz", "d1", 2)

        self.assertEqual(self.store.count(), 1)
        self.assertEqual(self.store.write_count, writes)

    def test_clear(self):
        self.store.put("a1", "s1", "d1", 1)
        self.store.put("a2", "s2", "d1", 2)
        self.store.clear()
        self.assertEqual(self.store.count(), 0)

    def test_records_filter_and_order(self):
        self.store.put("b", "s2", "d1", 3)
        self.store.put("a", "s1", "d1", 1)
        self.store.put("c", "s3", "d2", 1)

        all_ids = [r.annotation_id for r in self.store.records()]
        self.assertEqual(all_ids, ["a", "b", "c"])

        d1 = self.store.records("d1")
        self.assertEqual([r.annotation_id for r in d1], ["a", "b"])
        self.assertIsNotNone(d1[0].updated_at)

    def test_schema_version_recorded(self):
        self.assertEqual(self.store.get_schema_version(), SCHEMA_VERSION)

    def test_initialize_schema_twice(self):
        self.store.put("a1", "s1", "d1", 1)
        self.store.initialize_schema()
        self.assertEqual(self.store.count(), 1)


class TestAnnotationIndexPersistence(unittest.TestCase):
    """File-backed behaviour."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = Path(self.temp_dir.name) / "nested" / "index.db"

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_survives_reopen(self):
        with AnnotationIndexStore(self.db_path) as store:
            store.put("a1", "s1", "d1", 2)

        with AnnotationIndexStore(self.db_path) as store:
            self.assertEqual(store.lookup_server_id("a1", "d1", 2), "s1")

    def test_sqlite_errors_are_wrapped(self):
        store = AnnotationIndexStore(self.db_path)
        store.initialize_schema()
        conn = store._get_connection()
        conn.execute("DROP TABLE annotation_index")

        with self.assertRaises(IndexPersistenceError) as ctx:
            store.put("a1", "s1", "d1", 1)
        self.assertIsInstance(ctx.exception.__cause__, sqlite3.Error)
        store.close()

    def test_connect_failure_is_wrapped(self):
        store = AnnotationIndexStore(self.db_path)
        with patch(
            "collabsync.infrastructure.sqlite.store.sqlite3.connect",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ):
            with self.assertRaises(IndexPersistenceError):
                store.initialize_schema()


if __name__ == "__main__":
    unittest.main()
