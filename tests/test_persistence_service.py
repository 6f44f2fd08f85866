import json
import os
import tempfile
import unittest

from gamestats.services import PersistenceService


class PersistenceServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.service = PersistenceService(os.path.join(self.tmp.name, "cache"))

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_missing_cache_is_empty(self) -> None:
        self.assertEqual(self.service.load_records("1234"), [])

    def test_replace_and_load(self) -> None:
        self.service.replace_records("1234", [{"id": "game1"}])
        self.service.replace_records("1234", [{"id": "game2"}, {"id": "game1"}])

        self.assertEqual(self.service.load_records("1234"), [{"id": "game2"}, {"id": "game1"}])
        self.assertEqual(self.service.load_records("9999"), [])
        leftovers = [name for name in os.listdir(os.path.dirname(self.service.cache_path("1234")))
                     if name.endswith(".tmp")]
        self.assertEqual(leftovers, [])

    def test_scope_is_made_filename_safe(self) -> None:
        path = self.service.cache_path("../etc/pw d")
        self.assertEqual(os.path.basename(path), "games_.._etc_pw_d.json")
        self.assertEqual(os.path.dirname(path), self.service.cache_dir)

    def test_non_list_cache_is_rejected(self) -> None:
        PersistenceService.write_json_file(self.service.cache_path("1234"), {"games": []})
        with self.assertRaises(ValueError):
            self.service.load_records("1234")

    def test_quarantine_moves_file_aside(self) -> None:
        self.service.replace_records("1234", [])
        moved = self.service.quarantine("1234")
        self.assertTrue(os.path.exists(moved))
        self.assertFalse(os.path.exists(self.service.cache_path("1234")))

    def test_clear(self) -> None:
        self.service.replace_records("1234", [{"id": "game1"}])
        self.service.clear("1234")
        self.service.clear("1234")
        self.assertEqual(self.service.load_records("1234"), [])

    def test_read_json_file(self) -> None:
        path = os.path.join(self.tmp.name, "backup.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"version": "1.0"}, f)
        self.assertEqual(PersistenceService.read_json_file(path), {"version": "1.0"})
        with self.assertRaises(FileNotFoundError):
            PersistenceService.read_json_file(path + ".missing")
