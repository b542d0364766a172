"""JSON history store: format, idempotence, pruning."""

import asyncio
import json
import os
import tempfile
import unittest

from models.wallet_history import HistoryStore
from models.wallet_models import WalletHistoryEntry


class HistoryStoreTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "data", "wallet-history.json")
        self.store = HistoryStore(self.path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_file_is_empty(self):
        self.assertEqual(self.store.load(), {})

    def test_corrupt_file_is_empty(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            f.write("{not json")
        self.assertEqual(self.store.load(), {})

    def test_undecodable_file_is_empty(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "wb") as f:
            f.write(b"\xff\xfe[garbage")
        self.assertEqual(self.store.load(), {})
        self.assertIsNone(self.store.get("Main"))

    def test_saved_as_array(self):
        entry = WalletHistoryEntry(name="Main", balance="6172.80", status="success", platform="debank")
        self.assertTrue(self.store.save({"Main": entry}))
        with open(self.path) as f:
            data = json.load(f)
        self.assertIsInstance(data, list)
        self.assertEqual(data[0]["name"], "Main")
        self.assertEqual(data[0]["balance"], "6172.80")
        self.assertEqual(data[0]["status"], "success")
        self.assertIn("lastUpdated", data[0])
        self.assertIn("id", data[0])

    def test_save_of_load_is_identity(self):
        entries = {
            "A": WalletHistoryEntry(name="A", balance="10.00", status="success", platform="debank"),
            "B": WalletHistoryEntry(name="B", balance="", status="unavailable"),
        }
        self.store.save(entries)
        with open(self.path) as f:
            before = f.read()
        self.store.save(self.store.load())
        with open(self.path) as f:
            after = f.read()
        self.assertEqual(before, after)

    def test_duplicate_names_collapse(self):
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w") as f:
            json.dump(
                [
                    {"id": "1", "name": "A", "balance": "1", "lastUpdated": "t1", "status": "success"},
                    {"id": "2", "name": "A", "balance": "2", "lastUpdated": "t2", "status": "success"},
                ],
                f,
            )
        entries = self.store.load()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries["A"].balance, "2")

    def test_prune_removes_only_inactive(self):
        self.store.save(
            {
                "A": WalletHistoryEntry(name="A", balance="1", status="success"),
                "B": WalletHistoryEntry(name="B", balance="2", status="success"),
            }
        )
        removed = asyncio.run(self.store.prune(["A"]))
        self.assertEqual(removed, 1)
        self.assertEqual(list(self.store.load()), ["A"])
        self.assertEqual(asyncio.run(self.store.prune(["A"])), 0)

    def test_update_skips_save_when_mutation_returns_none(self):
        asyncio.run(self.store.update(lambda entries: None))
        self.assertFalse(os.path.exists(self.path))


if __name__ == "__main__":
    unittest.main()
