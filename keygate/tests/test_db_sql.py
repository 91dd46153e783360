import unittest
from datetime import datetime, timezone

from keygate import service
from keygate.db import SqlStoreClient
from keygate.errors import DuplicateKeyError, InvalidKey
from keygate.records import AccessKey

NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


class SqlStoreClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store.
    """

    @classmethod
    def setUpClass(cls):
        cls.db = SqlStoreClient("sqlite+pysqlite:///:memory:")

    def setUp(self):
        self.db.reset()

    def test_add_and_list_keys(self):
        first = service.issue_key(self.db, 1, "admin", now=NOW)
        second = service.issue_key(self.db, 2, now=NOW)
        keys = self.db.list_keys()
        self.assertEqual([k.key for k in keys], [first.key, second.key])
        self.assertEqual(keys[0].created_by, "admin")
        self.assertEqual(self.db.get_key(second.key).duration, 2)
        self.assertIsNone(self.db.get_key("sk_live_missing"))

    def test_fractional_duration_kept(self):
        self.db.add_key(
            AccessKey(
                key="sk_live_halfday",
                expires_at="2099-01-01T12:00:00.000Z",
                duration=0.5,
                created_at="2098-12-31T00:00:00.000Z",
            )
        )
        self.assertEqual(self.db.get_key("sk_live_halfday").duration, 0.5)
        self.assertEqual(self.db.snapshot()["keys"][0]["duration"], 0.5)

    def test_duplicate_key_rejected(self):
        record = service.issue_key(self.db, 1, now=NOW)
        with self.assertRaises(DuplicateKeyError):
            self.db.add_key(record)

    def test_claim_binds_once(self):
        key = service.issue_key(self.db, 1, now=NOW).key
        record = service.login(self.db, key, "a@x.com", now=NOW)
        self.assertEqual(record.used_by, "a@x.com")
        record = service.login(self.db, key, "b@x.com", now=NOW)
        self.assertEqual(record.used_by, "a@x.com")

        registrations = self.db.list_registrations()
        self.assertEqual(len(registrations), 1)
        self.assertEqual(registrations[0].email, "a@x.com")
        self.assertEqual(registrations[0].key, key)

    def test_claim_unknown_key(self):
        with self.assertRaises(InvalidKey):
            self.db.claim_key("sk_live_none", "a@x.com", "2025-03-01T00:00:00.000Z")

    def test_user_data_partial_updates(self):
        self.assertEqual(
            self.db.get_user_data("a@x.com").as_dict(), {"projects": [], "settings": {}}
        )
        self.db.save_user_data("a@x.com", projects=[{"id": 1}])
        self.db.save_user_data("a@x.com", settings={"theme": "dark"})
        data = self.db.get_user_data("a@x.com")
        self.assertEqual(data.projects, [{"id": 1}])
        self.assertEqual(data.settings, {"theme": "dark"})

        self.db.save_user_data("a@x.com", projects=[])
        self.assertEqual(self.db.get_user_data("a@x.com").projects, [])
        self.assertEqual(self.db.get_user_data("a@x.com").settings, {"theme": "dark"})

    def test_snapshot_layout(self):
        key = service.issue_key(self.db, 1, now=NOW).key
        service.login(self.db, key, "a@x.com", now=NOW)
        self.db.save_user_data("a@x.com", projects=[1])
        snapshot = self.db.snapshot()
        self.assertEqual(snapshot["keys"][0]["usedBy"], "a@x.com")
        self.assertEqual(snapshot["projects"], {"a@x.com": [1]})
        self.assertEqual(snapshot["settings"], {})
        self.assertEqual(snapshot["registrations"][0]["email"], "a@x.com")


if __name__ == "__main__":
    unittest.main()
