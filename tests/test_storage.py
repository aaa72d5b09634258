import os
import unittest

from errors import InvalidInput, StorageFailure
from fakes import FakeClock, TempDirMixin
from storage import MAX_EXPIRE_HOURS, CatalogItem, CatalogStore, Database, DeliveryLedger, normalize_key


class TestCatalogStore(TempDirMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.clock = FakeClock()
        self.db = Database(os.path.join(self.tmpdir, "data", "catalog.db"))
        self.catalog = CatalogStore(self.db, clock=self.clock)

    def tearDown(self):
        self.db.close()
        super().tearDown()

    def _item(self, key="demo", hours=1, **kw):
        return CatalogItem(key=key, title=kw.pop("title", "Demo"), media_ref=kw.pop("media_ref", "ref1"),
                           expire_hours=hours, **kw)

    def test_normalize_key(self):
        self.assertEqual(normalize_key("  DeMo "), "demo")
        self.assertEqual(normalize_key(None), "")

    def test_put_and_get_are_case_insensitive(self):
        stored = self.catalog.put(self._item(key=" Demo "))
        self.assertEqual(stored.key, "demo")
        self.assertEqual(stored.added_at, int(self.clock.now))

        got = self.catalog.get("DEMO")
        self.assertIsNotNone(got)
        self.assertEqual(got.title, "Demo")
        self.assertEqual(got.media_ref, "ref1")
        self.assertEqual(got.expire_hours, 1)
        self.assertEqual(got.media_type, "video")

    def test_get_missing(self):
        self.assertIsNone(self.catalog.get("ghost"))
        self.assertIsNone(self.catalog.get("   "))

    def test_put_overwrites_existing_key(self):
        self.catalog.put(self._item(hours=1))
        self.catalog.put(self._item(key="DEMO", hours=5, title="Demo v2", media_ref="ref2"))

        self.assertEqual(self.catalog.count(), 1)
        got = self.catalog.get("demo")
        self.assertEqual((got.title, got.media_ref, got.expire_hours), ("Demo v2", "ref2", 5))

    def test_put_rejects_bad_input(self):
        for hours in (0, -3, "3", 1.5, True):
            with self.assertRaises(InvalidInput):
                self.catalog.put(self._item(hours=hours))
        with self.assertRaises(InvalidInput):
            self.catalog.put(self._item(key="  "))
        with self.assertRaises(InvalidInput):
            self.catalog.put(self._item(media_ref=""))
        with self.assertRaises(InvalidInput):
            self.catalog.put(self._item(media_type="sticker"))
        self.assertEqual(self.catalog.count(), 0)

    def test_put_rejects_hours_above_cap(self):
        for hours in (MAX_EXPIRE_HOURS + 1, 3 * 10**15):
            with self.assertRaises(InvalidInput):
                self.catalog.put(self._item(hours=hours))
        self.assertEqual(self.catalog.count(), 0)
        self.assertEqual(self.catalog.put(self._item(hours=MAX_EXPIRE_HOURS)).expire_hours, MAX_EXPIRE_HOURS)

    def test_delete(self):
        self.catalog.put(self._item())
        self.assertTrue(self.catalog.delete("Demo"))
        self.assertIsNone(self.catalog.get("demo"))
        self.assertFalse(self.catalog.delete("demo"))

    def test_list_newest_first_with_limit(self):
        for key in ("a", "b", "c"):
            self.catalog.put(self._item(key=key))
        self.clock.advance(10)
        self.catalog.put(self._item(key="d"))

        self.assertEqual([i.key for i in self.catalog.list()], ["d", "c", "b", "a"])
        self.assertEqual([i.key for i in self.catalog.list(limit=2)], ["d", "c"])

        # перезапись поднимает ключ наверх
        self.catalog.put(self._item(key="a"))
        self.assertEqual(self.catalog.list()[0].key, "a")


class TestDeliveryLedger(TempDirMixin, unittest.TestCase):
    def setUp(self):
        super().setUp()
        self.path = os.path.join(self.tmpdir, "ledger.db")
        self.db = Database(self.path)
        self.ledger = DeliveryLedger(self.db)

    def tearDown(self):
        self.db.close()
        super().tearDown()

    def test_record_assigns_increasing_ids(self):
        r1 = self.ledger.record(10, 100, "demo", 1000, 4600)
        r2 = self.ledger.record(11, 101, "demo", 1001, 4601)
        self.assertLess(r1.id, r2.id)
        self.assertEqual(self.ledger.get(r1.id), r1)
        self.assertEqual(self.ledger.list_all(), [r1, r2])
        self.assertEqual(self.ledger.count(), 2)

    def test_remove_is_idempotent(self):
        r = self.ledger.record(10, 100, "demo", 1000, 4600)
        self.ledger.remove(r.id)
        self.ledger.remove(r.id)
        self.ledger.remove(999)
        self.assertEqual(self.ledger.list_all(), [])

    def test_ids_not_reused_after_remove(self):
        r1 = self.ledger.record(10, 100, "demo", 1000, 4600)
        self.ledger.remove(r1.id)
        r2 = self.ledger.record(10, 101, "demo", 1000, 4600)
        self.assertGreater(r2.id, r1.id)

    def test_out_of_range_values_are_storage_failure(self):
        with self.assertRaises(StorageFailure):
            self.ledger.record(1, 10**20, "demo", 1000, 4600)
        with self.assertRaises(StorageFailure):
            self.ledger.record(1, 100, "demo", 1000, 10**20)
        self.assertEqual(self.ledger.count(), 0)

    def test_rows_survive_reopen(self):
        r = self.ledger.record(10, 100, "demo", 1000, 4600)
        self.db.close()

        self.db = Database(self.path)
        self.ledger = DeliveryLedger(self.db)
        self.assertEqual(self.ledger.list_all(), [r])


class TestDatabase(TempDirMixin, unittest.TestCase):
    def test_unopenable_path_is_storage_failure(self):
        blocker = os.path.join(self.tmpdir, "blocker")
        with open(blocker, "w") as f:
            f.write("not a directory")
        with self.assertRaises(StorageFailure):
            Database(os.path.join(blocker, "db.sqlite"))

    def test_closed_database_raises_storage_failure(self):
        db = Database(os.path.join(self.tmpdir, "x.db"))
        ledger = DeliveryLedger(db)
        db.close()
        with self.assertRaises(StorageFailure):
            ledger.list_all()


if __name__ == "__main__":
    unittest.main()
