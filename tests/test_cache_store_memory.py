import threading
import unittest

from civic_assistant.cache_store import InMemoryCacheStore


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestInMemoryCacheStore(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = InMemoryCacheStore(clock=self.clock)

    def test_servable_until_ttl_boundary(self):
        self.store.set("weather:39.77:-86.15", {"temperature": 72}, 600)
        self.clock.advance(599)
        self.assertEqual(self.store.get("weather:39.77:-86.15"), {"temperature": 72})
        self.clock.advance(2)
        self.assertIsNone(self.store.get("weather:39.77:-86.15"))

    def test_set_overwrites_and_resets_ttl(self):
        self.store.set("k", "first", 10)
        self.clock.advance(8)
        self.store.set("k", "second", 10)
        self.clock.advance(8)
        self.assertEqual(self.store.get("k"), "second")

    def test_miss_on_unknown_key(self):
        self.assertIsNone(self.store.get("nope"))

    def test_flush_clears_everything(self):
        self.store.set("a", 1, 10)
        self.store.set("b", 2, 10)
        self.store.flush()
        self.assertIsNone(self.store.get("a"))
        self.assertEqual(self.store.stats().keys, 0)

    def test_delete(self):
        self.store.set("a", 1, 10)
        self.store.delete("a")
        self.store.delete("a")
        self.assertIsNone(self.store.get("a"))

    def test_stats_counts_hits_and_misses(self):
        self.store.set("a", 1, 10)
        self.store.get("a")
        self.store.get("a")
        self.store.get("b")
        stats = self.store.stats()
        self.assertEqual((stats.keys, stats.hits, stats.misses), (1, 2, 1))

    def test_stats_and_ttls_skip_expired(self):
        self.store.set("short", 1, 5)
        self.store.set("long", 2, 50)
        self.clock.advance(10)
        self.assertEqual(self.store.stats().keys, 1)
        self.assertEqual(self.store.ttl_remaining(), {"long": 40.0})

    def test_rejects_non_positive_ttl(self):
        with self.assertRaises(ValueError):
            self.store.set("a", 1, 0)

    def test_concurrent_writers_leave_a_whole_value(self):
        store = InMemoryCacheStore()
        values = [{"writer": i, "payload": list(range(50))} for i in range(8)]

        def writer(value):
            for _ in range(200):
                store.set("shared", value, 60)
                got = store.get("shared")
                assert got in values

        threads = [threading.Thread(target=writer, args=(v,)) for v in values]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertIn(store.get("shared"), values)


if __name__ == "__main__":
    unittest.main()
