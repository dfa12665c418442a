"""Unit tests for the in-memory analysis store."""

import pytest

from leitordocs.infrastructure.cache.analysis_store import AnalysisStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> AnalysisStore:
    return AnalysisStore(ttl_seconds=60, max_entries=3, clock=clock)


class TestStoreAndGet:
    """Test basic lookups."""

    def test_hit(self, store: AnalysisStore):
        store.store("a.jpg", "hash-a", "financial-receipt", {"analysis": "x"}, company="acme")

        assert store.get("a.jpg", "hash-a", "financial-receipt", company="acme") == {"analysis": "x"}

    def test_key_includes_every_component(self, store: AnalysisStore):
        store.store("a.jpg", "hash-a", "financial-receipt", "x", company="acme")

        assert store.get("a.jpg", "hash-b", "financial-receipt", company="acme") is None
        assert store.get("a.jpg", "hash-a", "financial-payment", company="acme") is None
        assert store.get("a.jpg", "hash-a", "financial-receipt", company="outra") is None
        assert store.get("b.jpg", "hash-a", "financial-receipt", company="acme") is None

    def test_expired_entry_is_a_miss(self, store: AnalysisStore, clock: FakeClock):
        store.store("a.jpg", "h", "t", "x")
        clock.advance(61)

        assert store.get("a.jpg", "h", "t") is None
        assert store.get_stats()["size"] == 0

    def test_stats(self, store: AnalysisStore):
        store.store("a.jpg", "h", "t", "x")
        store.get("a.jpg", "h", "t")
        store.get("b.jpg", "h", "t")

        stats = store.get_stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5


class TestEviction:
    """Test the size bound."""

    def test_oldest_entry_evicted(self, store: AnalysisStore):
        for name in ["a", "b", "c", "d"]:
            store.store(name, "h", "t", name)

        assert store.get("a", "h", "t") is None
        assert store.get("d", "h", "t") == "d"
        assert store.get_stats()["size"] == 3

    def test_restore_refreshes_position(self, store: AnalysisStore):
        for name in ["a", "b", "c"]:
            store.store(name, "h", "t", name)
        store.store("a", "h", "t", "a2")
        store.store("d", "h", "t", "d")

        assert store.get("a", "h", "t") == "a2"
        assert store.get("b", "h", "t") is None


class TestBatches:
    """Test batch grouping."""

    def test_get_and_clear_batch(self, store: AnalysisStore):
        store.store("a.jpg", "h1", "t", "x", batch_id="batch_1")
        store.store("b.jpg", "h2", "t", "y", batch_id="batch_1")

        assert store.get_batch_analyses("batch_1") == {"a.jpg|h1|t": "x", "b.jpg|h2|t": "y"}
        assert store.clear_batch("batch_1") == 2
        assert store.get("a.jpg", "h1", "t") is None
        assert store.get_batch_analyses("batch_1") is None

    def test_clear_unknown_batch(self, store: AnalysisStore):
        assert store.clear_batch("missing") == 0

    def test_metadata(self, store: AnalysisStore):
        store.store_batch_metadata("batch_1", {"total": 3})

        assert store.update_batch_metadata("batch_1", {"done": 1})
        assert store.get_batch_metadata("batch_1") == {"total": 3, "done": 1}
        assert not store.update_batch_metadata("missing", {"done": 1})

    def test_maintenance_drops_expired_batches(self, store: AnalysisStore, clock: FakeClock):
        store.store("a.jpg", "h", "t", "x", batch_id="batch_1")
        clock.advance(120)

        store.run_maintenance()

        stats = store.get_stats()
        assert stats["size"] == 0
        assert stats["batch_count"] == 0

    def test_clear_all(self, store: AnalysisStore):
        store.store("a.jpg", "h", "t", "x", batch_id="batch_1")

        assert store.clear_all() == 1
        assert store.get_batch_analyses("batch_1") is None
