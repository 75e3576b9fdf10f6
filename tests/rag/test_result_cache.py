from concurrent.futures import ThreadPoolExecutor

import pytest

from notemind.core.utils.datetime_utils import ManualClock
from notemind.models.search import KeywordMetadata, SearchResult, SearchStrategy
from notemind.rag.retrieval import ResultCache


def results(*pairs):
    return [
        SearchResult(id=doc_id, relevance=relevance, metadata=KeywordMetadata())
        for doc_id, relevance in pairs
    ]


@pytest.fixture
def clock():
    return ManualClock(start=1_000.0)


@pytest.fixture
def cache(clock):
    return ResultCache(ttl_seconds=90, capacity=3, target=2, clock=clock)


class TestResultCache:
    def test_set_and_get(self, cache):
        cache.set("knots", SearchStrategy.HYBRID, results(("a", 0.9)))
        cached = cache.get("knots", "hybrid")
        assert [r.id for r in cached] == ["a"]

    def test_strategy_is_part_of_key(self, cache):
        cache.set("knots", "hybrid", results(("a", 0.9)))
        assert cache.get("knots", "keyword") is None

    def test_normalized_query_shares_entry(self, cache):
        cache.set("Joe Rogan", "hybrid", results(("b", 0.8)))
        assert cache.get("  joe   ROGAN ", "hybrid") is not None
        assert ResultCache.make_key("  Joe  ROGAN ", SearchStrategy.HYBRID) == "joe rogan::hybrid"

    def test_expires_at_ttl(self, cache, clock):
        cache.set("knots", "hybrid", results(("a", 0.9)))
        clock.advance(89)
        assert cache.get("knots", "hybrid") is not None
        clock.advance(1)
        assert cache.get("knots", "hybrid") is None
        assert len(cache) == 0
        assert cache.get_stats()["expirations"] == 1

    def test_returns_fresh_list(self, cache):
        cache.set("knots", "hybrid", results(("a", 0.9)))
        first = cache.get("knots", "hybrid")
        first.clear()
        assert len(cache.get("knots", "hybrid")) == 1

    def test_eviction_keeps_best_quality(self, cache, clock):
        cache.set("low", "hybrid", results(("a", 0.1)))
        clock.advance(1)
        cache.set("high", "hybrid", results(("b", 0.9)))
        clock.advance(1)
        cache.set("mid", "hybrid", results(("c", 0.5)))
        clock.advance(1)
        cache.set("top", "hybrid", results(("d", 1.0)))

        assert len(cache) == 2
        assert cache.get("top", "hybrid") is not None
        assert cache.get("high", "hybrid") is not None
        assert cache.get("low", "hybrid") is None
        assert cache.get_stats()["evictions"] == 2

    def test_inconsistent_entry_is_dropped(self, cache):
        cache._entries[ResultCache.make_key("knots", "hybrid")] = "garbage"
        assert cache.get("knots", "hybrid") is None
        assert len(cache) == 0

    def test_invalidate_document(self, cache):
        cache.set("knots", "hybrid", results(("a", 0.9), ("b", 0.5)))
        cache.set("pasta", "hybrid", results(("c", 0.7)))

        assert cache.invalidate_document("b") == 1
        assert cache.get("knots", "hybrid") is None
        assert cache.get("pasta", "hybrid") is not None

    def test_clear(self, cache):
        cache.set("knots", "hybrid", results(("a", 0.9)))
        cache.clear()
        assert len(cache) == 0

    def test_stats(self, cache):
        cache.set("knots", "hybrid", results(("a", 0.9)))
        cache.get("knots", "hybrid")
        cache.get("pasta", "hybrid")

        stats = cache.get_stats()
        assert stats["size"] == 1
        assert stats["capacity"] == 3
        assert stats["ttl"] == 90
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5

    def test_target_must_be_below_capacity(self):
        with pytest.raises(ValueError):
            ResultCache(capacity=5, target=5)


class TestResultCacheThreads:
    def test_interleaved_operations(self):
        cache = ResultCache(ttl_seconds=90, capacity=5, target=3, clock=ManualClock(start=1_000.0))
        workers, rounds = 8, 200

        def worker(n):
            hits = misses = invalidated = 0
            for i in range(rounds):
                query = f"q{(n + i) % 9}"
                cache.set(query, "hybrid", results((f"d{i % 4}", 0.2 + (i % 5) / 10)))
                if cache.get(query, "hybrid") is None:
                    misses += 1
                else:
                    hits += 1
                if i % 10 == 0:
                    invalidated += cache.invalidate_document(f"d{n % 4}")
                assert len(cache) <= cache.capacity
            return hits, misses, invalidated

        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(worker, range(workers)))

        stats = cache.get_stats()
        assert stats["size"] <= 5
        assert stats["hits"] == sum(o[0] for o in outcomes)
        assert stats["misses"] == sum(o[1] for o in outcomes)
        assert stats["hits"] + stats["misses"] == workers * rounds
        assert stats["invalidations"] == sum(o[2] for o in outcomes)
        assert stats["evictions"] > 0

        for n in range(9):
            cached = cache.get(f"q{n}", "hybrid")
            assert cached is None or all(isinstance(r, SearchResult) for r in cached)
