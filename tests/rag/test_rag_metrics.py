import pytest

from notemind.rag.retrieval import RAGMetrics, get_rag_metrics


@pytest.fixture
def metrics():
    return RAGMetrics()


class TestRAGMetrics:
    def test_record_search(self, metrics):
        metrics.record_search("knots", 12.0, cache_hit=False, result_count=3)
        metrics.record_search("knots", 2.0, cache_hit=True, result_count=3)
        metrics.record_search("pasta", 8.0, cache_hit=False, result_count=1, search_type="keyword")

        summary = metrics.get_search_summary()
        assert summary["total_searches"] == 3
        assert summary["hybrid_searches"] == 2
        assert summary["keyword_searches"] == 1
        assert summary["total_results_returned"] == 7
        assert summary["cache_hit_rate"] == pytest.approx(1 / 3)
        assert summary["avg_latency_ms"] == pytest.approx(7.0)

    def test_p95_latency(self, metrics):
        for latency in range(1, 21):
            metrics.record_search("q", float(latency), cache_hit=False, result_count=0)
        assert metrics.get_p95_latency() == 20.0
        assert metrics.get_average_latency("search_semantic") == 0.0

    def test_failures(self, metrics):
        metrics.record_failure("hybrid", "all strategies failed")
        assert metrics.get_search_summary()["failures"] == 1
        assert metrics.collector.get("hybrid_failures") == 1

    def test_filter_impact(self, metrics):
        metrics.record_filter_impact("validation", 5, 3)
        metrics.record_filter_impact("validation", 0, 0)
        assert metrics.collector.get("filter_validation_removed") == 2
        assert metrics.get_search_summary()["validation_removed"] == 2

    def test_rerank_impact(self, metrics):
        metrics.record_rerank_impact([0.1, 0.0, 0.05])
        assert metrics.collector.get("rerank_max_change") == pytest.approx(0.1)
        metrics.record_rerank_impact([])

    def test_reset(self, metrics):
        metrics.record_search("q", 1.0, cache_hit=True, result_count=1)
        metrics.reset_counters()
        summary = metrics.get_search_summary()
        assert summary["total_searches"] == 0
        assert summary["hybrid_searches"] == 0


def test_global_instance_is_shared():
    assert get_rag_metrics() is get_rag_metrics()
