"""Performance benchmarks for the Note Discovery search engine."""

import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from note_discovery.core.corpus import InMemoryContentSource
from note_discovery.core.engine import SearchEngine
from note_discovery.core.ledger import EntitlementLedger
from note_discovery.models.content import FileKind, RedemptionStatus, SearchFilters

SUBJECTS = [
    ("subj-math", "Mathematics"),
    ("subj-cs", "Computer Science"),
    ("subj-bio", "Biology"),
    ("subj-econ", "Economics"),
    ("subj-hist", "History"),
]
TOPICS = [
    "calculus", "linear algebra", "statistics", "data structures", "operating systems",
    "cell biology", "genetics", "microeconomics", "macroeconomics", "world war",
]
KINDS = ["pdf", "docx", "pptx", "png", "zip"]
UNIVERSITIES = ["University of Lagos", "KTH", "IIT Madras", "University of Porto", "LSE"]


def generate_records(count, premium=False, seed=7):
    rng = random.Random(seed)
    records = []
    for i in range(count):
        subject_id, subject_name = rng.choice(SUBJECTS)
        topic = rng.choice(TOPICS)
        record = {
            "id": f"{'premium' if premium else 'note'}-{i}",
            "title": f"{topic.title()} {'Summary' if premium else 'Notes'} {i}",
            "description": f"Lecture {i} covering {topic} with worked examples and exercises.",
            "tags": [topic, f"week {i % 12}"],
            "subject_id": subject_id,
            "subjects": {"name": subject_name},
            "profiles": {"first_name": "Student", "last_name": str(i),
                         "university": rng.choice(UNIVERSITIES)},
            "file_type": rng.choice(KINDS),
            "average_rating": round(rng.uniform(1, 5), 1),
        }
        if premium:
            record["credit_price"] = rng.randint(5, 40)
            record["page_count"] = rng.randint(5, 80)
        records.append(record)
    return records


class TestPerformanceBenchmarks:
    """Performance benchmark tests."""

    @pytest.fixture
    def large_engine(self):
        """Create a search engine over a few thousand generated items."""
        source = InMemoryContentSource(
            free=generate_records(2000),
            premium=generate_records(500, premium=True),
            subjects=[{"id": s, "name": n} for s, n in SUBJECTS],
        )
        engine = SearchEngine(source=source, fuzzy_threshold=0.3)
        engine.load_corpus()
        return engine

    def test_corpus_size(self, large_engine):
        assert large_engine.get_stats()["corpus_stats"]["total_items"] == 2500

    def test_exact_word_performance(self, large_engine, benchmark):
        """Benchmark a query that appears verbatim in many titles."""
        result = benchmark(lambda: large_engine.search("calculus"))

        assert result.total_results > 0
        assert result.free_results > 0
        assert result.premium_results > 0

    def test_typo_performance(self, large_engine, benchmark):
        """Benchmark a query with a single typo."""
        result = benchmark(lambda: large_engine.search("calclus"))
        assert result.total_results > 0

    def test_multiple_typo_performance(self, large_engine, benchmark):
        """Benchmark a query with several typos."""
        result = benchmark(lambda: large_engine.search("microeconomcs sumary"))
        assert result.total_results > 0

    def test_filtered_performance(self, large_engine, benchmark):
        """Benchmark a fuzzy query narrowed by every facet."""
        filters = SearchFilters(
            subject_id="subj-math", university="lagos", file_kind=FileKind.PDF, min_rating=3
        )

        result = benchmark(lambda: large_engine.search("statistics", filters))

        for ranked in result.results:
            assert ranked.item.file_kind == FileKind.PDF
            assert ranked.item.subject.id == "subj-math"

    def test_empty_query_performance(self, large_engine, benchmark):
        """Benchmark listing the whole corpus."""
        result = benchmark(lambda: large_engine.search("", max_results=50))
        assert result.total_results == 50

    def test_no_match_performance(self, large_engine, benchmark):
        """Benchmark a query with no close item."""
        result = benchmark(lambda: large_engine.search("zzzzqqqq", include_suggestions=False))
        assert result.total_results == 0

    def test_results_sorted(self, large_engine):
        result = large_engine.search("genetcs")

        scores = [r.relevance_score for r in result.results]
        assert scores == sorted(scores)
        assert all(score < 0.3 for score in scores)

    def test_bulk_search_performance(self, large_engine):
        """Test performance of multiple searches in sequence."""
        queries = TOPICS + ["calclus", "statstics", "genetcs", "histroy", "biolgy"]

        start_time = time.time()
        results = [large_engine.search(query) for query in queries]
        total_time = time.time() - start_time

        assert len(results) == 15
        assert total_time < 30.0
        assert sum(1 for r in results if r.total_results > 0) >= 12

    def test_memory_usage(self, large_engine):
        """Test memory usage with a large corpus."""
        import os

        import psutil

        process = psutil.Process(os.getpid())
        memory_before = process.memory_info().rss / 1024 / 1024  # MB

        for topic in TOPICS:
            large_engine.search(topic)

        memory_after = process.memory_info().rss / 1024 / 1024  # MB
        assert memory_after - memory_before < 100

    def test_concurrent_search_simulation(self, large_engine):
        """Concurrent searches share one snapshot without errors."""
        errors = []

        def search_worker(query):
            try:
                return large_engine.search(query)
            except Exception as e:
                errors.append((query, str(e)))
                return None

        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(pool.map(search_worker, TOPICS))

        assert errors == []
        assert all(r is not None and r.total_results > 0 for r in results)
        assert large_engine.get_stats()["corpus_reloads"] == 1

    def test_long_query_performance(self, large_engine):
        """Long queries are handled without blowing up the window scan."""
        long_query = "calculus " + "x" * 150

        start_time = time.time()
        result = large_engine.search(long_query, include_suggestions=False)

        assert time.time() - start_time < 10.0
        assert result.total_results == 0

    def test_statistics_accuracy(self, large_engine):
        large_engine.search("calculus")
        large_engine.search("")
        large_engine.search("zzzzqqqq")

        stats = large_engine.get_stats()
        assert stats["total_queries"] == 3
        assert stats["matched_queries"] == 1
        assert stats["empty_queries"] == 1
        assert stats["no_matches"] == 1
        assert stats["average_execution_time_ms"] > 0


class TestLedgerBenchmarks:
    """Throughput of the entitlement ledger under contention."""

    def test_redeem_throughput(self, benchmark):
        ledger = EntitlementLedger()
        ledger.grant("reader", 10 ** 9)
        counter = iter(range(10 ** 9))

        outcome = benchmark(lambda: ledger.attempt_redeem("reader", f"item-{next(counter)}", 1))

        assert outcome.status == RedemptionStatus.UNLOCKED

    def test_many_users_in_parallel(self):
        ledger = EntitlementLedger()
        users = [f"user-{i}" for i in range(50)]
        for user in users:
            ledger.grant(user, 100)
        barrier = threading.Barrier(10)

        def redeem_all(offset):
            barrier.wait()
            for user in users:
                for item in range(5):
                    ledger.attempt_redeem(user, f"item-{(item + offset) % 5}", 10)

        start_time = time.time()
        with ThreadPoolExecutor(max_workers=10) as pool:
            list(pool.map(redeem_all, range(10)))

        assert time.time() - start_time < 30.0
        assert all(ledger.get_balance(user) == 50 for user in users)
        assert ledger.get_stats()["redemptions"] == 250
