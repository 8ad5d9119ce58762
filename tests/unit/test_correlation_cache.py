"""Tests for the correlation result cache and drift history."""

from datetime import datetime, timedelta, timezone

from fleetguard.correlation.cache import CorrelationCache, DriftHistory


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


T0 = datetime(2024, 6, 3, tzinfo=timezone.utc)


class TestCorrelationCache:
    """Tests for TTL expiry."""

    def test_hit_before_expiry(self):
        clock = FakeClock()
        cache = CorrelationCache(ttl_seconds=300, clock=clock)
        cache.put(30, "result")

        clock.advance(299)
        assert cache.get(30) == "result"

    def test_expires_at_ttl(self):
        clock = FakeClock()
        cache = CorrelationCache(ttl_seconds=300, clock=clock)
        cache.put(30, "result")

        clock.advance(300)
        assert cache.get(30) is None
        assert len(cache) == 0

    def test_keys_are_independent(self):
        cache = CorrelationCache(clock=FakeClock())
        cache.put(30, "thirty")
        cache.put(60, "sixty")
        assert cache.get(30) == "thirty"
        assert cache.get(60) == "sixty"
        assert cache.get(90) is None

    def test_invalidate_one(self):
        cache = CorrelationCache(clock=FakeClock())
        cache.put(30, "a")
        cache.put(60, "b")
        cache.invalidate(30)
        assert cache.get(30) is None
        assert cache.get(60) == "b"

    def test_invalidate_all(self):
        cache = CorrelationCache(clock=FakeClock())
        cache.put(30, "a")
        cache.put(60, "b")
        cache.invalidate()
        assert len(cache) == 0


class TestDriftHistory:
    """Tests for bounded per-pair history."""

    def test_pair_order_insensitive(self):
        history = DriftHistory()
        history.record("b", "a", 0.6, T0)
        history.record("a", "b", 0.7, T0 + timedelta(days=1))

        samples = history.get("a", "b")
        assert [s.correlation for s in samples] == [0.6, 0.7]
        assert history.get("b", "a") == samples
        assert history.pair_count == 1

    def test_unknown_pair_empty(self):
        assert DriftHistory().get("x", "y") == []

    def test_samples_bounded_per_pair(self):
        history = DriftHistory(max_samples=3)
        for i in range(10):
            history.record("a", "b", i / 10, T0 + timedelta(days=i))

        samples = history.get("a", "b")
        assert len(samples) == 3
        assert [s.correlation for s in samples] == [0.7, 0.8, 0.9]

    def test_pairs_bounded_least_recent_evicted(self):
        history = DriftHistory(max_pairs=2)
        history.record("a", "b", 0.5, T0)
        history.record("a", "c", 0.5, T0)
        # touching a/b makes a/c the least recently updated
        history.record("a", "b", 0.6, T0)
        history.record("b", "c", 0.5, T0)

        assert history.pair_count == 2
        assert history.get("a", "c") == []
        assert len(history.get("a", "b")) == 2

    def test_forget_bot(self):
        history = DriftHistory()
        history.record("a", "b", 0.5, T0)
        history.record("a", "c", 0.5, T0)
        history.record("b", "c", 0.5, T0)

        assert history.forget_bot("a") == 2
        assert history.pair_count == 1
        assert history.get("b", "c")

    def test_sample_to_dict(self):
        history = DriftHistory()
        history.record("a", "b", 0.55, T0)
        assert history.get("a", "b")[0].to_dict() == {
            "correlation": 0.55,
            "timestamp": "2024-06-03T00:00:00+00:00",
        }
