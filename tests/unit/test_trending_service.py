"""Unit tests for book popularity and trending."""

from datetime import timedelta

import pytest
from conftest import NOW, InMemoryRecordStore

from shelfwise.cache.redis_client import CacheService
from shelfwise.core.exceptions import StaleRecordError
from shelfwise.schemas.book import BookMeta
from shelfwise.schemas.trending import BookPopularityRecord
from shelfwise.services.trending_service import (
    TrendingService,
    apply_popularity_event,
    calculate_trending_score,
)

META = BookMeta(title="Piranesi", author="Susanna Clarke", genre="Fantasy")


def popularity(book_id: str, **overrides) -> BookPopularityRecord:
    fields = {
        "book_id": book_id,
        "title": f"Book {book_id}",
        "genre": "Fantasy",
        "weekly_additions": 1,
        "total_users": 1,
        "last_updated": NOW,
    }
    fields.update(overrides)
    return BookPopularityRecord(**fields)


class TestCalculateTrendingScore:
    """Test the weighted trending formula."""

    def test_first_add_with_rating(self):
        """A first add rated 9 scores 4 + 0.3 + 27."""
        assert calculate_trending_score(1, 1, 9.0) == pytest.approx(31.3)

    def test_terms_are_capped(self):
        """Each term saturates, so the score never exceeds 100."""
        assert calculate_trending_score(50, 500, 10.0) == pytest.approx(100.0)

    def test_empty_record_scores_zero(self):
        """No activity means no score."""
        assert calculate_trending_score(0, 0, 0.0) == 0.0

    def test_weekly_term_saturates_at_ten(self):
        """Adds beyond ten a week earn nothing more."""
        assert calculate_trending_score(10, 0, 0.0) == calculate_trending_score(25, 0, 0.0) == pytest.approx(40.0)


class TestApplyPopularityEvent:
    """Test the per-book state transition."""

    def test_creates_record_on_first_event(self):
        """The first event seeds counters, rating and metadata."""
        record = apply_popularity_event(None, "x", META, 9, NOW)

        assert record.weekly_additions == 1
        assert record.total_users == 1
        assert record.average_rating == 9.0
        assert record.total_ratings == 1
        assert record.trending_score == pytest.approx(31.3)
        assert record.title == "Piranesi"
        assert record.genre == "Fantasy"

    def test_creates_unrated_record(self):
        """An unrated first add leaves the mean empty."""
        record = apply_popularity_event(None, "x", META, None, NOW)

        assert record.average_rating == 0.0
        assert record.total_ratings == 0

    def test_increments_within_window(self):
        """Exactly seven days since the last update is still the same window."""
        current = popularity("x", weekly_additions=4, total_users=9, last_updated=NOW - timedelta(days=7))

        record = apply_popularity_event(current, "x", META, None, NOW)

        assert record.weekly_additions == 5
        assert record.total_users == 10

    def test_resets_weekly_window_when_stale(self):
        """More than seven days without activity starts a new window."""
        current = popularity("x", weekly_additions=8, total_users=30, last_updated=NOW - timedelta(days=7, seconds=1))

        record = apply_popularity_event(current, "x", META, None, NOW)

        assert record.weekly_additions == 1
        assert record.total_users == 31
        assert record.last_updated == NOW

    def test_running_mean(self):
        """Ratings fold into an incremental mean."""
        ratings = [9, 4, 7, 10]
        record = None
        for rating in ratings:
            record = apply_popularity_event(record, "x", META, rating, NOW)

        assert record.average_rating == pytest.approx(sum(ratings) / len(ratings))
        assert record.total_ratings == 4
        assert record.total_users == 4

    def test_zero_rating_leaves_mean_untouched(self):
        """A zero rating counts the reader but not the rating."""
        current = popularity("x", average_rating=8.0, total_ratings=2)

        record = apply_popularity_event(current, "x", META, 0, NOW)

        assert record.average_rating == 8.0
        assert record.total_ratings == 2
        assert record.total_users == 2

    def test_score_recomputed(self):
        """Each event recomputes the score from the new counters."""
        current = popularity("x", weekly_additions=2, total_users=2, average_rating=6.0, total_ratings=1)

        record = apply_popularity_event(current, "x", META, 10, NOW)

        assert record.trending_score == pytest.approx(calculate_trending_score(3, 3, 8.0))


class RacingStore(InMemoryRecordStore):
    """Another writer creates the record just before our first write lands."""

    def __init__(self):
        super().__init__()
        self.raced = False

    async def put_book_popularity(self, record, expected_version):
        if not self.raced:
            self.raced = True
            competitor = apply_popularity_event(None, record.book_id, META, 5, NOW)
            await super().put_book_popularity(competitor, expected_version=None)
        return await super().put_book_popularity(record, expected_version)


class AlwaysStaleStore(InMemoryRecordStore):
    def __init__(self):
        super().__init__()
        self.attempts = 0

    async def put_book_popularity(self, record, expected_version):
        self.attempts += 1
        raise StaleRecordError("BookPopularity", record.book_id, expected_version)


class TestUpdateBookPopularity:
    """Test versioned popularity updates."""

    async def test_first_event_creates_record(self, store, settings, clock):
        """The first update inserts at version 1."""
        service = TrendingService(store, settings=settings, clock=clock)

        await service.update_book_popularity("x", META, rating=9)

        record = store.popularity["x"]
        assert record.weekly_additions == 1
        assert record.total_users == 1
        assert record.average_rating == 9.0
        assert record.trending_score == pytest.approx(31.3)
        assert record.version == 1

    async def test_concurrent_writer_is_not_lost(self, settings, clock):
        """A conflicting write is retried on top of the competitor's record."""
        store = RacingStore()
        service = TrendingService(store, settings=settings, clock=clock)

        await service.update_book_popularity("x", META, rating=9)

        record = store.popularity["x"]
        assert record.total_users == 2
        assert record.total_ratings == 2
        assert record.average_rating == pytest.approx(7.0)
        assert record.version == 2

    async def test_exhausted_retries_are_logged_not_raised(self, settings, clock):
        """Giving up on a contended record is not an error for the caller."""
        store = AlwaysStaleStore()
        service = TrendingService(store, settings=settings, clock=clock)

        await service.update_book_popularity("x", META)

        assert store.attempts == settings.optimistic_retries
        assert store.popularity == {}


class TestTrendingQueries:
    """Test trending and genre listings."""

    async def test_trending_sorted_by_score(self, store, settings, clock):
        """Highest trending score first, cut at the limit."""
        store.popularity["low"] = popularity("low", trending_score=10.0)
        store.popularity["high"] = popularity("high", trending_score=90.0)
        store.popularity["mid"] = popularity("mid", trending_score=50.0)
        service = TrendingService(store, settings=settings, clock=clock)

        result = await service.get_trending_books(limit=2)

        assert [r.book_id for r in result] == ["high", "mid"]

    async def test_genre_ranked_by_reach(self, store, settings, clock):
        """Within a genre, total users wins over trending score."""
        store.popularity["hot"] = popularity("hot", total_users=5, trending_score=95.0)
        store.popularity["wide"] = popularity("wide", total_users=80, trending_score=40.0)
        store.popularity["other"] = popularity("other", genre="Poetry", total_users=500)
        service = TrendingService(store, settings=settings, clock=clock)

        result = await service.get_popular_books_by_genre("Fantasy")

        assert [r.book_id for r in result] == ["wide", "hot"]

    async def test_store_failure_returns_empty(self, settings, clock):
        """Read failures degrade to empty lists."""
        class BrokenStore(InMemoryRecordStore):
            async def list_trending(self, limit):
                raise RuntimeError("database down")

            async def list_popular_by_genre(self, genre, limit):
                raise RuntimeError("database down")

        service = TrendingService(BrokenStore(), settings=settings, clock=clock)

        assert await service.get_trending_books() == []
        assert await service.get_popular_books_by_genre("Fantasy") == []


class TestTrendingCache:
    """Test cache-aside behaviour of the trending list."""

    async def test_result_is_cached(self, store, settings, clock, fake_redis):
        """A second read within the TTL skips the store."""
        store.popularity["a"] = popularity("a", trending_score=60.0)
        service = TrendingService(store, cache=CacheService(fake_redis), settings=settings, clock=clock)

        first = await service.get_trending_books(limit=5)
        assert "trending:top:5" in fake_redis.data
        assert fake_redis.ttls["trending:top:5"] == settings.trending_cache_ttl

        # Served from cache even though the store changed underneath
        store.popularity["b"] = popularity("b", trending_score=99.0)
        second = await service.get_trending_books(limit=5)

        assert [r.book_id for r in second] == [r.book_id for r in first] == ["a"]
        assert second[0].last_updated == NOW

    async def test_update_invalidates_cache(self, store, settings, clock, fake_redis):
        """Any popularity write drops every cached trending list."""
        service = TrendingService(store, cache=CacheService(fake_redis), settings=settings, clock=clock)
        await service.get_trending_books(limit=5)
        await service.get_trending_books(limit=10)

        await service.update_book_popularity("x", META, rating=8)

        assert fake_redis.data == {}
        assert [r.book_id for r in await service.get_trending_books(limit=5)] == ["x"]

    async def test_redis_failure_falls_back_to_store(self, store, settings, clock, fake_redis):
        """A broken cache behaves like a miss."""
        fake_redis.fail = True
        store.popularity["a"] = popularity("a", trending_score=60.0)
        service = TrendingService(store, cache=CacheService(fake_redis), settings=settings, clock=clock)

        result = await service.get_trending_books()

        assert [r.book_id for r in result] == ["a"]

    async def test_cache_disabled_in_settings(self, store, settings, clock, fake_redis):
        """With caching off nothing is written to Redis."""
        disabled = settings.model_copy(update={"cache_enabled": False})
        store.popularity["a"] = popularity("a")
        service = TrendingService(store, cache=CacheService(fake_redis), settings=disabled, clock=clock)

        await service.get_trending_books()

        assert fake_redis.data == {}


class TestCleanupStaleTrendingData:
    """Test the monthly weekly-counter cleanup."""

    async def test_rewrites_only_month_old_idle_records(self, store, settings, clock):
        """Only records idle for a month with no weekly adds are rescored."""
        store.popularity["old"] = popularity(
            "old",
            weekly_additions=0,
            total_users=50,
            average_rating=8.0,
            trending_score=75.0,
            last_updated=NOW - timedelta(days=40),
            version=3,
        )
        store.popularity["recent"] = popularity(
            "recent", weekly_additions=0, trending_score=75.0, last_updated=NOW - timedelta(days=10)
        )
        store.popularity["busy"] = popularity(
            "busy", weekly_additions=3, trending_score=75.0, last_updated=NOW - timedelta(days=40)
        )
        service = TrendingService(store, settings=settings, clock=clock)

        cleaned = await service.cleanup_stale_trending_data()

        assert cleaned == 1
        old = store.popularity["old"]
        assert old.weekly_additions == 0
        assert old.trending_score == pytest.approx(calculate_trending_score(0, 50, 8.0))
        assert old.version == 4
        assert store.popularity["recent"].trending_score == 75.0
        assert store.popularity["busy"].trending_score == 75.0

    async def test_concurrently_touched_record_is_skipped(self, settings, clock):
        """A record that changed under the cleanup is left alone."""
        class TouchedStore(InMemoryRecordStore):
            async def put_book_popularity(self, record, expected_version):
                raise StaleRecordError("BookPopularity", record.book_id, expected_version)

        store = TouchedStore()
        store.popularity["old"] = popularity("old", weekly_additions=0, last_updated=NOW - timedelta(days=40), version=1)
        service = TrendingService(store, settings=settings, clock=clock)

        assert await service.cleanup_stale_trending_data() == 0
