"""Book popularity and trending service."""

from collections.abc import Callable
from datetime import datetime, timedelta

import structlog
from pydantic import TypeAdapter

from shelfwise.cache.redis_client import CacheService
from shelfwise.config import Settings, get_settings
from shelfwise.core.exceptions import StaleRecordError
from shelfwise.core.retry import retry_on_conflict
from shelfwise.core.timeutils import months_before, utcnow
from shelfwise.repositories.base import RecordStore
from shelfwise.schemas.book import BookMeta
from shelfwise.schemas.trending import BookPopularityRecord

logger = structlog.get_logger(__name__)

# Trending score: 40% weekly activity, 30% reach, 30% rating
WEEKLY_WEIGHT = 0.4
TOTAL_USERS_WEIGHT = 0.3
RATING_WEIGHT = 0.3

WEEKLY_ADDITIONS_CAP = 10
TOTAL_USERS_CAP = 100

WEEKLY_WINDOW = timedelta(days=7)

TRENDING_CACHE_PREFIX = "trending:"

_record_list = TypeAdapter(list[BookPopularityRecord])


def calculate_trending_score(weekly_additions: int, total_users: int, average_rating: float) -> float:
    """Weighted 0-100 score; each term is normalized to [0, 1] first."""
    normalized_weekly = min(weekly_additions / WEEKLY_ADDITIONS_CAP, 1.0)
    normalized_total = min(total_users / TOTAL_USERS_CAP, 1.0)
    normalized_rating = min(average_rating / 10, 1.0)

    score = (
        normalized_weekly * WEEKLY_WEIGHT
        + normalized_total * TOTAL_USERS_WEIGHT
        + normalized_rating * RATING_WEIGHT
    ) * 100
    return max(0.0, min(score, 100.0))


def apply_popularity_event(
    current: BookPopularityRecord | None,
    book_id: str,
    meta: BookMeta,
    rating: int | None,
    now: datetime,
) -> BookPopularityRecord:
    """Fold one add/rate event into a book's popularity record.

    A rating of 0 or None leaves the running average untouched.
    """
    rated = rating is not None and rating > 0

    if current is None:
        average_rating = float(rating) if rated else 0.0
        return BookPopularityRecord(
            book_id=book_id,
            title=meta.title,
            author=meta.author,
            cover_image=meta.cover_image,
            genre=meta.genre,
            weekly_additions=1,
            total_users=1,
            average_rating=average_rating,
            total_ratings=1 if rated else 0,
            trending_score=calculate_trending_score(1, 1, average_rating),
            last_updated=now,
        )

    # Start a fresh weekly window once the record has gone stale
    if now - current.last_updated > WEEKLY_WINDOW:
        weekly_additions = 1
    else:
        weekly_additions = current.weekly_additions + 1

    total_users = current.total_users + 1

    average_rating = current.average_rating
    total_ratings = current.total_ratings
    if rated:
        rating_sum = current.average_rating * current.total_ratings
        total_ratings += 1
        average_rating = (rating_sum + rating) / total_ratings

    return current.model_copy(
        update={
            "weekly_additions": weekly_additions,
            "total_users": total_users,
            "average_rating": average_rating,
            "total_ratings": total_ratings,
            "trending_score": calculate_trending_score(weekly_additions, total_users, average_rating),
            "last_updated": now,
        }
    )


class TrendingService:
    """Maintains per-book popularity and serves trending lists."""

    def __init__(
        self,
        store: RecordStore,
        cache: CacheService | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.cache = cache
        self.settings = settings or get_settings()
        self.clock = clock

    async def update_book_popularity(
        self,
        book_id: str,
        meta: BookMeta,
        rating: int | None = None,
    ) -> None:
        """Record that a book was added to a shelf (and optionally rated).

        The read-modify-write is retried on version conflicts so concurrent
        events on the same book are never lost.
        """

        async def attempt() -> BookPopularityRecord:
            current = await self.store.get_book_popularity(book_id)
            updated = apply_popularity_event(current, book_id, meta, rating, self.clock())
            return await self.store.put_book_popularity(
                updated,
                expected_version=current.version if current else None,
            )

        try:
            record = await retry_on_conflict(
                attempt,
                resource="BookPopularity",
                key=book_id,
                attempts=self.settings.optimistic_retries,
            )
        except Exception:
            logger.error("Error updating book popularity", book_id=book_id, exc_info=True)
            return

        logger.info(
            "book_popularity_updated",
            book_id=book_id,
            weekly_additions=record.weekly_additions,
            total_users=record.total_users,
            trending_score=round(record.trending_score, 2),
        )
        await self._invalidate_cache()

    async def get_trending_books(self, limit: int = 20) -> list[BookPopularityRecord]:
        """Get books with the highest trending score."""
        cache_key = f"{TRENDING_CACHE_PREFIX}top:{limit}"

        if self._cache_enabled:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                try:
                    return _record_list.validate_json(cached)
                except ValueError:
                    logger.warning("cache_decode_error", key=cache_key)

        try:
            records = await self.store.list_trending(limit)
        except Exception:
            logger.error("Error getting trending books", exc_info=True)
            return []

        if self._cache_enabled:
            await self.cache.set(
                cache_key,
                _record_list.dump_json(records).decode(),
                ttl=self.settings.trending_cache_ttl,
            )
        return records

    async def get_popular_books_by_genre(self, genre: str, limit: int = 10) -> list[BookPopularityRecord]:
        """Get the most-added books in a genre.

        Ranked by raw reach (total users) rather than trending score.
        """
        try:
            return await self.store.list_popular_by_genre(genre, limit)
        except Exception:
            logger.error("Error getting popular books by genre", genre=genre, exc_info=True)
            return []

    async def cleanup_stale_trending_data(self) -> int:
        """Zero weekly counters on records untouched for over a month.

        Returns:
            Number of records rewritten
        """
        cutoff = months_before(self.clock(), 1)
        cleaned = 0

        try:
            stale = await self.store.list_stale_popularity(cutoff)
            for record in stale:
                refreshed = record.model_copy(
                    update={
                        "weekly_additions": 0,
                        "trending_score": calculate_trending_score(0, record.total_users, record.average_rating),
                    }
                )
                try:
                    await self.store.put_book_popularity(refreshed, expected_version=record.version)
                except StaleRecordError:
                    # Touched since we listed it, so no longer stale
                    continue
                cleaned += 1
        except Exception:
            logger.error("Error cleaning up old trending data", exc_info=True)

        if cleaned:
            await self._invalidate_cache()
        logger.info("trending_cleanup_finished", cutoff=cutoff.isoformat(), cleaned=cleaned)
        return cleaned

    @property
    def _cache_enabled(self) -> bool:
        return self.cache is not None and self.settings.cache_enabled

    async def _invalidate_cache(self) -> None:
        if self._cache_enabled:
            await self.cache.delete_pattern(f"{TRENDING_CACHE_PREFIX}*")
