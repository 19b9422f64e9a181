"""Entry point wiring the engine's services over one record store."""

from collections.abc import Callable, Sequence
from datetime import datetime

import structlog

from shelfwise.cache.redis_client import CacheService, create_redis_client
from shelfwise.catalog import DEFAULT_ACHIEVEMENTS
from shelfwise.config import Settings, get_settings
from shelfwise.core.timeutils import utcnow
from shelfwise.db.session import create_engine, create_session_factory
from shelfwise.repositories.base import RecordStore
from shelfwise.repositories.sql_store import SQLRecordStore
from shelfwise.schemas.achievement import (
    Achievement,
    AchievementCategory,
    AchievementRarity,
    SocialStats,
    UserAchievement,
    UserProgress,
)
from shelfwise.schemas.book import BookMeta, BookSummary, UserBookEntry
from shelfwise.schemas.recommendation import CollaborativeRecommendation, UserSimilarity
from shelfwise.schemas.trending import BookPopularityRecord
from shelfwise.services.achievement_service import AchievementService
from shelfwise.services.recommendation_service import RecommendationService
from shelfwise.services.similarity_service import SimilarityService
from shelfwise.services.trending_service import TrendingService

logger = structlog.get_logger(__name__)


class ShelfwiseEngine:
    """Recommendation, trending and achievement operations for one store.

    Every operation is best-effort: failures are logged and surface as an
    empty result, never as an exception.
    """

    def __init__(
        self,
        store: RecordStore,
        cache: CacheService | None = None,
        catalog: Sequence[Achievement] = DEFAULT_ACHIEVEMENTS,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.similarity = SimilarityService(store, self.settings)
        self.recommendations = RecommendationService(store, self.similarity, self.settings)
        self.trending = TrendingService(store, cache, self.settings, clock)
        self.achievements = AchievementService(store, catalog, self.settings, clock)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ShelfwiseEngine":
        """Build an engine over the configured database and Redis."""
        settings = settings or get_settings()
        store = SQLRecordStore(create_session_factory(create_engine(settings)))
        cache = CacheService(create_redis_client(settings)) if settings.cache_enabled else None
        return cls(store, cache=cache, settings=settings)

    # Similarity and recommendations

    async def find_similar_users(self, user_id: str, limit: int = 10) -> list[UserSimilarity]:
        return await self.similarity.find_similar_users(user_id, limit)

    async def get_collaborative_recommendations(
        self,
        user_id: str,
        limit: int = 20,
    ) -> list[CollaborativeRecommendation]:
        return await self.recommendations.get_collaborative_recommendations(user_id, limit)

    async def get_trending_among_similar_users(self, user_id: str, limit: int = 10) -> list[BookSummary]:
        return await self.recommendations.get_trending_among_similar_users(user_id, limit)

    # Trending

    async def update_book_popularity(self, book_id: str, meta: BookMeta, rating: int | None = None) -> None:
        await self.trending.update_book_popularity(book_id, meta, rating)

    async def get_trending_books(self, limit: int = 20) -> list[BookPopularityRecord]:
        return await self.trending.get_trending_books(limit)

    async def get_popular_books_by_genre(self, genre: str, limit: int = 10) -> list[BookPopularityRecord]:
        return await self.trending.get_popular_books_by_genre(genre, limit)

    async def cleanup_stale_trending_data(self) -> int:
        return await self.trending.cleanup_stale_trending_data()

    # Achievements

    async def check_achievements(
        self,
        user_id: str,
        books: Sequence[UserBookEntry],
        social_stats: SocialStats | None = None,
        review_count: int = 0,
    ) -> list[str]:
        return await self.achievements.check_achievements(user_id, books, social_stats, review_count)

    async def get_user_achievements(self, user_id: str) -> list[UserAchievement]:
        return await self.achievements.get_user_achievements(user_id)

    async def get_user_progress(self, user_id: str) -> UserProgress | None:
        return await self.achievements.get_user_progress(user_id)

    def achievements_by_category(self, category: AchievementCategory) -> list[Achievement]:
        return self.achievements.achievements_by_category(category)

    def achievements_by_rarity(self, rarity: AchievementRarity) -> list[Achievement]:
        return self.achievements.achievements_by_rarity(rarity)

    # Shelf events

    async def record_shelf_event(
        self,
        user_id: str,
        entry: UserBookEntry,
        social_stats: SocialStats | None = None,
        review_count: int = 0,
    ) -> list[str]:
        """Handle a book being added to or rated on a reader's shelf.

        Updates the book's popularity, then re-checks the reader's
        achievements against their stored shelf.

        Returns:
            IDs of achievements the event completed
        """
        meta = BookMeta(
            title=entry.title,
            author=entry.author,
            cover_image=entry.cover_image,
            genre=entry.genre,
        )
        await self.trending.update_book_popularity(entry.book_id, meta, entry.rating)

        try:
            books = await self.store.get_collection(user_id)
        except Exception:
            logger.error("Error loading shelf for achievement check", user_id=user_id, exc_info=True)
            return []

        return await self.achievements.check_achievements(user_id, books, social_stats, review_count)
