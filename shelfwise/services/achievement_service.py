"""Achievement evaluation and reader progress service."""

import math
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

import structlog

from shelfwise.catalog import DEFAULT_ACHIEVEMENTS
from shelfwise.config import Settings, get_settings
from shelfwise.core.retry import retry_on_conflict
from shelfwise.core.timeutils import months_before, utcnow
from shelfwise.repositories.base import RecordStore
from shelfwise.schemas.achievement import (
    Achievement,
    AchievementCategory,
    AchievementCondition,
    AchievementRarity,
    RatingGivenCondition,
    SocialStats,
    Timeframe,
    TimeframeCondition,
    UserAchievement,
    UserProgress,
)
from shelfwise.schemas.book import BookStatus, UserBookEntry

logger = structlog.get_logger(__name__)


def calculate_level(total_points: int) -> int:
    """Level = floor(sqrt(total_points / 100)) + 1.

    Level 1: 0-99 points, level 2: 100-399, level 3: 400-899, ...
    """
    # isqrt on the integer quotient is exact where the float sqrt may not be
    return math.isqrt(max(total_points, 0) // 100) + 1


def timeframe_start(timeframe: Timeframe, now: datetime) -> datetime:
    if timeframe == Timeframe.DAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if timeframe == Timeframe.WEEK:
        return now - timedelta(days=7)
    if timeframe == Timeframe.MONTH:
        return months_before(now, 1)
    return months_before(now, 12)


def count_completed_since(books: Sequence[UserBookEntry], start: datetime, now: datetime) -> int:
    """Completed books whose end date (or date added) falls in [start, now]."""
    count = 0
    for book in books:
        if book.status != BookStatus.COMPLETED:
            continue
        completed_on = book.completion_date
        if completed_on is not None and start <= completed_on <= now:
            count += 1
    return count


def current_streak(books: Sequence[UserBookEntry], now: datetime) -> int:
    """Consecutive days, counting back from today, with shelf activity."""
    active_days = set()
    for book in books:
        for moment in (book.date_added, book.end_date):
            if moment is not None:
                active_days.add(moment.date())

    today = now.date()
    streak = 0
    while today - timedelta(days=streak) in active_days:
        streak += 1
    return streak


def add_points(current: UserProgress | None, user_id: str, points: int, now: datetime) -> UserProgress:
    """Progress after one more completed achievement worth ``points``."""
    if current is None:
        return UserProgress(
            user_id=user_id,
            total_points=points,
            level=calculate_level(points),
            completed_achievements=1,
            last_updated=now,
        )

    total_points = current.total_points + points
    return current.model_copy(
        update={
            "total_points": total_points,
            "level": calculate_level(total_points),
            "completed_achievements": current.completed_achievements + 1,
            "last_updated": now,
        }
    )


def measure_progress(
    condition: AchievementCondition,
    books: Sequence[UserBookEntry],
    social_stats: SocialStats,
    review_count: int,
    now: datetime,
) -> int:
    """Current value of whatever ``condition`` counts."""
    if isinstance(condition, RatingGivenCondition):
        return sum(1 for book in books if book.rating == condition.rating)

    if isinstance(condition, TimeframeCondition):
        return count_completed_since(books, timeframe_start(condition.timeframe, now), now)

    if condition.type == "books_read":
        return len(books)
    if condition.type == "books_rated":
        return sum(1 for book in books if book.is_rated)
    if condition.type == "reviews_written":
        return review_count
    if condition.type == "followers":
        return social_stats.followers
    if condition.type == "following":
        return social_stats.following
    if condition.type == "genres_explored":
        return len({book.genre for book in books if book.genre})
    if condition.type == "consecutive_days":
        return current_streak(books, now)

    return 0


class AchievementService:
    """Evaluates the achievement catalog against a reader's activity."""

    def __init__(
        self,
        store: RecordStore,
        catalog: Sequence[Achievement] = DEFAULT_ACHIEVEMENTS,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.catalog = tuple(catalog)
        self.settings = settings or get_settings()
        self.clock = clock

    async def check_achievements(
        self,
        user_id: str,
        books: Sequence[UserBookEntry],
        social_stats: SocialStats | None = None,
        review_count: int = 0,
    ) -> list[str]:
        """Evaluate every catalog entry and persist progress.

        A failure on one achievement is logged and the rest are still
        evaluated.

        Returns:
            IDs of achievements completed by this call
        """
        social_stats = social_stats or SocialStats()
        newly_completed: list[str] = []

        for achievement in self.catalog:
            try:
                if await self._evaluate(user_id, achievement, books, social_stats, review_count):
                    newly_completed.append(achievement.id)
            except Exception:
                logger.warning(
                    "achievement_evaluation_failed",
                    user_id=user_id,
                    achievement_id=achievement.id,
                    exc_info=True,
                )

        logger.info(
            "achievements_checked",
            user_id=user_id,
            evaluated=len(self.catalog),
            newly_completed=newly_completed,
        )
        return newly_completed

    async def get_user_achievements(self, user_id: str) -> list[UserAchievement]:
        """Get a reader's achievement records, most recently unlocked first."""
        try:
            return await self.store.list_user_achievements(user_id)
        except Exception:
            logger.error("Error getting user achievements", user_id=user_id, exc_info=True)
            return []

    async def get_user_progress(self, user_id: str) -> UserProgress | None:
        """Get a reader's points and level, if they have earned anything."""
        try:
            return await self.store.get_user_progress(user_id)
        except Exception:
            logger.error("Error getting user progress", user_id=user_id, exc_info=True)
            return None

    def achievements_by_category(self, category: AchievementCategory) -> list[Achievement]:
        return [a for a in self.catalog if a.category == category]

    def achievements_by_rarity(self, rarity: AchievementRarity) -> list[Achievement]:
        return [a for a in self.catalog if a.rarity == rarity]

    async def _evaluate(
        self,
        user_id: str,
        achievement: Achievement,
        books: Sequence[UserBookEntry],
        social_stats: SocialStats,
        review_count: int,
    ) -> bool:
        """Advance one (reader, achievement) record.

        Completed records are terminal. A completion is stored together with
        the reader's points in one write, so a record is never completed
        without its points. Returns True only for the call whose write moved
        the record to completed.
        """
        target = achievement.condition.target

        async def attempt() -> bool:
            now = self.clock()
            existing = await self.store.get_user_achievement(user_id, achievement.id)
            if existing is not None and existing.is_completed:
                return False

            progress = measure_progress(achievement.condition, books, social_stats, review_count, now)
            completed = progress >= target

            if existing is None:
                record = UserAchievement(
                    user_id=user_id,
                    achievement_id=achievement.id,
                    achievement_name=achievement.name,
                    achievement_icon=achievement.icon,
                    achievement_points=achievement.points,
                    progress=progress,
                    max_progress=target,
                    is_completed=completed,
                    completed_at=now if completed else None,
                    unlocked_at=now,
                )
                expected_version = None
            elif not completed and existing.progress == progress:
                return False
            else:
                record = existing.model_copy(
                    update={
                        "progress": progress,
                        "is_completed": completed,
                        "completed_at": now if completed else None,
                    }
                )
                expected_version = existing.version

            if not completed:
                await self.store.put_user_achievement(record, expected_version=expected_version)
                return False

            current = await self.store.get_user_progress(user_id)
            await self.store.put_completed_achievement(
                record,
                expected_version,
                add_points(current, user_id, achievement.points, now),
                current.version if current else None,
            )
            return True

        awarded = await retry_on_conflict(
            attempt,
            resource="UserAchievement",
            key=f"{user_id}/{achievement.id}",
            attempts=self.settings.optimistic_retries,
        )

        if awarded:
            logger.info(
                "achievement_completed",
                user_id=user_id,
                achievement_id=achievement.id,
                points=achievement.points,
            )
        return awarded
