"""Pydantic schemas package."""

from shelfwise.schemas.achievement import (
    Achievement,
    AchievementCategory,
    AchievementCondition,
    AchievementRarity,
    CountCondition,
    RatingGivenCondition,
    SocialStats,
    Timeframe,
    TimeframeCondition,
    UserAchievement,
    UserProgress,
)
from shelfwise.schemas.book import (
    BookMeta,
    BookStatus,
    BookSummary,
    ReaderProfile,
    UserBookEntry,
)
from shelfwise.schemas.recommendation import CollaborativeRecommendation, UserSimilarity
from shelfwise.schemas.trending import BookPopularityRecord

__all__ = [
    # Book
    "BookStatus",
    "BookMeta",
    "BookSummary",
    "UserBookEntry",
    "ReaderProfile",
    # Recommendation
    "UserSimilarity",
    "CollaborativeRecommendation",
    # Trending
    "BookPopularityRecord",
    # Achievement
    "AchievementCategory",
    "AchievementRarity",
    "Timeframe",
    "CountCondition",
    "RatingGivenCondition",
    "TimeframeCondition",
    "AchievementCondition",
    "Achievement",
    "SocialStats",
    "UserAchievement",
    "UserProgress",
]
