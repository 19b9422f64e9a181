"""SQLAlchemy models package."""

from shelfwise.models.achievement import UserAchievementRecord, UserProgressRecord
from shelfwise.models.base import Base
from shelfwise.models.popularity import BookPopularity
from shelfwise.models.user import User, UserBook

__all__ = [
    "Base",
    "User",
    "UserBook",
    "BookPopularity",
    "UserAchievementRecord",
    "UserProgressRecord",
]
