"""Achievement catalog and progress schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class AchievementCategory(str, Enum):
    """Achievement groupings."""

    READING = "reading"
    SOCIAL = "social"
    QUALITY = "quality"
    MILESTONE = "milestone"
    EXPLORATION = "exploration"


class AchievementRarity(str, Enum):
    """How hard an achievement is to earn."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class Timeframe(str, Enum):
    """Look-back window for timeframe conditions."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class CountCondition(BaseModel):
    """Reach ``target`` on a plain counter."""

    type: Literal[
        "books_read",
        "books_rated",
        "reviews_written",
        "followers",
        "following",
        "genres_explored",
        "consecutive_days",
    ]
    target: int = Field(..., ge=1)

    model_config = ConfigDict(frozen=True)


class RatingGivenCondition(BaseModel):
    """Give exactly ``rating`` to ``target`` books."""

    type: Literal["rating_given"] = "rating_given"
    target: int = Field(..., ge=1)
    rating: int = Field(..., ge=1, le=10)

    model_config = ConfigDict(frozen=True)


class TimeframeCondition(BaseModel):
    """Complete ``target`` books within the trailing ``timeframe``."""

    type: Literal["books_in_timeframe"] = "books_in_timeframe"
    target: int = Field(..., ge=1)
    timeframe: Timeframe

    model_config = ConfigDict(frozen=True)


AchievementCondition = Annotated[
    Union[CountCondition, RatingGivenCondition, TimeframeCondition],
    Field(discriminator="type"),
]


class Achievement(BaseModel):
    """Immutable catalog definition of an achievement."""

    id: str
    name: str
    description: str = ""
    icon: str = ""
    category: AchievementCategory
    condition: AchievementCondition
    points: int = Field(..., ge=0)
    rarity: AchievementRarity

    model_config = ConfigDict(frozen=True)


class SocialStats(BaseModel):
    """Follower counters supplied by the social graph."""

    followers: int = Field(default=0, ge=0)
    following: int = Field(default=0, ge=0)


class UserAchievement(BaseModel):
    """A reader's progress towards one achievement."""

    user_id: str
    achievement_id: str
    achievement_name: str = ""
    achievement_icon: str = ""
    achievement_points: int = 0
    progress: int = Field(default=0, ge=0)
    max_progress: int = Field(..., ge=1)
    is_completed: bool = False
    completed_at: datetime | None = None
    unlocked_at: datetime
    version: int = 0

    model_config = ConfigDict(from_attributes=True)


class UserProgress(BaseModel):
    """Aggregate points and level for a reader."""

    user_id: str
    total_points: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    completed_achievements: int = Field(default=0, ge=0)
    last_updated: datetime
    version: int = 0

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "user_id": "u_123",
                "total_points": 435,
                "level": 3,
                "completed_achievements": 7,
                "last_updated": "2026-01-10T12:00:00Z",
            }
        },
    )
