"""Achievement progress database models."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shelfwise.models.base import Base, VersionMixin


class UserAchievementRecord(Base, VersionMixin):
    """A reader's progress towards one catalog achievement."""

    __tablename__ = "user_achievements"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    achievement_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Snapshot of the catalog entry at first evaluation
    achievement_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    achievement_icon: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    achievement_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_progress: Mapped[int] = mapped_column(Integer, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_user_achievements_user_unlocked", "user_id", "unlocked_at"),
    )

    def __repr__(self) -> str:
        return f"<UserAchievement user={self.user_id} {self.achievement_id} {self.progress}/{self.max_progress}>"


class UserProgressRecord(Base, VersionMixin):
    """Aggregate points and level for a reader."""

    __tablename__ = "user_progress"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    completed_achievements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<UserProgress user={self.user_id} level={self.level}>"
