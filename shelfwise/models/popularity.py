"""Book popularity database model."""

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from shelfwise.models.base import Base, VersionMixin


class BookPopularity(Base, VersionMixin):
    """Running popularity counters, one row per book."""

    __tablename__ = "book_popularity"

    book_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    cover_image: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    genre: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)

    weekly_additions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_ratings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trending_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint("weekly_additions >= 0", name="check_weekly_additions_positive"),
        CheckConstraint(
            "trending_score >= 0 AND trending_score <= 100",
            name="check_trending_score_range",
        ),
        Index("idx_book_popularity_trending", "trending_score"),
        Index("idx_book_popularity_genre_users", "genre", "total_users"),
    )

    def __repr__(self) -> str:
        return f"<BookPopularity {self.book_id} score={self.trending_score:.1f}>"
