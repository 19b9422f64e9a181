"""Reader and shelf database models."""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shelfwise.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """A reader in the candidate pool."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    username: Mapped[str | None] = mapped_column(String(100), nullable=True)

    books: Mapped[list["UserBook"]] = relationship(
        "UserBook",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User {self.id}>"


class UserBook(Base, TimestampMixin):
    """One reader's entry for one book."""

    __tablename__ = "user_books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Catalog snapshot
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    genre: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    cover_image: Mapped[str] = mapped_column(String(1000), nullable=False, default="")

    # Shelf state
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="plan-to-read")
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    date_added: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="books")

    __table_args__ = (
        # One entry per reader per book
        UniqueConstraint("user_id", "book_id", name="uq_user_books_user_book"),
        CheckConstraint("rating IS NULL OR (rating >= 0 AND rating <= 10)", name="check_rating_range"),
        Index("idx_user_books_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<UserBook user={self.user_id} book={self.book_id} {self.status}>"
