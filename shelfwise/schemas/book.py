"""Book and reader schemas."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BookStatus(str, Enum):
    """Where a book sits on a reader's shelf."""

    PLAN_TO_READ = "plan-to-read"
    READING = "reading"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    DROPPED = "dropped"


class BookMeta(BaseModel):
    """Catalog attributes attached to a popularity event."""

    title: str
    author: str = ""
    cover_image: str = ""
    genre: str = ""


class BookSummary(BaseModel):
    """Catalog attributes of a book, independent of any reader."""

    book_id: str
    title: str
    author: str = ""
    genre: str = ""
    cover_image: str = ""

    model_config = ConfigDict(from_attributes=True)


class UserBookEntry(BookSummary):
    """One reader's relationship to one book."""

    status: BookStatus = BookStatus.PLAN_TO_READ
    rating: int | None = Field(default=None, ge=0, le=10, description="Rating on a 0-10 scale")
    date_added: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "book_id": "zyTCAlFPjgYC",
                "title": "The Left Hand of Darkness",
                "author": "Ursula K. Le Guin",
                "genre": "Science Fiction",
                "status": "completed",
                "rating": 9,
                "date_added": "2026-01-10T12:00:00Z",
            }
        },
    )

    @field_validator("date_added", "start_date", "end_date")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        """Naive timestamps are taken to be UTC."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def is_rated(self) -> bool:
        """A zero rating means the reader has not rated the book."""
        return bool(self.rating)

    @property
    def completion_date(self) -> datetime | None:
        return self.end_date or self.date_added


class ReaderProfile(BaseModel):
    """Public identity of a reader in the candidate pool."""

    user_id: str
    email: str = ""
    username: str | None = None

    model_config = ConfigDict(from_attributes=True)
