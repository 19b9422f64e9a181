"""Book popularity schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BookPopularityRecord(BaseModel):
    """Running popularity counters for one book.

    ``total_users`` counts add/rate events rather than distinct readers; the
    trending score is calibrated against that count.
    """

    book_id: str
    title: str
    author: str = ""
    cover_image: str = ""
    genre: str = ""
    weekly_additions: int = Field(default=0, ge=0)
    total_users: int = Field(default=0, ge=0)
    average_rating: float = Field(default=0.0, ge=0.0, le=10.0)
    total_ratings: int = Field(default=0, ge=0)
    trending_score: float = Field(default=0.0, ge=0.0, le=100.0)
    last_updated: datetime
    version: int = 0

    model_config = ConfigDict(from_attributes=True)
