"""Similarity and recommendation schemas."""

from pydantic import BaseModel, ConfigDict, Field

from shelfwise.schemas.book import BookSummary


class UserSimilarity(BaseModel):
    """How closely a candidate reader's shelf matches the requester's."""

    user_id: str
    email: str = ""
    username: str | None = None
    similarity_score: float = Field(..., ge=0.0, le=1.0)
    common_books: int = Field(..., ge=0)
    average_rating_difference: float = Field(default=0.0, ge=0.0)

    @property
    def identifier(self) -> str:
        """Label used when crediting this reader for a recommendation."""
        return self.email or self.user_id


class CollaborativeRecommendation(BookSummary):
    """Book suggested by readers with similar taste."""

    recommendation_score: float
    recommended_by: list[str] = Field(default_factory=list)
    average_rating: float = Field(default=0.0, ge=0.0, le=10.0)
    reason: str  # Why this book was recommended

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "book_id": "zyTCAlFPjgYC",
                "title": "The Dispossessed",
                "author": "Ursula K. Le Guin",
                "genre": "Science Fiction",
                "cover_image": "https://example.com/cover.jpg",
                "recommendation_score": 0.82,
                "recommended_by": ["ada@example.com", "lin@example.com", "sam@example.com"],
                "average_rating": 8.7,
                "reason": "Recommended by 3 readers with similar taste",
            }
        }
    )
