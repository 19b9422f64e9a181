"""Collaborative-filtering recommendation service."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from shelfwise.config import Settings, get_settings
from shelfwise.repositories.base import RecordStore
from shelfwise.schemas.book import BookStatus, BookSummary, UserBookEntry
from shelfwise.schemas.recommendation import CollaborativeRecommendation, UserSimilarity
from shelfwise.services.similarity_service import Neighbour, SimilarityService

logger = structlog.get_logger(__name__)

# Books a neighbour rated below this are never propagated
MIN_PROPAGATED_RATING = 6
COMPLETED_BOOST = 1.2

# A book needs this many contributors, or one contributor scoring above the bar
MIN_CONTRIBUTORS = 2
SINGLE_CONTRIBUTOR_MIN_SCORE = 0.7

# Books currently being read by at least this many neighbours are trending
MIN_CONCURRENT_READERS = 2


@dataclass
class _Candidate:
    book: UserBookEntry
    recommended_by: list[str] = field(default_factory=list)
    total_score: float = 0.0
    rating_sum: int = 0
    rating_count: int = 0

    @property
    def average_rating(self) -> float:
        return self.rating_sum / self.rating_count if self.rating_count else 0.0

    @property
    def recommendation_score(self) -> float:
        return self.total_score / len(self.recommended_by)


def score_contribution(book: UserBookEntry, similarity: UserSimilarity) -> float:
    """Weight one neighbour's entry by their similarity, rating and status."""
    score = similarity.similarity_score
    if book.is_rated:
        score *= book.rating / 10
    if book.status == BookStatus.COMPLETED:
        score *= COMPLETED_BOOST
    return score


def recommendation_reason(recommended_by_count: int, average_rating: float) -> str:
    if recommended_by_count >= 5:
        return f"Highly recommended by {recommended_by_count} similar readers"
    if recommended_by_count >= 3:
        return f"Recommended by {recommended_by_count} readers with similar taste"
    if average_rating >= 8:
        return f"Loved by readers similar to you ({average_rating:.1f}/10)"
    return "Enjoyed by readers with similar preferences"


def build_recommendations(
    owned_book_ids: set[str],
    neighbours: Iterable[Neighbour],
    limit: int,
) -> list[CollaborativeRecommendation]:
    """Fold neighbours' shelves into ranked recommendations.

    Never returns a book in ``owned_book_ids``.
    """
    candidates: dict[str, _Candidate] = {}

    for neighbour in neighbours:
        for book in neighbour.books:
            if book.book_id in owned_book_ids:
                continue
            if book.is_rated and book.rating < MIN_PROPAGATED_RATING:
                continue

            candidate = candidates.get(book.book_id)
            if candidate is None:
                candidate = candidates[book.book_id] = _Candidate(book=book)

            candidate.recommended_by.append(neighbour.similarity.identifier)
            candidate.total_score += score_contribution(book, neighbour.similarity)
            if book.is_rated:
                candidate.rating_sum += book.rating
                candidate.rating_count += 1

    recommendations = []
    for candidate in candidates.values():
        score = candidate.recommendation_score
        if len(candidate.recommended_by) < MIN_CONTRIBUTORS and score <= SINGLE_CONTRIBUTOR_MIN_SCORE:
            continue

        recommendations.append(
            CollaborativeRecommendation(
                book_id=candidate.book.book_id,
                title=candidate.book.title,
                author=candidate.book.author,
                genre=candidate.book.genre,
                cover_image=candidate.book.cover_image,
                recommendation_score=score,
                recommended_by=candidate.recommended_by,
                average_rating=candidate.average_rating,
                reason=recommendation_reason(len(candidate.recommended_by), candidate.average_rating),
            )
        )

    recommendations.sort(key=lambda r: r.recommendation_score, reverse=True)
    return recommendations[:limit]


def books_read_by_neighbours(neighbours: Sequence[Neighbour], limit: int) -> list[BookSummary]:
    """Books currently on several neighbours' ``reading`` shelves, most read first."""
    readers: dict[str, tuple[UserBookEntry, int]] = {}

    for neighbour in neighbours:
        for book in neighbour.books:
            if book.status != BookStatus.READING:
                continue
            first_seen, count = readers.get(book.book_id, (book, 0))
            readers[book.book_id] = (first_seen, count + 1)

    trending = [(book, count) for book, count in readers.values() if count >= MIN_CONCURRENT_READERS]
    trending.sort(key=lambda item: item[1], reverse=True)

    return [
        BookSummary(
            book_id=book.book_id,
            title=book.title,
            author=book.author,
            genre=book.genre,
            cover_image=book.cover_image,
        )
        for book, _ in trending[:limit]
    ]


class RecommendationService:
    """Turns similar readers into book suggestions."""

    def __init__(
        self,
        store: RecordStore,
        similarity: SimilarityService | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.similarity = similarity or SimilarityService(store, self.settings)

    async def get_collaborative_recommendations(
        self,
        user_id: str,
        limit: int = 20,
    ) -> list[CollaborativeRecommendation]:
        """Get books that similar readers own and the user doesn't.

        Algorithm:
        1. Rank the user's nearest readers
        2. Score each of their books by similarity, rating and completion
        3. Average per book and keep multi-reader or strong single picks
        """
        try:
            user_books = await self.store.get_collection(user_id)
            neighbours = await self.similarity.find_neighbours(
                user_id,
                user_books,
                self.settings.recommendation_neighbourhood,
            )
            if not neighbours:
                return []

            owned = {book.book_id for book in user_books}
            recommendations = build_recommendations(owned, neighbours, limit)
        except Exception:
            logger.error("Error generating collaborative recommendations", user_id=user_id, exc_info=True)
            return []

        logger.info(
            "recommendations_generated",
            user_id=user_id,
            neighbours=len(neighbours),
            count=len(recommendations),
        )
        return recommendations

    async def get_trending_among_similar_users(self, user_id: str, limit: int = 10) -> list[BookSummary]:
        """Get books that several similar readers are reading right now."""
        try:
            user_books = await self.store.get_collection(user_id)
            neighbours = await self.similarity.find_neighbours(
                user_id,
                user_books,
                self.settings.trending_neighbourhood,
            )
            books = books_read_by_neighbours(neighbours, limit)
        except Exception:
            logger.error("Error getting trending among similar users", user_id=user_id, exc_info=True)
            return []

        logger.info("similar_readers_trending", user_id=user_id, count=len(books))
        return books
