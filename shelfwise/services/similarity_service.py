"""Reader similarity service.

Scores every candidate reader against the requester on three signals:

1. Book overlap: shared books over the larger of the two shelves (40%)
2. Rating compatibility: agreement on mutually rated books (40%)
3. Genre similarity: Jaccard index of the genre sets (20%)

Candidates sharing fewer than ``min_common_books`` books are dropped
before scoring.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from shelfwise.config import Settings, get_settings
from shelfwise.repositories.base import RecordStore
from shelfwise.schemas.book import ReaderProfile, UserBookEntry
from shelfwise.schemas.recommendation import UserSimilarity

logger = structlog.get_logger(__name__)

BOOK_OVERLAP_WEIGHT = 0.4
RATING_COMPATIBILITY_WEIGHT = 0.4
GENRE_WEIGHT = 0.2

# Used when no common book was rated by both readers
NEUTRAL_RATING_COMPATIBILITY = 0.5


@dataclass(frozen=True)
class SimilarityResult:
    """Raw outcome of comparing two shelves."""

    score: float
    common_books: int
    rating_difference: float


@dataclass(frozen=True)
class Neighbour:
    """A similar reader together with the shelf it was scored on."""

    similarity: UserSimilarity
    books: list[UserBookEntry]


def genre_jaccard(user_books: Sequence[UserBookEntry], other_books: Sequence[UserBookEntry]) -> float:
    user_genres = {book.genre for book in user_books if book.genre}
    other_genres = {book.genre for book in other_books if book.genre}
    union = user_genres | other_genres
    if not union:
        return 0.0
    return len(user_genres & other_genres) / len(union)


def calculate_user_similarity(
    user_books: Sequence[UserBookEntry],
    other_books: Sequence[UserBookEntry],
) -> SimilarityResult:
    """Score ``other_books`` against ``user_books``.

    The requester is always the first argument; the score is not assumed
    to be symmetric.
    """
    user_by_id = {book.book_id: book for book in user_books}
    other_by_id = {book.book_id: book for book in other_books}

    common_ids = [book_id for book_id in user_by_id if book_id in other_by_id]
    if not common_ids:
        return SimilarityResult(score=0.0, common_books=0, rating_difference=0.0)

    # Mean absolute rating difference over mutually rated books
    total_difference = 0
    rated_common = 0
    for book_id in common_ids:
        mine, theirs = user_by_id[book_id], other_by_id[book_id]
        if mine.is_rated and theirs.is_rated:
            total_difference += abs(mine.rating - theirs.rating)
            rated_common += 1
    rating_difference = total_difference / rated_common if rated_common else 0.0

    book_overlap = len(common_ids) / max(len(user_by_id), len(other_by_id))
    if rated_common:
        rating_compatibility = max(0.0, 1 - rating_difference / 10)
    else:
        rating_compatibility = NEUTRAL_RATING_COMPATIBILITY

    score = (
        book_overlap * BOOK_OVERLAP_WEIGHT
        + rating_compatibility * RATING_COMPATIBILITY_WEIGHT
        + genre_jaccard(user_books, other_books) * GENRE_WEIGHT
    )

    return SimilarityResult(
        score=min(score, 1.0),
        common_books=len(common_ids),
        rating_difference=rating_difference,
    )


class SimilarityService:
    """Finds readers whose shelves resemble the requester's."""

    def __init__(self, store: RecordStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    async def find_similar_users(self, user_id: str, limit: int = 10) -> list[UserSimilarity]:
        """Get the most similar readers, best first.

        Returns an empty list when the requester has no books or on any
        data-access failure.
        """
        try:
            user_books = await self.store.get_collection(user_id)
            neighbours = await self.find_neighbours(user_id, user_books, limit)
        except Exception:
            logger.error("Error finding similar users", user_id=user_id, exc_info=True)
            return []

        return [neighbour.similarity for neighbour in neighbours]

    async def find_neighbours(
        self,
        user_id: str,
        user_books: list[UserBookEntry],
        limit: int,
    ) -> list[Neighbour]:
        """Rank candidate readers and keep their shelves for reuse."""
        if not user_books:
            return []

        candidates = await self._candidate_pool(user_id)
        collections = await self._fetch_collections(candidates)
        neighbours = self.rank_candidates(user_books, candidates, collections)

        logger.info(
            "similar_users_found",
            user_id=user_id,
            candidates=len(candidates),
            matches=len(neighbours),
        )

        return neighbours[:limit]

    def rank_candidates(
        self,
        user_books: Sequence[UserBookEntry],
        candidates: Sequence[ReaderProfile],
        collections: Sequence[list[UserBookEntry]],
    ) -> list[Neighbour]:
        """Score candidates, drop those under the overlap floor and sort.

        Ties keep candidate order.
        """
        neighbours = []

        for profile, books in zip(candidates, collections, strict=True):
            if not books:
                continue

            result = calculate_user_similarity(user_books, books)
            if result.common_books < self.settings.min_common_books:
                continue

            neighbours.append(
                Neighbour(
                    similarity=UserSimilarity(
                        user_id=profile.user_id,
                        email=profile.email,
                        username=profile.username,
                        similarity_score=result.score,
                        common_books=result.common_books,
                        average_rating_difference=result.rating_difference,
                    ),
                    books=books,
                )
            )

        neighbours.sort(key=lambda n: n.similarity.similarity_score, reverse=True)
        return neighbours

    async def _candidate_pool(self, user_id: str) -> list[ReaderProfile]:
        """Page through readers up to the configured pool limit."""
        page_size = self.settings.candidate_page_size
        pool_limit = self.settings.candidate_pool_limit

        pool: list[ReaderProfile] = []
        offset = 0
        while len(pool) < pool_limit:
            page = await self.store.list_users(offset=offset, limit=page_size)
            pool.extend(profile for profile in page if profile.user_id != user_id)
            offset += len(page)
            if len(page) < page_size:
                break

        return pool[:pool_limit]

    async def _fetch_collections(self, candidates: Sequence[ReaderProfile]) -> list[list[UserBookEntry]]:
        """Read candidate shelves concurrently.

        A failed read counts as an empty shelf so one bad candidate never
        aborts the ranking.
        """
        semaphore = asyncio.Semaphore(self.settings.candidate_fetch_concurrency)

        async def fetch(profile: ReaderProfile) -> list[UserBookEntry]:
            async with semaphore:
                try:
                    return await self.store.get_collection(profile.user_id)
                except Exception as e:
                    logger.warning(
                        "candidate_read_failed",
                        candidate_id=profile.user_id,
                        error=str(e),
                    )
                    return []

        return list(await asyncio.gather(*(fetch(profile) for profile in candidates)))
