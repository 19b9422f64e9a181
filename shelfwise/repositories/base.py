"""Record store abstraction consumed by the engine."""

from abc import ABC, abstractmethod
from datetime import datetime

from shelfwise.schemas.achievement import UserAchievement, UserProgress
from shelfwise.schemas.book import BookStatus, ReaderProfile, UserBookEntry
from shelfwise.schemas.trending import BookPopularityRecord


class RecordStore(ABC):
    """Abstract base class for the document store behind the engine.

    Implementations raise ``RecordStoreError`` (or a subclass) on any
    data-access failure; the services decide how to degrade.

    Writes of persisted engine records are versioned: ``expected_version``
    is the version the caller read, or ``None`` when the caller saw no
    record. A mismatch raises ``StaleRecordError``. The returned record
    carries the new version.
    """

    # Collections

    @abstractmethod
    async def get_collection(
        self,
        user_id: str,
        status: BookStatus | None = None,
    ) -> list[UserBookEntry]:
        """Get a reader's book entries.

        Args:
            user_id: Reader ID
            status: Only return entries with this shelf status

        Returns:
            Entries in insertion order (empty if the reader has none)
        """
        pass

    @abstractmethod
    async def list_users(self, offset: int = 0, limit: int = 100) -> list[ReaderProfile]:
        """List readers in a stable order, one page at a time.

        Args:
            offset: Number of readers to skip
            limit: Page size

        Returns:
            Up to ``limit`` profiles; an empty list past the end
        """
        pass

    # Book popularity

    @abstractmethod
    async def get_book_popularity(self, book_id: str) -> BookPopularityRecord | None:
        """Get the popularity record for a book, if one exists."""
        pass

    @abstractmethod
    async def put_book_popularity(
        self,
        record: BookPopularityRecord,
        expected_version: int | None,
    ) -> BookPopularityRecord:
        """Insert or replace a popularity record (keyed by ``record.book_id``)."""
        pass

    @abstractmethod
    async def list_trending(self, limit: int) -> list[BookPopularityRecord]:
        """Get popularity records ordered by trending score, highest first."""
        pass

    @abstractmethod
    async def list_popular_by_genre(self, genre: str, limit: int) -> list[BookPopularityRecord]:
        """Get popularity records in a genre ordered by total users, highest first."""
        pass

    @abstractmethod
    async def list_stale_popularity(self, updated_before: datetime) -> list[BookPopularityRecord]:
        """Get records last updated before a cutoff that have no weekly additions."""
        pass

    # Achievements

    @abstractmethod
    async def get_user_achievement(
        self,
        user_id: str,
        achievement_id: str,
    ) -> UserAchievement | None:
        """Get a reader's progress record for one achievement."""
        pass

    @abstractmethod
    async def put_user_achievement(
        self,
        record: UserAchievement,
        expected_version: int | None,
    ) -> UserAchievement:
        """Insert or replace a progress record (keyed by user and achievement)."""
        pass

    @abstractmethod
    async def put_completed_achievement(
        self,
        record: UserAchievement,
        expected_version: int | None,
        progress: UserProgress,
        expected_progress_version: int | None,
    ) -> tuple[UserAchievement, UserProgress]:
        """Store a completed achievement and the reader's bumped progress together.

        Both versioned writes succeed or neither is applied; a mismatch on
        either raises ``StaleRecordError``.
        """
        pass

    @abstractmethod
    async def list_user_achievements(self, user_id: str) -> list[UserAchievement]:
        """Get all of a reader's achievement records, most recently unlocked first."""
        pass

    @abstractmethod
    async def get_user_progress(self, user_id: str) -> UserProgress | None:
        """Get a reader's aggregate points and level."""
        pass

    @abstractmethod
    async def put_user_progress(
        self,
        record: UserProgress,
        expected_version: int | None,
    ) -> UserProgress:
        """Insert or replace a reader's aggregate progress."""
        pass
