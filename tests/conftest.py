"""Pytest configuration and fixtures."""

import fnmatch
from collections.abc import Callable
from datetime import UTC, datetime

import pytest

from shelfwise.config import Settings
from shelfwise.core.exceptions import RecordStoreError, StaleRecordError
from shelfwise.repositories.base import RecordStore
from shelfwise.schemas.achievement import UserAchievement, UserProgress
from shelfwise.schemas.book import BookStatus, ReaderProfile, UserBookEntry
from shelfwise.schemas.trending import BookPopularityRecord

# Fixed "now" for every time-dependent test
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)


class InMemoryRecordStore(RecordStore):
    """Dict-backed record store with the same versioning rules as SQL."""

    def __init__(self):
        self.users: dict[str, ReaderProfile] = {}
        self.collections: dict[str, list[UserBookEntry]] = {}
        self.popularity: dict[str, BookPopularityRecord] = {}
        self.achievements: dict[tuple[str, str], UserAchievement] = {}
        self.progress: dict[str, UserProgress] = {}
        self.failing_users: set[str] = set()

    def add_reader(self, user_id: str, books: list[UserBookEntry], email: str | None = None) -> None:
        self.users[user_id] = ReaderProfile(user_id=user_id, email=email if email is not None else f"{user_id}@example.com")
        self.collections[user_id] = list(books)

    @staticmethod
    def _check(table: dict, key, expected_version: int | None, resource: str) -> None:
        current = table.get(key)
        current_version = current.version if current else None
        if current_version != expected_version:
            raise StaleRecordError(resource, str(key), expected_version)

    @classmethod
    def _put(cls, table: dict, key, record, expected_version: int | None, resource: str):
        cls._check(table, key, expected_version, resource)
        stored = record.model_copy(update={"version": (expected_version or 0) + 1})
        table[key] = stored
        return stored

    async def get_collection(self, user_id, status=None):
        if user_id in self.failing_users:
            raise RecordStoreError(f"collection for {user_id} unavailable")
        books = self.collections.get(user_id, [])
        if status is not None:
            books = [book for book in books if book.status == status]
        return list(books)

    async def list_users(self, offset=0, limit=100):
        ordered = [self.users[user_id] for user_id in sorted(self.users)]
        return ordered[offset:offset + limit]

    async def get_book_popularity(self, book_id):
        return self.popularity.get(book_id)

    async def put_book_popularity(self, record, expected_version):
        return self._put(self.popularity, record.book_id, record, expected_version, "BookPopularity")

    async def list_trending(self, limit):
        ordered = sorted(self.popularity.values(), key=lambda r: (-r.trending_score, r.book_id))
        return ordered[:limit]

    async def list_popular_by_genre(self, genre, limit):
        matching = [r for r in self.popularity.values() if r.genre == genre]
        matching.sort(key=lambda r: (-r.total_users, r.book_id))
        return matching[:limit]

    async def list_stale_popularity(self, updated_before):
        return [
            r for r in self.popularity.values()
            if r.last_updated < updated_before and r.weekly_additions == 0
        ]

    async def get_user_achievement(self, user_id, achievement_id):
        return self.achievements.get((user_id, achievement_id))

    async def put_user_achievement(self, record, expected_version):
        key = (record.user_id, record.achievement_id)
        return self._put(self.achievements, key, record, expected_version, "UserAchievement")

    async def put_completed_achievement(self, record, expected_version, progress, expected_progress_version):
        key = (record.user_id, record.achievement_id)
        # Check both versions before writing either
        self._check(self.achievements, key, expected_version, "UserAchievement")
        self._check(self.progress, progress.user_id, expected_progress_version, "UserProgress")
        stored = self._put(self.achievements, key, record, expected_version, "UserAchievement")
        stored_progress = self._put(
            self.progress, progress.user_id, progress, expected_progress_version, "UserProgress"
        )
        return stored, stored_progress

    async def list_user_achievements(self, user_id):
        records = [r for (uid, _), r in self.achievements.items() if uid == user_id]
        records.sort(key=lambda r: r.achievement_id)
        records.sort(key=lambda r: r.unlocked_at, reverse=True)
        return records

    async def get_user_progress(self, user_id):
        return self.progress.get(user_id)

    async def put_user_progress(self, record, expected_version):
        return self._put(self.progress, record.user_id, record, expected_version, "UserProgress")


class FakeRedis:
    """Just enough of redis.asyncio.Redis for CacheService."""

    def __init__(self, fail: bool = False):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = fail
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl

    async def scan_iter(self, match="*"):
        self._check()
        for key in list(self.data):
            if fnmatch.fnmatch(key, match):
                yield key

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def aclose(self):
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, environment="development", cache_enabled=True)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: NOW


@pytest.fixture
def make_entry() -> Callable[..., UserBookEntry]:
    """Factory for shelf entries; defaults to an unrated completed Fiction book."""

    def _make(
        book_id: str,
        rating: int | None = None,
        status: BookStatus = BookStatus.COMPLETED,
        genre: str = "Fiction",
        **kwargs,
    ) -> UserBookEntry:
        return UserBookEntry(
            book_id=book_id,
            title=kwargs.pop("title", f"Book {book_id}"),
            author=kwargs.pop("author", "Some Author"),
            genre=genre,
            status=status,
            rating=rating,
            **kwargs,
        )

    return _make
