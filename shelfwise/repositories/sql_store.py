"""SQLAlchemy-backed record store."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel
from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shelfwise.core.exceptions import RecordStoreError, StaleRecordError
from shelfwise.models.achievement import UserAchievementRecord, UserProgressRecord
from shelfwise.models.base import Base
from shelfwise.models.popularity import BookPopularity
from shelfwise.models.user import User, UserBook
from shelfwise.repositories.base import RecordStore
from shelfwise.schemas.achievement import UserAchievement, UserProgress
from shelfwise.schemas.book import BookStatus, ReaderProfile, UserBookEntry
from shelfwise.schemas.trending import BookPopularityRecord

logger = structlog.get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _load(schema: type[SchemaT], row: Base) -> SchemaT:
    data: dict[str, Any] = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        data[column.key] = _as_utc(value) if isinstance(value, datetime) else value
    return schema.model_validate(data)


def _is_duplicate_key(error: IntegrityError) -> bool:
    """True for primary-key and unique violations (asyncpg or sqlite)."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == "23505"
    message = str(orig)
    return "UNIQUE constraint failed" in message or "UniqueViolationError" in message


class SQLRecordStore(RecordStore):
    """Record store over the engine's SQLAlchemy tables.

    Every call runs in its own short transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except SQLAlchemyError as e:
                logger.warning("record_store_error", error=str(e))
                raise RecordStoreError(f"Record store operation failed: {e}") from e

    async def _versioned_put(
        self,
        model: type[Base],
        key: dict[str, str],
        values: dict[str, Any],
        expected_version: int | None,
        resource: str,
    ) -> int:
        """Run one versioned write in its own transaction."""
        async with self._transaction() as session:
            return await self._versioned_write(session, model, key, values, expected_version, resource)

    @staticmethod
    async def _versioned_write(
        session: AsyncSession,
        model: type[Base],
        key: dict[str, str],
        values: dict[str, Any],
        expected_version: int | None,
        resource: str,
    ) -> int:
        """Insert (expected_version None) or compare-and-swap update a row.

        Only a duplicate key counts as a lost race; any other integrity
        violation propagates and is reported as a store error.

        Returns:
            The stored row's new version
        """
        label = "/".join(key.values())

        if expected_version is None:
            session.add(model(**key, **values, version=1))
            try:
                await session.flush()
            except IntegrityError as e:
                if _is_duplicate_key(e):
                    raise StaleRecordError(resource, label, None) from e
                raise
            return 1

        stmt = (
            update(model)
            .where(and_(*(getattr(model, col) == val for col, val in key.items())))
            .where(model.version == expected_version)
            .values(**values, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount == 0:
            raise StaleRecordError(resource, label, expected_version)
        return expected_version + 1

    # ============= Readers and shelves =============

    async def create_schema(self) -> None:
        """Create any missing tables on the bound engine."""
        async with self._transaction() as session:
            conn = await session.connection()
            await conn.run_sync(Base.metadata.create_all)
        logger.info("record_store_schema_created")

    async def save_user(self, profile: ReaderProfile) -> ReaderProfile:
        """Create or update a reader."""
        async with self._transaction() as session:
            user = await session.get(User, profile.user_id)
            if user:
                user.email = profile.email
                user.username = profile.username
            else:
                session.add(User(id=profile.user_id, email=profile.email, username=profile.username))
        return profile

    async def save_user_book(self, user_id: str, entry: UserBookEntry) -> UserBookEntry:
        """Create or update a reader's entry for a book."""
        values = entry.model_dump()
        values["status"] = entry.status.value

        async with self._transaction() as session:
            result = await session.execute(
                select(UserBook).where(
                    and_(UserBook.user_id == user_id, UserBook.book_id == entry.book_id)
                )
            )
            existing = result.scalar_one_or_none()

            if existing:
                for field, value in values.items():
                    setattr(existing, field, value)
            else:
                session.add(UserBook(user_id=user_id, **values))

        return entry

    async def get_collection(
        self,
        user_id: str,
        status: BookStatus | None = None,
    ) -> list[UserBookEntry]:
        query = select(UserBook).where(UserBook.user_id == user_id)
        if status is not None:
            query = query.where(UserBook.status == status.value)
        query = query.order_by(UserBook.id)

        async with self._transaction() as session:
            result = await session.execute(query)
            return [_load(UserBookEntry, row) for row in result.scalars().all()]

    async def list_users(self, offset: int = 0, limit: int = 100) -> list[ReaderProfile]:
        query = select(User).order_by(User.id).offset(offset).limit(limit)

        async with self._transaction() as session:
            result = await session.execute(query)
            return [
                ReaderProfile(user_id=user.id, email=user.email, username=user.username)
                for user in result.scalars().all()
            ]

    # ============= Book popularity =============

    async def get_book_popularity(self, book_id: str) -> BookPopularityRecord | None:
        async with self._transaction() as session:
            row = await session.get(BookPopularity, book_id)
            return _load(BookPopularityRecord, row) if row else None

    async def put_book_popularity(
        self,
        record: BookPopularityRecord,
        expected_version: int | None,
    ) -> BookPopularityRecord:
        version = await self._versioned_put(
            BookPopularity,
            {"book_id": record.book_id},
            record.model_dump(exclude={"book_id", "version"}),
            expected_version,
            "BookPopularity",
        )
        return record.model_copy(update={"version": version})

    async def list_trending(self, limit: int) -> list[BookPopularityRecord]:
        query = (
            select(BookPopularity)
            .order_by(BookPopularity.trending_score.desc(), BookPopularity.book_id)
            .limit(limit)
        )
        async with self._transaction() as session:
            result = await session.execute(query)
            return [_load(BookPopularityRecord, row) for row in result.scalars().all()]

    async def list_popular_by_genre(self, genre: str, limit: int) -> list[BookPopularityRecord]:
        query = (
            select(BookPopularity)
            .where(BookPopularity.genre == genre)
            .order_by(BookPopularity.total_users.desc(), BookPopularity.book_id)
            .limit(limit)
        )
        async with self._transaction() as session:
            result = await session.execute(query)
            return [_load(BookPopularityRecord, row) for row in result.scalars().all()]

    async def list_stale_popularity(self, updated_before: datetime) -> list[BookPopularityRecord]:
        query = select(BookPopularity).where(
            and_(
                BookPopularity.last_updated < updated_before,
                BookPopularity.weekly_additions == 0,
            )
        )
        async with self._transaction() as session:
            result = await session.execute(query)
            return [_load(BookPopularityRecord, row) for row in result.scalars().all()]

    # ============= Achievements =============

    async def get_user_achievement(
        self,
        user_id: str,
        achievement_id: str,
    ) -> UserAchievement | None:
        async with self._transaction() as session:
            row = await session.get(UserAchievementRecord, (user_id, achievement_id))
            return _load(UserAchievement, row) if row else None

    async def put_user_achievement(
        self,
        record: UserAchievement,
        expected_version: int | None,
    ) -> UserAchievement:
        version = await self._versioned_put(
            UserAchievementRecord,
            {"user_id": record.user_id, "achievement_id": record.achievement_id},
            record.model_dump(exclude={"user_id", "achievement_id", "version"}),
            expected_version,
            "UserAchievement",
        )
        return record.model_copy(update={"version": version})

    async def put_completed_achievement(
        self,
        record: UserAchievement,
        expected_version: int | None,
        progress: UserProgress,
        expected_progress_version: int | None,
    ) -> tuple[UserAchievement, UserProgress]:
        async with self._transaction() as session:
            version = await self._versioned_write(
                session,
                UserAchievementRecord,
                {"user_id": record.user_id, "achievement_id": record.achievement_id},
                record.model_dump(exclude={"user_id", "achievement_id", "version"}),
                expected_version,
                "UserAchievement",
            )
            progress_version = await self._versioned_write(
                session,
                UserProgressRecord,
                {"user_id": progress.user_id},
                progress.model_dump(exclude={"user_id", "version"}),
                expected_progress_version,
                "UserProgress",
            )

        return (
            record.model_copy(update={"version": version}),
            progress.model_copy(update={"version": progress_version}),
        )

    async def list_user_achievements(self, user_id: str) -> list[UserAchievement]:
        query = (
            select(UserAchievementRecord)
            .where(UserAchievementRecord.user_id == user_id)
            .order_by(UserAchievementRecord.unlocked_at.desc(), UserAchievementRecord.achievement_id)
        )
        async with self._transaction() as session:
            result = await session.execute(query)
            return [_load(UserAchievement, row) for row in result.scalars().all()]

    async def get_user_progress(self, user_id: str) -> UserProgress | None:
        async with self._transaction() as session:
            row = await session.get(UserProgressRecord, user_id)
            return _load(UserProgress, row) if row else None

    async def put_user_progress(
        self,
        record: UserProgress,
        expected_version: int | None,
    ) -> UserProgress:
        version = await self._versioned_put(
            UserProgressRecord,
            {"user_id": record.user_id},
            record.model_dump(exclude={"user_id", "version"}),
            expected_version,
            "UserProgress",
        )
        return record.model_copy(update={"version": version})
