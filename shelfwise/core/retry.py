"""Retry loop for versioned read-modify-write operations."""

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from shelfwise.core.exceptions import ConflictRetriesExhausted, StaleRecordError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    *,
    resource: str,
    key: str,
    attempts: int,
) -> T:
    """Run ``operation`` until it completes without a stale write.

    ``operation`` must re-read whatever it writes on every call.

    Raises:
        ConflictRetriesExhausted: every attempt hit StaleRecordError
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except StaleRecordError as e:
            logger.warning(
                "versioned_write_conflict",
                resource=resource,
                key=key,
                attempt=attempt,
                error=e.message,
            )

    raise ConflictRetriesExhausted(resource, key, attempts)
