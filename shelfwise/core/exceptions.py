"""Exception classes raised by the record store and services."""

from typing import Any


class ShelfwiseError(Exception):
    """Base error with a machine-readable code."""

    code = "SHELFWISE_ERROR"

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class RecordStoreError(ShelfwiseError):
    """The record store could not be read or written."""

    code = "RECORD_STORE_ERROR"


class StaleRecordError(RecordStoreError):
    """A versioned write lost a race with another writer."""

    code = "STALE_RECORD"

    def __init__(self, resource: str, key: str, expected_version: int | None):
        if expected_version is None:
            message = f"{resource} '{key}' was created concurrently"
        else:
            message = f"{resource} '{key}' no longer at version {expected_version}"
        super().__init__(
            message,
            details={"resource": resource, "key": key, "expected_version": expected_version},
        )


class ConflictRetriesExhausted(ShelfwiseError):
    """A versioned update kept conflicting."""

    code = "CONFLICT_RETRIES_EXHAUSTED"

    def __init__(self, resource: str, key: str, attempts: int):
        super().__init__(
            f"{resource} '{key}' still conflicting after {attempts} attempts",
            details={"resource": resource, "key": key, "attempts": attempts},
        )
