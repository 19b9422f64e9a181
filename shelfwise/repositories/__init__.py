"""Record store port and adapters."""

from shelfwise.repositories.base import RecordStore
from shelfwise.repositories.sql_store import SQLRecordStore

__all__ = ["RecordStore", "SQLRecordStore"]
