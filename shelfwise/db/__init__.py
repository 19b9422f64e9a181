"""Database package."""

from shelfwise.db.session import close_engine, create_engine, create_session_factory

__all__ = ["create_engine", "create_session_factory", "close_engine"]
