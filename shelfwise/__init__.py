"""Shelfwise: recommendation, trending and achievement engine for book trackers."""

from shelfwise.engine import ShelfwiseEngine

__version__ = "0.3.0"

__all__ = ["ShelfwiseEngine", "__version__"]
