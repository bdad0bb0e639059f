"""Storage layer - PostgreSQL connection management."""

from tasksearch.storage.database import Database

__all__ = ["Database"]
