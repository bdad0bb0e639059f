"""Fixtures for pgvector store tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tasksearch.vectorstore.config import VectorStoreConfig
from tasksearch.vectorstore.pgvector_store import PgVectorStore


@pytest.fixture
def mock_database():
    """Database double; every statement succeeds and the table does not exist yet."""
    db = MagicMock()
    db.execute = AsyncMock(return_value="OK")
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=False)
    return db


@pytest.fixture
def pg_config():
    return VectorStoreConfig(dimensions=3)


@pytest.fixture
def pg_store(mock_database, pg_config):
    return PgVectorStore(mock_database, config=pg_config)


def executed_sql(mock_database) -> list[str]:
    return [c.args[0] for c in mock_database.execute.await_args_list]


@pytest.fixture
def sql_log(mock_database):
    """Callable returning the SQL strings passed to execute() so far."""
    return lambda: executed_sql(mock_database)
