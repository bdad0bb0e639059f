"""Tests for task records and the read-only task repository."""

from unittest.mock import AsyncMock

import asyncpg
import pytest

from tasksearch.errors import StorageUnavailableError
from tasksearch.sources.repository import TaskRepository
from tasksearch.sources.schemas import TaskRecord
from tasksearch.vectorstore.config import VectorStoreConfig


def _row(task_id, title="t", **fields):
    row = {
        "id": task_id,
        "title": title,
        "description": None,
        "notes": None,
        "outcome": None,
        "blocker": None,
        "need": None,
    }
    row.update(fields)
    return row


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.fetch.return_value = []
    return db


@pytest.fixture
def repo(mock_db):
    return TaskRepository(mock_db, VectorStoreConfig())


class TestTaskRecord:
    def test_extra_columns_ignored(self):
        record = TaskRecord(id="t1", title="Renew", status="open", assignee="ops")
        assert not hasattr(record, "status")

    def test_search_text_skips_whitespace_fields(self):
        record = TaskRecord(id="t1", title=" Renew ", notes="\t", need="access")
        assert record.search_text() == "Renew access"

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            TaskRecord(id="")


class TestTaskRepository:
    @pytest.mark.asyncio
    async def test_get_by_id(self, repo, mock_db):
        mock_db.fetchrow.return_value = _row("t1", title="Renew SSL certificate")

        record = await repo.get_by_id("t1")

        assert record.title == "Renew SSL certificate"
        sql, task_id = mock_db.fetchrow.await_args.args
        assert "FROM task t" in sql
        assert task_id == "t1"

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, repo, mock_db):
        mock_db.fetchrow.return_value = None
        assert await repo.get_by_id("nope") is None

    @pytest.mark.asyncio
    async def test_null_title_becomes_empty(self, repo, mock_db):
        mock_db.fetchrow.return_value = _row("t1", title=None, notes="only notes")
        record = await repo.get_by_id("t1")
        assert record.title == ""
        assert record.search_text() == "only notes"

    @pytest.mark.asyncio
    async def test_iter_all_pages_by_last_id(self, repo, mock_db):
        mock_db.fetch.side_effect = [
            [_row("a"), _row("b")],
            [_row("c")],
        ]

        ids = [record.id async for record in repo.iter_all(batch_size=2)]

        assert ids == ["a", "b", "c"]
        first, second = mock_db.fetch.await_args_list
        assert first.args[1:] == (None, 2)
        assert second.args[1:] == ("b", 2)

    @pytest.mark.asyncio
    async def test_iter_all_stops_on_empty_page(self, repo, mock_db):
        mock_db.fetch.side_effect = [[_row("a"), _row("b")], []]

        ids = [record.id async for record in repo.iter_all(batch_size=2)]

        assert ids == ["a", "b"]
        assert mock_db.fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_iter_needing_embedding_filters_by_model(self, repo, mock_db):
        mock_db.fetch.side_effect = [[_row("a")]]

        ids = [r.id async for r in repo.iter_needing_embedding("model-b", batch_size=10)]

        assert ids == ["a"]
        sql, last_id, batch_size, model = mock_db.fetch.await_args.args
        assert "LEFT JOIN task_embedding e" in sql
        assert "e.model IS DISTINCT FROM $3" in sql
        assert (last_id, batch_size, model) == (None, 10, "model-b")

    @pytest.mark.asyncio
    async def test_count(self, repo, mock_db):
        mock_db.fetchval.return_value = 12
        assert await repo.count() == 12

    @pytest.mark.asyncio
    async def test_reads_carry_statement_timeout(self, repo, mock_db):
        mock_db.fetch.side_effect = [[_row("a")]]

        [r async for r in repo.iter_all(batch_size=10)]

        assert mock_db.fetch.await_args.kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_missing_embedding_table_is_not_initialized(self, repo, mock_db):
        mock_db.fetch.side_effect = asyncpg.exceptions.UndefinedTableError(
            'relation "task_embedding" does not exist'
        )

        with pytest.raises(StorageUnavailableError) as exc_info:
            [r async for r in repo.iter_needing_embedding("model-a")]

        assert exc_info.value.not_initialized
