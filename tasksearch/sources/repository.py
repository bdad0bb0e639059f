"""
Read-only repository for task records.

The task table belongs to the primary product store. This repository only
selects the columns needed to build searchable text, and pages through the
table with keyset pagination so backfills never hold a long-running cursor.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

import asyncpg

from tasksearch.errors import StorageUnavailableError
from tasksearch.sources.schemas import SEARCHABLE_FIELDS, TaskRecord
from tasksearch.storage.database import Database
from tasksearch.vectorstore.config import VectorStoreConfig

logger = logging.getLogger(__name__)


class TaskRepository:
    """
    Repository for reading task records.

    Table and column names come from VectorStoreConfig so the same
    configuration drives the foreign key on the embedding table.
    """

    def __init__(
        self,
        database: Database,
        config: VectorStoreConfig | None = None,
    ):
        """
        Initialize repository.

        Args:
            database: Connected Database instance
            config: Vector store configuration (source table names)
        """
        self._db = database
        self._config = config or VectorStoreConfig()
        self._table = self._config.source_table
        self._id_column = self._config.source_id_column
        self._timeout = self._config.statement_timeout_seconds

    def _select_columns(self, alias: str = "t") -> str:
        columns = [f"{alias}.{self._id_column} AS id"]
        columns.extend(f"{alias}.{name}" for name in SEARCHABLE_FIELDS)
        return ", ".join(columns)

    async def get_by_id(self, task_id: str) -> TaskRecord | None:
        """
        Fetch a single task by ID.

        Returns:
            TaskRecord or None if the task does not exist
        """
        sql = f"""
            SELECT {self._select_columns()}
            FROM {self._table} t
            WHERE t.{self._id_column} = $1
        """
        row = await self._db.fetchrow(sql, task_id, timeout=self._timeout)
        return self._row_to_record(row) if row else None

    async def count(self) -> int:
        """Count all tasks."""
        return await self._db.fetchval(
            f"SELECT COUNT(*) FROM {self._table}", timeout=self._timeout
        )

    async def iter_all(self, batch_size: int = 500) -> AsyncIterator[TaskRecord]:
        """
        Iterate over every task in ID order.

        Args:
            batch_size: Rows fetched per round trip

        Yields:
            TaskRecord for each task
        """
        sql = f"""
            SELECT {self._select_columns()}
            FROM {self._table} t
            WHERE $1::text IS NULL OR t.{self._id_column} > $1
            ORDER BY t.{self._id_column}
            LIMIT $2
        """
        async for record in self._paginate(sql, batch_size):
            yield record

    async def iter_needing_embedding(
        self,
        model: str,
        batch_size: int = 500,
    ) -> AsyncIterator[TaskRecord]:
        """
        Iterate over tasks whose embedding is missing or from another model.

        Args:
            model: Active embedding model identifier
            batch_size: Rows fetched per round trip

        Yields:
            TaskRecord for each task that needs (re-)embedding

        Raises:
            StorageUnavailableError: not_initialized when the embedding
                table has not been created yet
        """
        sql = f"""
            SELECT {self._select_columns()}
            FROM {self._table} t
            LEFT JOIN {self._config.table_name} e
                ON e.{self._config.source_column} = t.{self._id_column}
            WHERE ($1::text IS NULL OR t.{self._id_column} > $1)
              AND (e.{self._config.source_column} IS NULL OR e.model IS DISTINCT FROM $3)
            ORDER BY t.{self._id_column}
            LIMIT $2
        """
        try:
            async for record in self._paginate(sql, batch_size, model):
                yield record
        except asyncpg.exceptions.UndefinedTableError as e:
            raise StorageUnavailableError(
                f"Vector store not initialized: {e}",
                reason=StorageUnavailableError.NOT_INITIALIZED,
            ) from e

    async def _paginate(
        self, sql: str, batch_size: int, *extra: Any
    ) -> AsyncIterator[TaskRecord]:
        last_id: str | None = None
        while True:
            rows = await self._db.fetch(
                sql, last_id, batch_size, *extra, timeout=self._timeout
            )
            if not rows:
                return

            for row in rows:
                yield self._row_to_record(row)

            last_id = rows[-1]["id"]
            if len(rows) < batch_size:
                return

    def _row_to_record(self, row: Any) -> TaskRecord:
        """Convert database row to TaskRecord."""
        data = dict(row)
        # NULL titles exist in older rows
        if data.get("title") is None:
            data["title"] = ""
        return TaskRecord.model_validate(data)
