"""
pgvector implementation of the VectorStore interface.

Stores one row per source record in a dedicated embedding table that
references the source table with ON DELETE CASCADE, and answers nearest
neighbour queries with pgvector's cosine distance operator (<=>).
"""

import asyncio
import logging
from typing import Any

import asyncpg

from tasksearch.errors import StorageUnavailableError
from tasksearch.storage.database import Database
from tasksearch.vectorstore.base import EmbeddingRecord, VectorSearchResult, VectorStore
from tasksearch.vectorstore.config import VectorStoreConfig

logger = logging.getLogger(__name__)

# Errors that mean "the database could not serve this request"
_DATABASE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)

# The table or the vector type is missing: setup has not run
_NOT_INITIALIZED_ERRORS = (
    asyncpg.exceptions.UndefinedTableError,
    asyncpg.exceptions.UndefinedObjectError,
)


def to_pgvector(vector: list[float]) -> str:
    """Convert a list of floats to pgvector's text input format."""
    return f"[{','.join(str(float(x)) for x in vector)}]"


def parse_pgvector(value: Any) -> list[float]:
    """Parse a pgvector value returned as text (or already a list)."""
    if isinstance(value, str):
        body = value.strip("[]")
        return [float(x) for x in body.split(",")] if body else []
    return [float(x) for x in value]


class PgVectorStore(VectorStore):
    """
    pgvector-based vector store implementation.

    Features:
    - Guarded schema setup, performed at most once per process after success
    - Single-statement upsert keyed on the source ID (last write wins)
    - Cosine similarity search restricted to vectors from the query's model
    - Best-effort IVFFlat/HNSW index with fallback to exact search
    """

    def __init__(
        self,
        database: Database,
        config: VectorStoreConfig | None = None,
    ):
        """
        Initialize pgvector store.

        Args:
            database: Connected Database instance
            config: Optional configuration
        """
        self._db = database
        self._config = config or VectorStoreConfig()
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()
        self._index_available: bool | None = None

    @property
    def config(self) -> VectorStoreConfig:
        return self._config

    @property
    def schema_ready(self) -> bool:
        """Whether this process has confirmed the table and its foreign key exist."""
        return self._schema_ready

    # Schema management

    async def ensure_schema(self) -> bool:
        """
        Enable pgvector and create the embedding table if it is missing.

        Cheap after the first full success: the result is remembered for
        the lifetime of this store. The table is usable without the
        cascading foreign key, so a missing key still returns True but is
        retried on the next call. Concurrent callers in this process share
        one setup attempt; callers in other processes are covered by the
        IF NOT EXISTS / duplicate_object guards.

        Returns:
            True if the table is ready, False if setup failed (logged)
        """
        if self._schema_ready:
            return True

        async with self._schema_lock:
            if self._schema_ready:
                return True

            try:
                table_exists = await self.is_initialized()
                if table_exists and await self.foreign_key_exists():
                    self._schema_ready = True
                    return True
            except StorageUnavailableError as e:
                logger.warning(f"Vector store check failed: {e}")
                return False

            cfg = self._config
            timeout = cfg.schema_timeout_seconds

            if not table_exists:
                try:
                    await self._db.execute(
                        "CREATE EXTENSION IF NOT EXISTS vector", timeout=timeout
                    )
                    await self._db.execute(
                        f"""
                        CREATE TABLE IF NOT EXISTS {cfg.table_name} (
                            id TEXT PRIMARY KEY,
                            {cfg.source_column} TEXT UNIQUE NOT NULL,
                            embedding vector({cfg.dimensions}) NOT NULL,
                            model TEXT NOT NULL DEFAULT '{cfg.default_model}',
                            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                        )
                        """,
                        timeout=timeout,
                    )
                except _DATABASE_ERRORS as e:
                    # Vector search is optional; the product keeps working without it
                    logger.warning(f"Vector store init warning: {e}")
                    return False

            has_foreign_key = await self._ensure_foreign_key()
            if not table_exists:
                await self._ensure_index()

            self._schema_ready = has_foreign_key
            logger.info(
                f"Vector store ready (table={cfg.table_name}, "
                f"dimensions={cfg.dimensions}, index={self._index_available}, "
                f"foreign_key={has_foreign_key})"
            )
            return True

    async def _ensure_foreign_key(self) -> bool:
        """
        Add the cascading foreign key to the source table.

        Embeddings whose task no longer exists are removed first, since the
        constraint cannot be added while they remain.

        Returns:
            True if the key is in place
        """
        cfg = self._config
        sql = f"""
            DO $$ BEGIN
                IF NOT EXISTS (
                    SELECT 1 FROM pg_constraint WHERE conname = '{cfg.foreign_key_name}'
                ) THEN
                    DELETE FROM {cfg.table_name} e
                    WHERE NOT EXISTS (
                        SELECT 1 FROM {cfg.source_table} s
                        WHERE s.{cfg.source_id_column} = e.{cfg.source_column}
                    );
                    ALTER TABLE {cfg.table_name}
                    ADD CONSTRAINT {cfg.foreign_key_name}
                    FOREIGN KEY ({cfg.source_column})
                    REFERENCES {cfg.source_table}({cfg.source_id_column})
                    ON DELETE CASCADE;
                END IF;
            EXCEPTION
                WHEN duplicate_object THEN NULL;
            END $$;
        """
        try:
            await self._db.execute(sql, timeout=cfg.schema_timeout_seconds)
        except _DATABASE_ERRORS as e:
            logger.warning(
                f"Could not add foreign key {cfg.foreign_key_name}; "
                f"will retry on next setup: {e}"
            )
            return False
        return True

    async def _ensure_index(self) -> None:
        """Build the approximate similarity index, falling back to exact search."""
        cfg = self._config
        if cfg.index_type == "none":
            self._index_available = False
            return

        if cfg.index_type == "ivfflat":
            using = (
                f"ivfflat (embedding vector_cosine_ops) "
                f"WITH (lists = {cfg.ivfflat_lists})"
            )
        else:
            using = "hnsw (embedding vector_cosine_ops)"

        sql = (
            f"CREATE INDEX IF NOT EXISTS {cfg.index_name} "
            f"ON {cfg.table_name} USING {using}"
        )
        try:
            await self._db.execute(sql, timeout=cfg.schema_timeout_seconds)
            self._index_available = True
        except _DATABASE_ERRORS as e:
            self._index_available = False
            logger.warning(
                f"{cfg.index_type} index not created, using exact search: {e}"
            )

    async def is_initialized(self) -> bool:
        """Check whether the embedding table exists in the current schema."""
        sql = """
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = current_schema()
                  AND table_name = $1
            )
        """
        result = await self._call(self._db.fetchval, sql, self._config.table_name)
        return result is True

    async def foreign_key_exists(self) -> bool:
        """Check whether the cascading foreign key to the source table exists."""
        sql = "SELECT EXISTS (SELECT FROM pg_constraint WHERE conname = $1)"
        result = await self._call(self._db.fetchval, sql, self._config.foreign_key_name)
        return result is True

    # Record operations

    async def upsert(
        self,
        record_id: str,
        source_id: str,
        vector: list[float],
        model: str,
    ) -> None:
        """
        Insert or replace the embedding of a source record.

        Args:
            record_id: Derived embedding ID
            source_id: Source record ID (conflict target)
            vector: Embedding vector (configured dimensionality)
            model: Model that produced the vector
        """
        if len(vector) != self._config.dimensions:
            raise ValueError(
                f"Vector has {len(vector)} dimensions, "
                f"expected {self._config.dimensions}"
            )

        cfg = self._config
        sql = f"""
            INSERT INTO {cfg.table_name}
                (id, {cfg.source_column}, embedding, model, created_at, updated_at)
            VALUES ($1, $2, $3::vector, $4, NOW(), NOW())
            ON CONFLICT ({cfg.source_column}) DO UPDATE SET
                embedding = EXCLUDED.embedding,
                model = EXCLUDED.model,
                updated_at = NOW()
        """
        await self._call(
            self._db.execute, sql, record_id, source_id, to_pgvector(vector), model
        )

    async def delete_by_source_id(self, source_id: str) -> bool:
        """
        Delete the embedding of a source record.

        Returns:
            True if a row was deleted, False if there was none
        """
        sql = f"""
            DELETE FROM {self._config.table_name}
            WHERE {self._config.source_column} = $1
            RETURNING id
        """
        deleted = await self._call(self._db.fetchval, sql, source_id)
        return deleted is not None

    async def query_nearest(
        self,
        query_vector: list[float],
        limit: int,
        min_similarity: float,
        model: str,
    ) -> list[VectorSearchResult]:
        """
        Search for the nearest vectors using cosine similarity.

        Similarity is 1 - cosine distance. Rows from other models are never
        compared against the query.

        Returns:
            Results with similarity > min_similarity, closest first
        """
        cfg = self._config
        sql = f"""
            SELECT
                {cfg.source_column} AS source_id,
                1 - (embedding <=> $1::vector) AS similarity
            FROM {cfg.table_name}
            WHERE model = $4
              AND 1 - (embedding <=> $1::vector) > $2
            ORDER BY embedding <=> $1::vector
            LIMIT $3
        """
        rows = await self._call(
            self._db.fetch,
            sql,
            to_pgvector(query_vector),
            min_similarity,
            limit,
            model,
        )
        return [self._row_to_result(row) for row in rows]

    async def get_by_source_id(self, source_id: str) -> EmbeddingRecord | None:
        cfg = self._config
        sql = f"""
            SELECT id, {cfg.source_column} AS source_id, embedding::text AS embedding,
                   model, created_at, updated_at
            FROM {cfg.table_name}
            WHERE {cfg.source_column} = $1
        """
        row = await self._call(self._db.fetchrow, sql, source_id)
        if row is None:
            return None
        return EmbeddingRecord(
            id=row["id"],
            source_id=row["source_id"],
            vector=parse_pgvector(row["embedding"]),
            model=row["model"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def count(self, model: str | None = None) -> int:
        table = self._config.table_name
        if model is None:
            return await self._call(self._db.fetchval, f"SELECT COUNT(*) FROM {table}")
        return await self._call(
            self._db.fetchval, f"SELECT COUNT(*) FROM {table} WHERE model = $1", model
        )

    async def count_stale(self, model: str) -> int:
        sql = f"SELECT COUNT(*) FROM {self._config.table_name} WHERE model <> $1"
        return await self._call(self._db.fetchval, sql, model)

    # Diagnostics

    async def diagnostics(self) -> dict[str, Any]:
        """
        Inspect the database for everything vector search depends on.

        Each probe runs independently; a failing probe records its error
        message instead of a value.

        Returns:
            Dict with extension_installed, extension_available,
            table_exists, index_exists, foreign_key_exists and
            current_schema
        """
        cfg = self._config
        probes = {
            "extension_installed": (
                "SELECT EXISTS (SELECT FROM pg_extension WHERE extname = 'vector')",
                (),
            ),
            "extension_available": (
                "SELECT EXISTS (SELECT FROM pg_available_extensions WHERE name = 'vector')",
                (),
            ),
            "table_exists": (
                "SELECT EXISTS (SELECT FROM pg_tables "
                "WHERE schemaname = current_schema() AND tablename = $1)",
                (cfg.table_name,),
            ),
            "index_exists": (
                "SELECT EXISTS (SELECT FROM pg_indexes "
                "WHERE schemaname = current_schema() AND indexname = $1)",
                (cfg.index_name,),
            ),
            "foreign_key_exists": (
                "SELECT EXISTS (SELECT FROM pg_constraint WHERE conname = $1)",
                (cfg.foreign_key_name,),
            ),
            "current_schema": ("SELECT current_schema()", ()),
        }

        results: dict[str, Any] = {}
        errors: dict[str, str] = {}
        for name, (sql, args) in probes.items():
            try:
                results[name] = await self._db.fetchval(
                    sql, *args, timeout=cfg.statement_timeout_seconds
                )
            except _DATABASE_ERRORS as e:
                errors[name] = str(e)

        results["schema_ready"] = self._schema_ready
        results["dimensions"] = cfg.dimensions
        if errors:
            results["errors"] = errors
        return results

    # Helpers

    async def _call(self, method, sql: str, *args: Any) -> Any:
        """Run a statement with the configured timeout, mapping database errors."""
        try:
            return await method(
                sql, *args, timeout=self._config.statement_timeout_seconds
            )
        except _NOT_INITIALIZED_ERRORS as e:
            raise StorageUnavailableError(
                f"Vector store not initialized: {e}",
                reason=StorageUnavailableError.NOT_INITIALIZED,
            ) from e
        except _DATABASE_ERRORS as e:
            raise StorageUnavailableError(f"Vector store unavailable: {e}") from e

    def _row_to_result(self, row: Any) -> VectorSearchResult:
        """Convert database row to VectorSearchResult."""
        similarity = float(row["similarity"])
        # Float error can push identical vectors a hair past 1.0
        similarity = max(-1.0, min(1.0, similarity))
        return VectorSearchResult(source_id=row["source_id"], similarity=similarity)
