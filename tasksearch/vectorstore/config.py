"""
Configuration for vector store operations.

Uses Pydantic BaseSettings for environment variable support.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Table and column names are interpolated into SQL, so they are restricted
# to plain unquoted identifiers.
IDENTIFIER_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]{0,62}$"


class VectorStoreConfig(BaseSettings):
    """
    Configuration for the pgvector-backed embedding table.

    All settings can be overridden via environment variables with
    VECTORSTORE_ prefix (e.g., VECTORSTORE_DIMENSIONS=3072).
    """

    model_config = SettingsConfigDict(env_prefix="VECTORSTORE_", extra="ignore")

    # Embedding table
    table_name: str = Field(
        default="task_embedding",
        pattern=IDENTIFIER_PATTERN,
        description="Table holding one embedding per source record",
    )
    source_column: str = Field(
        default="task_id",
        pattern=IDENTIFIER_PATTERN,
        description="Column referencing the source record ID (unique)",
    )
    id_prefix: str = Field(
        default="emb_",
        description="Prefix for embedding IDs derived from source IDs",
    )
    dimensions: int = Field(
        default=1536,
        ge=1,
        le=16000,
        description="Vector column dimensionality (must match the model)",
    )
    default_model: str = Field(
        default="text-embedding-ada-002",
        description="Column default for the model label",
    )

    # Source table (owned by the primary store)
    source_table: str = Field(
        default="task",
        pattern=IDENTIFIER_PATTERN,
        description="Table of source records embeddings are derived from",
    )
    source_id_column: str = Field(
        default="id",
        pattern=IDENTIFIER_PATTERN,
        description="Primary key column of the source table",
    )

    # Approximate index (best effort)
    index_type: Literal["ivfflat", "hnsw", "none"] = Field(
        default="ivfflat",
        description="Similarity index to attempt after table creation",
    )
    ivfflat_lists: int = Field(
        default=100,
        ge=1,
        le=32768,
        description="IVFFlat list count",
    )

    # Timeouts
    statement_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=300.0,
        description="Upper bound for each upsert/delete/query round trip",
    )
    schema_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Upper bound for each schema setup statement",
    )

    @property
    def index_name(self) -> str:
        return f"{self.table_name}_vector_idx"

    @property
    def foreign_key_name(self) -> str:
        return f"{self.table_name}_{self.source_column}_fkey"

    def record_id(self, source_id: str) -> str:
        """Derive the embedding ID for a source record."""
        return f"{self.id_prefix}{source_id}"
