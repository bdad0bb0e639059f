"""
Dependency injection for FastAPI endpoints.
"""

import redis.asyncio as redis

from tasksearch.config.settings import get_settings
from tasksearch.embedding.config import EmbeddingConfig
from tasksearch.services.semantic_search import (
    SemanticSearchService,
    build_semantic_search_service,
)
from tasksearch.storage.database import Database

# Process-wide instances (initialized on first request or at startup)
_database: Database | None = None
_redis_client: redis.Redis | None = None
_search_service: SemanticSearchService | None = None


async def get_database() -> Database:
    """Get the shared, connected database."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()

    return _database


async def get_redis_client() -> redis.Redis | None:
    """Get the Redis client for the embedding cache, or None when caching is off."""
    global _redis_client

    if _redis_client is None and EmbeddingConfig().cache_enabled:
        _redis_client = redis.from_url(
            str(get_settings().redis_url),
            encoding="utf-8",
            decode_responses=True,
        )

    return _redis_client


async def get_semantic_search_service() -> SemanticSearchService:
    """
    Get the semantic search service.

    Built once from environment configuration; the embedding provider
    client and Redis cache are wired in here rather than reached globally.
    """
    global _search_service

    if _search_service is None:
        database = await get_database()
        redis_client = await get_redis_client()
        _search_service = build_semantic_search_service(database, redis_client)

    return _search_service


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _redis_client, _search_service

    if _search_service is not None:
        await _search_service.close()
        _search_service = None

    if _database is not None:
        await _database.close()
        _database = None

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
