"""Tests for SimilaritySearchEngine."""

from unittest.mock import AsyncMock

import pytest

from tasksearch.embedding.service import EmbeddingService
from tasksearch.errors import InvalidQueryError, ProviderError, StorageUnavailableError
from tasksearch.search.config import SearchConfig
from tasksearch.search.engine import SimilaritySearchEngine
from tasksearch.vectorstore.base import VectorSearchResult


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "\n"])
    async def test_blank_query_rejected(self, search_engine, fake_client, query):
        with pytest.raises(InvalidQueryError):
            await search_engine.search(query)
        assert fake_client.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("threshold", [-1.5, 1.01, float("nan")])
    async def test_threshold_outside_cosine_range(self, search_engine, threshold):
        with pytest.raises(InvalidQueryError):
            await search_engine.search("certificate", min_similarity=threshold)

    @pytest.mark.parametrize(
        "requested,expected",
        [(None, 10), (0, 1), (-5, 1), (5, 5), (100, 100), (10_000, 100)],
    )
    def test_limit_clamped(self, search_engine, requested, expected):
        assert search_engine.clamp_limit(requested) == expected

    @pytest.mark.asyncio
    async def test_defaults_passed_to_store(self, search_engine, memory_store):
        await search_engine.search("certificate")

        assert memory_store.queries == [
            {"limit": 10, "min_similarity": 0.5, "model": "test-embedding-model"}
        ]

    @pytest.mark.asyncio
    async def test_oversized_limit_is_capped(self, search_engine, memory_store):
        await search_engine.search("certificate", limit=5000)
        assert memory_store.queries[0]["limit"] == 100


class TestResults:
    @pytest.mark.asyncio
    async def test_ssl_certificate_scenario(self, manager, search_engine, make_task):
        await manager.on_upsert(
            make_task("ssl", title="Renew SSL certificate", description="expires next week")
        )
        await manager.on_upsert(make_task("groceries", title="Buy groceries for the party"))

        results = await search_engine.search(
            "certificate expiring soon", limit=5, min_similarity=0.5
        )

        ids = [r.source_id for r in results]
        assert "ssl" in ids
        assert "groceries" not in ids

    @pytest.mark.asyncio
    async def test_strictly_above_threshold_and_sorted(self, embedding_service):
        store = AsyncMock()
        # A store that ignores the contract: unsorted, includes the boundary
        store.query_nearest.return_value = [
            VectorSearchResult("a", 0.6),
            VectorSearchResult("b", 0.5),
            VectorSearchResult("c", 0.9),
            VectorSearchResult("d", 0.2),
            VectorSearchResult("e", 0.75),
        ]
        engine = SimilaritySearchEngine(store, embedding_service)

        results = await engine.search("certificate", min_similarity=0.5)

        assert [r.source_id for r in results] == ["c", "e", "a"]
        assert all(r.similarity > 0.5 for r in results)

    @pytest.mark.asyncio
    async def test_ties_keep_store_order(self, embedding_service):
        store = AsyncMock()
        store.query_nearest.return_value = [
            VectorSearchResult("first", 0.8),
            VectorSearchResult("second", 0.8),
        ]
        engine = SimilaritySearchEngine(store, embedding_service)

        results = await engine.search("certificate")

        assert [r.source_id for r in results] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_other_model_vectors_are_not_compared(
        self, search_engine, memory_store
    ):
        await memory_store.upsert("emb_old", "old", [1.0, 0.0, 0.0, 0.0, 0.0], "retired-model")

        results = await search_engine.search("certificate", min_similarity=0.0)

        assert results == []

    @pytest.mark.asyncio
    async def test_no_matches_is_empty_list(self, search_engine):
        assert await search_engine.search("certificate") == []

    @pytest.mark.asyncio
    async def test_custom_config_defaults(self, memory_store, embedding_service):
        engine = SimilaritySearchEngine(
            memory_store,
            embedding_service,
            SearchConfig(default_limit=3, default_min_similarity=0.8),
        )
        await engine.search("certificate")
        assert memory_store.queries[0]["limit"] == 3
        assert memory_store.queries[0]["min_similarity"] == 0.8


class TestFailures:
    @pytest.mark.asyncio
    async def test_provider_error_propagates(
        self, memory_store, embedding_config, make_fake_client
    ):
        service = EmbeddingService(embedding_config, client=make_fake_client(fail_on={"cert"}))
        engine = SimilaritySearchEngine(memory_store, service)

        with pytest.raises(ProviderError):
            await engine.search("certificate")

    @pytest.mark.asyncio
    async def test_uninitialized_store_is_distinguishable(self, embedding_service, make_memory_store):
        engine = SimilaritySearchEngine(make_memory_store(initialized=False), embedding_service)

        with pytest.raises(StorageUnavailableError) as exc_info:
            await engine.search("certificate")
        assert exc_info.value.not_initialized


class TestSearchConfig:
    def test_default_limit_must_not_exceed_max(self):
        with pytest.raises(ValueError):
            SearchConfig(default_limit=50, max_limit=10)
