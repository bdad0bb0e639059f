"""Tests for EmbeddingService."""

import json
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from tasksearch.embedding.config import EmbeddingConfig
from tasksearch.embedding.service import EmbeddingService, cosine_similarity
from tasksearch.errors import EmptyInputError, ProviderError


class TestPrepareText:
    """Input normalization before the provider call."""

    def test_strips_whitespace(self, embedding_service):
        assert embedding_service.prepare_text("  renew cert \n") == "renew cert"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_empty_raises(self, embedding_service, text):
        with pytest.raises(EmptyInputError):
            embedding_service.prepare_text(text)

    def test_head_truncation(self, fake_client):
        service = EmbeddingService(
            config=EmbeddingConfig(dimensions=5, max_input_chars=10),
            client=fake_client,
        )
        assert service.prepare_text("abcdefghijKLMNOP") == "abcdefghij"

    def test_default_cap_is_8000_chars(self, embedding_service):
        text = "x" * 9000
        assert len(embedding_service.prepare_text(text)) == 8000

    def test_empty_input_error_is_value_error(self):
        assert issubclass(EmptyInputError, ValueError)


class TestEmbed:
    """Provider round-trip behaviour."""

    @pytest.mark.asyncio
    async def test_returns_vector_of_configured_length(self, embedding_service):
        vector = await embedding_service.embed("Renew SSL certificate")
        assert len(vector) == 5
        assert all(isinstance(x, float) for x in vector)

    @pytest.mark.asyncio
    async def test_sends_model_and_prepared_text(self, embedding_service, fake_client):
        await embedding_service.embed("  hello world  ")
        assert fake_client.calls == [("test-embedding-model", "hello world")]

    @pytest.mark.asyncio
    async def test_truncated_text_is_sent(self, fake_client):
        service = EmbeddingService(
            config=EmbeddingConfig(dimensions=5, max_input_chars=5),
            client=fake_client,
        )
        await service.embed("abcdefgh")
        assert fake_client.calls[0][1] == "abcde"

    @pytest.mark.asyncio
    async def test_empty_text_never_calls_provider(self, embedding_service, fake_client):
        with pytest.raises(EmptyInputError):
            await embedding_service.embed("   ")
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_same_text_twice_has_cosine_one(self, embedding_service):
        a = await embedding_service.embed("Renew SSL certificate expires next week")
        b = await embedding_service.embed("Renew SSL certificate expires next week")
        assert cosine_similarity(a, b) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self, embedding_config, make_fake_client):
        client = make_fake_client(fail_on={"boom"})
        service = EmbeddingService(config=embedding_config, client=client)

        with pytest.raises(ProviderError) as exc_info:
            await service.embed("this will boom")
        assert exc_info.value.__cause__ is not None
        assert service.get_stats()["provider_errors"] == 1

    @pytest.mark.asyncio
    async def test_timeout_becomes_provider_error(self, make_fake_client):
        client = make_fake_client(delay=0.5)
        service = EmbeddingService(
            config=EmbeddingConfig(dimensions=5, request_timeout_seconds=0.05),
            client=client,
        )
        with pytest.raises(ProviderError, match="timed out"):
            await service.embed("slow text")

    @pytest.mark.asyncio
    async def test_wrong_dimensions_is_provider_error(self, make_fake_client):
        client = make_fake_client(vector_fn=lambda text: [0.1, 0.2, 0.3])
        service = EmbeddingService(config=EmbeddingConfig(dimensions=5), client=client)
        with pytest.raises(ProviderError, match="3 dimensions"):
            await service.embed("anything")

    @pytest.mark.asyncio
    async def test_close_releases_client(self, embedding_service, fake_client):
        await embedding_service.close()
        assert fake_client.closed is True


class TestEmbeddingCache:
    """Redis cache keyed on model and content hash."""

    @pytest.fixture
    def cache_config(self):
        return EmbeddingConfig(
            model_name="test-embedding-model", dimensions=5, cache_enabled=True
        )

    @pytest.mark.asyncio
    async def test_cache_hit_skips_provider(self, cache_config, fake_client):
        redis_client = AsyncMock()
        redis_client.get.return_value = json.dumps([1.0, 0.0, 0.0, 0.0, 0.0])
        service = EmbeddingService(config=cache_config, client=fake_client, redis_client=redis_client)

        vector = await service.embed("cached text")

        assert vector == [1.0, 0.0, 0.0, 0.0, 0.0]
        assert fake_client.calls == []
        assert service.get_stats()["cache_hits"] == 1

    @pytest.mark.asyncio
    async def test_cache_miss_stores_result(self, cache_config, fake_client):
        redis_client = AsyncMock()
        redis_client.get.return_value = None
        service = EmbeddingService(config=cache_config, client=fake_client, redis_client=redis_client)

        await service.embed("renew certificate")

        redis_client.setex.assert_awaited_once()
        key, ttl, payload = redis_client.setex.await_args.args
        assert key.startswith("emb:test-embedding-model:")
        assert ttl == cache_config.cache_ttl_seconds
        assert len(json.loads(payload)) == 5

    @pytest.mark.asyncio
    async def test_cache_errors_fall_through_to_provider(self, cache_config, fake_client):
        redis_client = AsyncMock()
        redis_client.get.side_effect = redis.ConnectionError("down")
        redis_client.setex.side_effect = redis.ConnectionError("down")
        service = EmbeddingService(config=cache_config, client=fake_client, redis_client=redis_client)

        vector = await service.embed("renew certificate")

        assert len(vector) == 5
        assert len(fake_client.calls) == 1

    def test_cache_key_differs_per_model(self, fake_client):
        a = EmbeddingService(config=EmbeddingConfig(model_name="model-a"), client=fake_client)
        b = EmbeddingService(config=EmbeddingConfig(model_name="model-b"), client=fake_client)
        assert a._make_cache_key("same text") != b._make_cache_key("same text")


class TestCosineSimilarity:
    def test_identical_direction(self):
        assert cosine_similarity([1.0, 2.0], [2.0, 4.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 3.0]) == pytest.approx(0.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
