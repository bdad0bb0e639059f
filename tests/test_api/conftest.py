"""Fixtures for API tests: the real service wired to in-memory backends."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from tasksearch.api.app import create_app
from tasksearch.api.dependencies import get_database, get_semantic_search_service
from tasksearch.services.semantic_search import SemanticSearchService


@pytest.fixture
def api_service(memory_store, embedding_service, task_repo, store_config, lifecycle_config):
    return SemanticSearchService(
        memory_store,
        embedding_service,
        task_repo,
        store_config=store_config,
        lifecycle_config=lifecycle_config,
    )


@pytest.fixture
def healthy_database():
    db = MagicMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def app(api_service, healthy_database):
    application = create_app()
    application.dependency_overrides[get_semantic_search_service] = lambda: api_service
    application.dependency_overrides[get_database] = lambda: healthy_database
    # The lifespan builds the service itself rather than through Depends
    with patch(
        "tasksearch.api.app.get_semantic_search_service",
        new=AsyncMock(return_value=api_service),
    ):
        yield application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
