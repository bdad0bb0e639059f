"""
FastAPI task search service.

Provides REST API for semantic task search with:
- POST /search/similar - Natural-language similarity search
- POST /embeddings, DELETE /embeddings/{id} - Lifecycle hooks (202)
- GET/POST /admin/vectors - Status, init and backfill
- GET /health - Service health check
"""

from tasksearch.api.app import create_app

__all__ = ["create_app"]
