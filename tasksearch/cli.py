"""
Command-line interface for tasksearch.

Provides commands to provision vector search, backfill embeddings,
inspect coverage, run ad-hoc searches, and serve the API.

Usage:
    tasksearch init-vectors           # Enable pgvector and create the table
    tasksearch backfill               # Embed every task
    tasksearch backfill --stale-only  # Only missing / other-model embeddings
    tasksearch status                 # Coverage report
    tasksearch debug                  # Diagnose the pgvector setup
    tasksearch search "query"         # Ad-hoc similarity search
    tasksearch serve                  # Run the API server
"""

import asyncio
import json
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import click
import redis.asyncio as redis

from tasksearch.config.settings import get_settings
from tasksearch.embedding.config import EmbeddingConfig
from tasksearch.errors import SemanticSearchError
from tasksearch.observability.logging import setup_logging
from tasksearch.observability.metrics import get_metrics
from tasksearch.services.semantic_search import (
    SemanticSearchService,
    build_semantic_search_service,
)
from tasksearch.storage.database import Database


@asynccontextmanager
async def open_service() -> AsyncIterator[SemanticSearchService]:
    """Connect the database (and cache), build the service, and clean up after."""
    settings = get_settings()
    redis_client = None
    if EmbeddingConfig().cache_enabled:
        redis_client = redis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
        )

    async with Database() as db:
        service = build_semantic_search_service(db, redis_client)
        try:
            yield service
        finally:
            await service.close()
            if redis_client is not None:
                await redis_client.aclose()


def _echo_json(data: dict) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Task Search - semantic search over tasks with pgvector."""
    setup_logging(level="DEBUG" if debug else None)


@main.command("init-vectors")
def init_vectors() -> None:
    """Enable pgvector and create the embedding table."""

    async def run() -> bool:
        async with open_service() as service:
            return await service.init_vector_store()

    if asyncio.run(run()):
        click.echo(click.style("Vector store initialized", fg="green"))
    else:
        click.echo(click.style("Vector store initialization failed (see logs)", fg="red"))
        sys.exit(1)


@main.command()
@click.option("--stale-only", is_flag=True, help="Only tasks with a missing or outdated embedding")
@click.option("--init/--no-init", default=True, help="Ensure the table exists first")
def backfill(stale_only: bool, init: bool) -> None:
    """Embed tasks one at a time (rate limited)."""

    async def run() -> dict | None:
        async with open_service() as service:
            if init and not await service.init_vector_store():
                return None
            return await service.backfill_embeddings(stale_only=stale_only)

    try:
        result = asyncio.run(run())
    except SemanticSearchError as e:
        click.echo(click.style(f"Backfill failed: {e}", fg="red"), err=True)
        sys.exit(1)

    if result is None:
        click.echo(click.style("Vector store not ready; backfill skipped", fg="red"))
        sys.exit(1)

    click.echo("\nBackfill Results:")
    click.echo("-" * 40)
    click.echo(click.style(f"  embedded: {result['success']}", fg="green"))
    click.echo(click.style(f"  failed:   {result['failed']}", fg="red" if result["failed"] else None))
    click.echo(f"  skipped:  {result['skipped']}")
    click.echo("-" * 40)
    if result["failed"]:
        sys.exit(1)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def status(as_json: bool) -> None:
    """Show vector store coverage."""

    async def run() -> dict:
        async with open_service() as service:
            return await service.get_vector_store_status()

    result = asyncio.run(run())
    if as_json:
        _echo_json(result)
        return

    initialized = result["initialized"]
    click.echo(
        click.style(
            f"Initialized: {initialized}", fg="green" if initialized else "red"
        )
    )
    click.echo(f"Model:       {result['model']}")
    click.echo(f"Tasks:       {result['source_count']}")
    click.echo(f"Embeddings:  {result['embedding_count']}")
    click.echo(f"Stale:       {result['stale_count']}")
    click.echo(f"Coverage:    {result['coverage']}%")


@main.command()
def debug() -> None:
    """Diagnose the pgvector setup."""

    async def run() -> dict:
        async with open_service() as service:
            return await service.get_vector_store_diagnostics()

    _echo_json(asyncio.run(run()))


@main.command()
@click.argument("query")
@click.option("--limit", default=None, type=int, help="Maximum results")
@click.option("--min-similarity", default=None, type=float, help="Similarity threshold")
def search(query: str, limit: int | None, min_similarity: float | None) -> None:
    """Run a similarity search and print matching task IDs."""

    async def run() -> list[dict]:
        async with open_service() as service:
            return await service.search_similar(
                query, limit=limit, min_similarity=min_similarity
            )

    try:
        results = asyncio.run(run())
    except SemanticSearchError as e:
        click.echo(click.style(f"Search failed: {e}", fg="red"), err=True)
        sys.exit(1)

    if not results:
        click.echo("No matching tasks")
        return
    for r in results:
        click.echo(f"{r['similarity']:.4f}  {r['source_id']}")


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    # Start metrics server on separate port
    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "tasksearch.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
