"""
Prometheus metrics for the embedding and search pipeline.

Defines and exposes metrics for:
- Embedding generation, failures and provider latency
- Embedding cache effectiveness
- Lifecycle dispatch queue depth and dropped jobs
- Similarity search latency and result counts
- Backfill outcomes

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from tasksearch.config.settings import get_settings

logger = logging.getLogger(__name__)

# Provider round-trips are slower than local work
PROVIDER_LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)
SEARCH_LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class MetricsCollector:
    """
    Prometheus metrics collector for task embeddings and search.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_embedding_stored(model="text-embedding-ada-002")
        metrics.record_search(latency=0.12, results=4)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Lifecycle outcomes
        self.embeddings_stored = Counter(
            "tasksearch_embeddings_stored_total",
            "Total embeddings written to the vector store",
            ["model"],
        )

        self.embeddings_skipped = Counter(
            "tasksearch_embeddings_skipped_total",
            "Source records skipped because they had no searchable text",
        )

        self.embeddings_failed = Counter(
            "tasksearch_embeddings_failed_total",
            "Embedding lifecycle failures",
            ["stage"],  # provider, storage, unknown
        )

        self.embeddings_deleted = Counter(
            "tasksearch_embeddings_deleted_total",
            "Total embeddings deleted",
        )

        # Provider
        self.provider_latency = Histogram(
            "tasksearch_provider_latency_seconds",
            "Time spent in the embedding provider call",
            ["model"],
            buckets=PROVIDER_LATENCY_BUCKETS,
        )

        self.embedding_cache_hits = Counter(
            "tasksearch_embedding_cache_hits_total",
            "Total embedding cache hits",
        )

        self.embedding_cache_misses = Counter(
            "tasksearch_embedding_cache_misses_total",
            "Total embedding cache misses",
        )

        # Dispatcher
        self.dispatch_queue_depth = Gauge(
            "tasksearch_dispatch_queue_depth",
            "Number of lifecycle jobs waiting in the dispatch queue",
        )

        self.dispatch_dropped = Counter(
            "tasksearch_dispatch_dropped_total",
            "Lifecycle jobs dropped before processing",
            ["reason"],  # queue_full, not_running, abandoned
        )

        # Search
        self.search_latency = Histogram(
            "tasksearch_search_latency_seconds",
            "End-to-end similarity search latency",
            buckets=SEARCH_LATENCY_BUCKETS,
        )

        self.search_results = Histogram(
            "tasksearch_search_results",
            "Number of results returned per search",
            buckets=(0, 1, 5, 10, 25, 50, 100),
        )

        self.search_errors = Counter(
            "tasksearch_search_errors_total",
            "Similarity searches that failed",
            ["error_type"],
        )

        # Backfill
        self.backfill_records = Counter(
            "tasksearch_backfill_records_total",
            "Records visited by backfill runs",
            ["outcome"],  # success, failed, skipped
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_embedding_stored(self, model: str) -> None:
        self.embeddings_stored.labels(model=model).inc()

    def record_embedding_skipped(self) -> None:
        self.embeddings_skipped.inc()

    def record_embedding_failed(self, stage: str) -> None:
        """
        Record a failed lifecycle operation.

        Args:
            stage: Where it failed (provider, storage, unknown)
        """
        self.embeddings_failed.labels(stage=stage).inc()

    def record_embedding_deleted(self) -> None:
        self.embeddings_deleted.inc()

    def record_provider_latency(self, model: str, latency: float) -> None:
        self.provider_latency.labels(model=model).observe(latency)

    def record_embedding_cache(self, hit: bool) -> None:
        """
        Record embedding cache hit or miss.

        Args:
            hit: True for cache hit, False for miss
        """
        if hit:
            self.embedding_cache_hits.inc()
        else:
            self.embedding_cache_misses.inc()

    def set_dispatch_queue_depth(self, depth: int) -> None:
        self.dispatch_queue_depth.set(depth)

    def record_dispatch_dropped(self, reason: str, count: int = 1) -> None:
        self.dispatch_dropped.labels(reason=reason).inc(count)

    def record_search(self, latency: float, results: int) -> None:
        """
        Record a completed similarity search.

        Args:
            latency: End-to-end latency in seconds
            results: Number of results returned
        """
        self.search_latency.observe(latency)
        self.search_results.observe(results)

    def record_search_error(self, error_type: str) -> None:
        self.search_errors.labels(error_type=error_type).inc()

    def record_backfill(self, success: int, failed: int, skipped: int) -> None:
        """Record the totals of a finished backfill run."""
        self.backfill_records.labels(outcome="success").inc(success)
        self.backfill_records.labels(outcome="failed").inc(failed)
        self.backfill_records.labels(outcome="skipped").inc(skipped)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
