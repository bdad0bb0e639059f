"""Observability layer - logging and metrics."""

from tasksearch.observability.logging import setup_logging
from tasksearch.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
