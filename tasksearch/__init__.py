"""Semantic embedding and similarity search for task records."""

__version__ = "0.1.0"
