"""Embedding module for the remote embedding API client."""

from .client import EmbeddingClient

__all__ = ["EmbeddingClient"]
