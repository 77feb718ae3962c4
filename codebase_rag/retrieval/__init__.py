"""Retrieval module for nearest-neighbour chunk search."""

from .retriever import VectorRetriever

__all__ = ["VectorRetriever"]
