"""Chunking module for splitting documents into overlapping pieces."""

from .chunker import DocumentChunker, reconstruct

__all__ = ["DocumentChunker", "reconstruct"]
