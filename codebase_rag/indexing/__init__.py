"""Indexing module for collecting files and building the FAISS vector index."""

from .faiss_builder import FAISSVectorIndex
from .file_collector import ExclusionRules, collect_files, parse_list, read_documents
from .indexer import RepositoryIndexer, with_provenance

__all__ = [
    "FAISSVectorIndex",
    "ExclusionRules",
    "collect_files",
    "parse_list",
    "read_documents",
    "RepositoryIndexer",
    "with_provenance",
]
