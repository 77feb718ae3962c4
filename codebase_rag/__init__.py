"""
Codebase RAG

Ask questions about a codebase: chunk and embed its files into an HNSW
vector index, then answer questions with the closest chunks as context.
"""

from .rag_system import CodebaseRAG
from .chunking import DocumentChunker
from .embedding import EmbeddingClient
from .generation import GenerationClient
from .indexing import FAISSVectorIndex, RepositoryIndexer
from .prompting import PromptAssembler
from .retrieval import VectorRetriever
from .session import ChatSession, SessionState

__version__ = "0.1.0"

__all__ = [
    "CodebaseRAG",
    "DocumentChunker",
    "EmbeddingClient",
    "GenerationClient",
    "FAISSVectorIndex",
    "RepositoryIndexer",
    "PromptAssembler",
    "VectorRetriever",
    "ChatSession",
    "SessionState",
]
