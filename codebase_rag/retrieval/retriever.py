"""
Vector Retrieval Module

Provides semantic search over a loaded vector index.
"""

from typing import List

from ..config import DEFAULT_TOP_K
from ..exceptions import IndexIncompatible
from ..types import RetrievalResult


class VectorRetriever:
    """
    Embeds questions and looks up their closest chunks.

    By default only the single best chunk is returned as context.
    """

    def __init__(
        self,
        index,  # FAISSVectorIndex instance
        embedding_client  # EmbeddingClient instance
    ):
        """
        Initialize retriever.

        Args:
            index: Built or loaded FAISSVectorIndex
            embedding_client: EmbeddingClient for query embedding
        """
        self.index = index
        self.embedding_client = embedding_client

        if not index.is_built:
            raise RuntimeError("Index not built. Build index before creating retriever.")

    def retrieve(self, query: str, k: int = DEFAULT_TOP_K) -> RetrievalResult:
        """
        Search for the chunks most similar to a query.

        An empty result only ever comes from an empty index.

        Args:
            query: Query text
            k: Number of results to return

        Returns:
            Scored chunks, best first

        Raises:
            EmbeddingUnavailable: The query could not be embedded
            IndexIncompatible: The query embedding does not match the index
        """
        query_embedding = self.embedding_client.embed_query(query)
        self._check_dimension(query_embedding.shape[-1])
        return self.index.search(query_embedding, k)

    def batch_retrieve(self, queries: List[str], k: int = DEFAULT_TOP_K) -> List[RetrievalResult]:
        """
        Search multiple queries, embedding them in one go.

        Args:
            queries: List of query texts
            k: Number of results per query

        Returns:
            One result list per query
        """
        if not queries:
            return []

        query_embeddings = self.embedding_client.embed_texts(queries, show_progress=False)
        self._check_dimension(query_embeddings.shape[1])
        return [self.index.search(emb, k) for emb in query_embeddings]

    def _check_dimension(self, dim: int) -> None:
        if dim != self.index.embedding_dim:
            raise IndexIncompatible(
                f"Embedding dimension {dim} does not match index dimension {self.index.embedding_dim}"
            )
