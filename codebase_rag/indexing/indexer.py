"""
Repository Indexer Module

Turns a working tree into a persisted vector index:
read all -> chunk all -> embed all -> build once -> save.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..chunking import DocumentChunker
from ..embedding import EmbeddingClient
from ..types import Chunk, IndexEntry
from .faiss_builder import FAISSVectorIndex
from .file_collector import ExclusionRules, collect_files, read_documents

PROVENANCE_TEMPLATE = "FILE NAME: {path} \n######\n {content}"


def with_provenance(chunk: Chunk) -> Chunk:
    """Prefix a chunk's text with its file name so it can be cited from text alone."""
    return Chunk(
        source_label=chunk.source_label,
        text=PROVENANCE_TEMPLATE.format(path=chunk.source_label, content=chunk.text),
        sequence_index=chunk.sequence_index
    )


class RepositoryIndexer:
    """
    Builds and saves the vector index for a file tree.

    Any failure aborts the build before anything is written, so a previous
    index is never replaced by a partial one.
    """

    def __init__(
        self,
        chunker: DocumentChunker,
        embedding_client: EmbeddingClient,
        index_factory: Optional[Callable[[int], FAISSVectorIndex]] = None,
        max_workers: int = 8,
        verbose: bool = True
    ):
        """
        Initialize the indexer.

        Args:
            chunker: Splits documents into chunks
            embedding_client: Embeds chunk texts
            index_factory: Creates an empty index for a given dimension
            max_workers: Threads used to read files
            verbose: Print progress messages
        """
        self.chunker = chunker
        self.embedding_client = embedding_client
        self.index_factory = index_factory or (
            lambda dim: FAISSVectorIndex(dim, verbose=verbose)
        )
        self.max_workers = max_workers
        self.verbose = verbose
        self.last_stats: Dict[str, Any] = {}

    def _log(self, message: str):
        """Print log message if verbose."""
        if self.verbose:
            print(message)

    def build_index(
        self,
        root: Union[str, Path],
        rules: ExclusionRules,
        location: Union[str, Path]
    ) -> FAISSVectorIndex:
        """
        Index every non-excluded file under root and save the result.

        Args:
            root: Working root to index
            rules: Exclusion rules, already unioned with any defaults
            location: Directory the index is saved to (replaced wholesale)

        Returns:
            The built index

        Raises:
            IndexBuildFailed: A file could not be read
            EmbeddingUnavailable: The embedding service failed
        """
        root = Path(root)

        self._log("📂 Step 1: Collecting files...")
        paths = collect_files(root, rules)
        self._log(f"  {len(paths)} files to index")
        documents = read_documents(root, paths, self.max_workers, show_progress=self.verbose)

        self._log("📄 Step 2: Chunking documents...")
        chunks = [with_provenance(c) for c in self.chunker.chunk_documents(documents)]
        chunk_stats = self.chunker.get_stats(chunks, count_tokens=self.verbose)
        self._log(
            f"  Created {chunk_stats['total_chunks']} chunks from "
            f"{chunk_stats['unique_documents']} documents"
        )

        self._log("🔢 Step 3: Embedding chunks...")
        embeddings = self.embedding_client.embed_texts(
            [c.text for c in chunks], show_progress=self.verbose
        )

        self._log("🏗️  Step 4: Building index...")
        dim = self._embedding_dim(embeddings)
        entries: List[IndexEntry] = [
            IndexEntry(chunk=chunk, embedding=embeddings[i]) for i, chunk in enumerate(chunks)
        ]
        index = self.index_factory(dim).build(entries)

        self._log("💾 Step 5: Saving vector store...")
        index.save(location)
        self._log(f"✅ VectorStore saved to {location}")

        self.last_stats = {
            "total_files": len(paths),
            "total_chunks": len(chunks),
            "chunk_stats": chunk_stats,
            "embedding_dim": dim,
            "location": str(location),
        }
        return index

    def _embedding_dim(self, embeddings) -> int:
        if len(embeddings):
            return int(embeddings.shape[1])
        if self.embedding_client.embedding_dim:
            return int(self.embedding_client.embedding_dim)
        # Nothing was embedded; learn the dimension from one query so the empty
        # index still records it
        return int(self.embedding_client.embed_query("dimension check").shape[0])
