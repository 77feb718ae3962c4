"""
FAISS Vector Index Module

Provides the HNSW-backed vector index used for chunk retrieval, with
self-describing persistence.
"""

import os
import shutil
import faiss
import numpy as np
import pickle
from pathlib import Path
from typing import List, Dict, Any, Optional, Sequence, Tuple, Union

from ..config import STAGING_SUFFIX
from ..exceptions import IndexIncompatible, IndexNotFound
from ..types import Chunk, IndexEntry, ScoredChunk

FORMAT_VERSION = 1
INDEX_FILE = "index.faiss"
META_FILE = INDEX_FILE + ".meta"
EMBEDDINGS_FILE = "embeddings.npy"

SUPPORTED_METRICS = ("cosine", "l2")


class FAISSVectorIndex:
    """
    Approximate nearest-neighbour index over chunk embeddings.

    Uses a FAISS hierarchical navigable small-world graph (IndexHNSWFlat).
    With the default "cosine" metric vectors are L2-normalised and searched
    by inner product, so scores are cosine similarities. With "l2" the score
    is the negated squared distance. Higher is always better.

    Built once, then read-only: search never mutates the index.
    """

    def __init__(
        self,
        embedding_dim: int,
        metric: str = "cosine",  # "cosine" or "l2"
        hnsw_m: int = 32,  # HNSW parameter
        hnsw_ef_construction: int = 200,  # HNSW construction parameter
        hnsw_ef_search: int = 64,  # HNSW search parameter
        verbose: bool = False
    ):
        """
        Initialize an empty index.

        Args:
            embedding_dim: Dimension of embeddings
            metric: Distance metric
            hnsw_m: Number of connections per layer
            hnsw_ef_construction: Size of dynamic candidate list while building
            hnsw_ef_search: Search depth
            verbose: Print build/save/load summaries
        """
        if metric not in SUPPORTED_METRICS:
            raise ValueError(f"Unsupported metric: {metric}")
        if embedding_dim <= 0:
            raise ValueError(f"embedding_dim must be positive, got {embedding_dim}")

        self.embedding_dim = embedding_dim
        self.metric = metric
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construction = hnsw_ef_construction
        self.hnsw_ef_search = hnsw_ef_search
        self.verbose = verbose

        self.index = None
        self._chunks: List[Chunk] = []
        self._embeddings = np.zeros((0, embedding_dim), dtype=np.float32)
        self.is_built = False

    @classmethod
    def from_entries(
        cls,
        entries: Sequence[IndexEntry],
        embedding_dim: Optional[int] = None,
        **kwargs
    ) -> "FAISSVectorIndex":
        """
        Build an index in one go, taking the dimension from the first entry.

        Raises:
            ValueError: If there are no entries and no explicit dimension
        """
        if embedding_dim is None:
            if not entries:
                raise ValueError("embedding_dim is required to build an empty index")
            embedding_dim = int(np.asarray(entries[0].embedding).shape[-1])
        return cls(embedding_dim, **kwargs).build(entries)

    def build(self, entries: Sequence[IndexEntry]) -> "FAISSVectorIndex":
        """
        Build the index from all entries at once.

        Args:
            entries: Chunks with their embeddings, in insertion order

        Returns:
            self, now searchable

        Raises:
            IndexIncompatible: If any embedding has the wrong dimension
        """
        if self.is_built:
            raise RuntimeError("Index already built. Build a new index instead of extending it.")

        rows = []
        for position, entry in enumerate(entries):
            vector = np.asarray(entry.embedding, dtype=np.float32).reshape(-1)
            if vector.shape[0] != self.embedding_dim:
                raise IndexIncompatible(
                    f"Entry {position} has dimension {vector.shape[0]}, expected {self.embedding_dim}"
                )
            rows.append(vector)

        if rows:
            embeddings = np.vstack(rows)
        else:
            embeddings = np.zeros((0, self.embedding_dim), dtype=np.float32)

        if self.verbose:
            print("Building FAISS index (hnsw)...")
            print(f"  Vectors: {len(embeddings)}")
            print(f"  Dimension: {self.embedding_dim}")
            print(f"  Metric: {self.metric}")

        self._install(embeddings, [e.chunk for e in entries])

        if self.verbose:
            print(f"✅ Index built with {self.index.ntotal} vectors")

        return self

    def _install(self, embeddings: np.ndarray, chunks: List[Chunk]) -> None:
        self.index = self._create_hnsw_index(self._prepare(embeddings))
        self._embeddings = embeddings
        self._embeddings.setflags(write=False)
        self._chunks = list(chunks)
        self.is_built = True

    def _create_hnsw_index(self, vectors: np.ndarray) -> faiss.Index:
        """Create HNSW (approximate) index."""
        if self.metric == "cosine":
            index = faiss.IndexHNSWFlat(self.embedding_dim, self.hnsw_m, faiss.METRIC_INNER_PRODUCT)
        else:
            index = faiss.IndexHNSWFlat(self.embedding_dim, self.hnsw_m, faiss.METRIC_L2)

        # Set construction parameters
        index.hnsw.efConstruction = self.hnsw_ef_construction

        # Add vectors
        if len(vectors):
            index.add(vectors)

        # Set search parameter
        index.hnsw.efSearch = self.hnsw_ef_search

        return index

    def _prepare(self, vectors: np.ndarray) -> np.ndarray:
        """Cast to contiguous float32, normalising for cosine similarity."""
        vectors = np.ascontiguousarray(vectors, dtype=np.float32)
        if self.metric == "cosine" and len(vectors):
            norms = np.linalg.norm(vectors, axis=1, keepdims=True)
            # Avoid division by zero
            norms = np.where(norms == 0, 1, norms)
            vectors = np.ascontiguousarray(vectors / norms, dtype=np.float32)
        return vectors

    def search(self, query_embedding: np.ndarray, k: int) -> List[ScoredChunk]:
        """
        Find the k chunks most similar to a query embedding.

        Args:
            query_embedding: Vector of shape (embedding_dim,)
            k: Number of results wanted

        Returns:
            At most min(k, len(self)) hits, best first; equal scores keep
            insertion order, also across the cut at k

        Raises:
            IndexIncompatible: If the query has the wrong dimension
        """
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        if not self.is_built:
            raise RuntimeError("Index not built yet. Call build first.")

        query = np.asarray(query_embedding, dtype=np.float32).reshape(1, -1)
        if query.shape[1] != self.embedding_dim:
            raise IndexIncompatible(
                f"Query embedding has dimension {query.shape[1]}, index expects {self.embedding_dim}"
            )

        if not self._chunks:
            return []

        # Over-fetch so duplicates just past k can still win the tie break
        fetch = min(len(self._chunks), max(k, self.hnsw_ef_search))
        scores, indices = self.index.search(self._prepare(query), fetch)

        hits: List[Tuple[int, float]] = []
        for idx, score in zip(indices[0], scores[0]):
            if idx == -1:  # FAISS returns -1 for missing results
                continue
            score = float(score)
            hits.append((int(idx), -score if self.metric == "l2" else score))

        hits.sort(key=lambda hit: (-hit[1], hit[0]))
        return [ScoredChunk(chunk=self._chunks[idx], score=score) for idx, score in hits[:k]]

    @property
    def entries(self) -> Tuple[IndexEntry, ...]:
        return tuple(
            IndexEntry(chunk=chunk, embedding=self._embeddings[i])
            for i, chunk in enumerate(self._chunks)
        )

    def __len__(self) -> int:
        return len(self._chunks)

    def _config(self) -> Dict[str, Any]:
        return {
            "format_version": FORMAT_VERSION,
            "embedding_dim": self.embedding_dim,
            "index_type": "hnsw",
            "metric": self.metric,
            "hnsw_m": self.hnsw_m,
            "hnsw_ef_construction": self.hnsw_ef_construction,
            "hnsw_ef_search": self.hnsw_ef_search,
            "count": len(self._chunks),
        }

    def save(self, location: Union[str, Path]) -> None:
        """
        Save the index into a directory, replacing whatever was there.

        Files are written to a sibling temporary directory first, so a failed
        save leaves any previous index untouched.

        Args:
            location: Directory to write
        """
        if not self.is_built:
            raise RuntimeError("Index not built yet. Call build first.")

        location = Path(location)
        staging = location.with_name(location.name + STAGING_SUFFIX)
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True)

        try:
            faiss.write_index(self.index, str(staging / INDEX_FILE))
            np.save(staging / EMBEDDINGS_FILE, self._embeddings, allow_pickle=False)
            with open(staging / META_FILE, "wb") as f:
                pickle.dump({
                    "metadata": [c.to_dict() for c in self._chunks],
                    "config": self._config()
                }, f)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if location.is_dir():
            shutil.rmtree(location)
        elif location.exists():
            location.unlink()
        os.replace(staging, location)

        if self.verbose:
            print(f"✅ Index saved to {location}")

    @classmethod
    def load(
        cls,
        location: Union[str, Path],
        embedding_dim: Optional[int] = None,
        metric: Optional[str] = None,
        verbose: bool = False
    ) -> "FAISSVectorIndex":
        """
        Load a saved index and validate it before it can be queried.

        Args:
            location: Directory written by save()
            embedding_dim: Dimension the caller's embeddings have, if known
            metric: Metric the caller expects, if it matters
            verbose: Print a summary

        Raises:
            IndexNotFound: If the directory does not exist
            IndexIncompatible: If the index is corrupt or does not match
        """
        location = Path(location)
        if not location.is_dir():
            raise IndexNotFound(str(location))

        try:
            with open(location / META_FILE, "rb") as f:
                data = pickle.load(f)
            config = data["config"]
            records = data["metadata"]
            if config.get("format_version") != FORMAT_VERSION:
                raise IndexIncompatible(
                    f"Unsupported index format version: {config.get('format_version')}"
                )
            stored_dim = int(config["embedding_dim"])
            stored_metric = config["metric"]
            chunks = [Chunk.from_dict(r) for r in records]
            raw_index = faiss.read_index(str(location / INDEX_FILE))
            if not isinstance(raw_index, faiss.IndexHNSW):
                raise IndexIncompatible(f"Index at {location} is not an HNSW index")
            embeddings = np.load(location / EMBEDDINGS_FILE, allow_pickle=False)
        except IndexIncompatible:
            raise
        except Exception as e:
            raise IndexIncompatible(f"Corrupt index at {location}: {e}") from e

        if stored_metric not in SUPPORTED_METRICS:
            raise IndexIncompatible(f"Unknown distance metric in index: {stored_metric}")
        if metric is not None and metric != stored_metric:
            raise IndexIncompatible(f"Index uses metric {stored_metric}, expected {metric}")
        if embedding_dim is not None and embedding_dim != stored_dim:
            raise IndexIncompatible(
                f"Index was built with embedding dimension {stored_dim}, expected {embedding_dim}"
            )
        if raw_index.d != stored_dim:
            raise IndexIncompatible(
                f"FAISS index dimension {raw_index.d} does not match recorded dimension {stored_dim}"
            )
        if embeddings.ndim != 2 or embeddings.shape != (len(chunks), stored_dim):
            raise IndexIncompatible(
                f"Embeddings have shape {embeddings.shape}, expected ({len(chunks)}, {stored_dim})"
            )
        if raw_index.ntotal != len(chunks):
            raise IndexIncompatible(
                f"Index holds {raw_index.ntotal} vectors but {len(chunks)} chunks"
            )

        loaded = cls(
            stored_dim,
            metric=stored_metric,
            hnsw_m=config.get("hnsw_m", 32),
            hnsw_ef_construction=config.get("hnsw_ef_construction", 200),
            hnsw_ef_search=config.get("hnsw_ef_search", 64),
            verbose=verbose
        )
        raw_index.hnsw.efSearch = loaded.hnsw_ef_search
        loaded.index = raw_index
        loaded._embeddings = embeddings.astype(np.float32, copy=False)
        loaded._embeddings.setflags(write=False)
        loaded._chunks = chunks
        loaded.is_built = True

        if verbose:
            print(f"✅ Index loaded from {location}")
            print(f"  Total vectors: {raw_index.ntotal}")

        return loaded

    def get_stats(self) -> Dict[str, Any]:
        """Get index statistics."""
        if not self.is_built:
            return {"status": "not_built"}

        return {
            "status": "built",
            "total_vectors": self.index.ntotal,
            "embedding_dim": self.embedding_dim,
            "index_type": "hnsw",
            "metric": self.metric,
            "sources": len({c.source_label for c in self._chunks})
        }
