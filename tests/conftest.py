"""Shared fakes for the network gateways."""

import hashlib
import re
from typing import Any, Dict, List

import numpy as np
import pytest

from codebase_rag.exceptions import GenerationUnavailable
from codebase_rag.indexing import FAISSVectorIndex
from codebase_rag.types import Chunk, IndexEntry

_WORD = re.compile(r"[a-z0-9]+")


class FakeEmbeddingClient:
    """Deterministic hashed bag-of-words embedder."""

    def __init__(self, dim: int = 64) -> None:
        self.embedding_dim = dim
        self.calls: List[List[str]] = []

    def _vector(self, text: str) -> np.ndarray:
        vec = np.zeros(self.embedding_dim, dtype=np.float32)
        for word in _WORD.findall(text.lower()):
            bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % self.embedding_dim
            vec[bucket] += 1.0
        vec[0] += 0.01  # never all zeros
        return vec

    def embed_texts(self, texts: List[str], show_progress: bool = True) -> np.ndarray:
        self.calls.append(list(texts))
        if not texts:
            return np.zeros((0, self.embedding_dim), dtype=np.float32)
        return np.vstack([self._vector(t) for t in texts])

    def embed_query(self, text: str) -> np.ndarray:
        return self.embed_texts([text], show_progress=False)[0]

    def get_info(self) -> Dict[str, Any]:
        return {"embedding_dim": self.embedding_dim}


class FakeGenerator:
    """Records every request and answers with a numbered reply."""

    def __init__(self) -> None:
        self.requests = []
        self.fail_next = False

    def complete(self, request) -> str:
        if self.fail_next:
            self.fail_next = False
            raise GenerationUnavailable("service down")
        self.requests.append(request)
        return f"answer {len(self.requests)}"

    def get_info(self) -> Dict[str, Any]:
        return {"model_name": "fake"}


@pytest.fixture
def embedder() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


def make_index(embedder: FakeEmbeddingClient, texts: List[str], source: str = "src/app.js") -> FAISSVectorIndex:
    chunks = [Chunk(source_label=source, text=t, sequence_index=i) for i, t in enumerate(texts)]
    embeddings = embedder.embed_texts(texts)
    entries = [IndexEntry(chunk=c, embedding=embeddings[i]) for i, c in enumerate(chunks)]
    return FAISSVectorIndex(embedder.embedding_dim).build(entries)
