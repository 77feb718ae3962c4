"""Tests for query-time retrieval."""

import pytest

from codebase_rag.exceptions import IndexIncompatible
from codebase_rag.retrieval import VectorRetriever

from conftest import FakeEmbeddingClient, make_index

TEXTS = [
    "def add(a, b): return a + b",
    "def subtract(a, b): return a - b",
    "class HttpServer: listens on a socket",
]


def test_defaults_to_single_best_chunk(embedder):
    retriever = VectorRetriever(make_index(embedder, TEXTS), embedder)

    hits = retriever.retrieve("how does the http server listen on a socket")

    assert len(hits) == 1
    assert hits[0].chunk.text == TEXTS[2]


def test_k_is_capped_by_index_size(embedder):
    retriever = VectorRetriever(make_index(embedder, TEXTS), embedder)

    hits = retriever.retrieve("add", k=10)

    assert len(hits) == 3
    assert hits[0].chunk.text == TEXTS[0]


def test_empty_index_gives_empty_result(embedder):
    retriever = VectorRetriever(make_index(embedder, []), embedder)

    assert retriever.retrieve("anything") == []


def test_dimension_mismatch_fails(embedder):
    index = make_index(embedder, TEXTS)
    retriever = VectorRetriever(index, FakeEmbeddingClient(dim=8))

    with pytest.raises(IndexIncompatible):
        retriever.retrieve("add")


def test_batch_retrieve(embedder):
    retriever = VectorRetriever(make_index(embedder, TEXTS), embedder)

    results = retriever.batch_retrieve(["subtract a b", "http server socket"])

    assert [r[0].chunk.text for r in results] == [TEXTS[1], TEXTS[2]]
    assert retriever.batch_retrieve([]) == []
