"""Tests for the training pipeline."""

import pytest

from codebase_rag.chunking import DocumentChunker
from codebase_rag.exceptions import EmbeddingUnavailable, IndexBuildFailed
from codebase_rag.indexing import ExclusionRules, FAISSVectorIndex, RepositoryIndexer
from codebase_rag.indexing.indexer import with_provenance
from codebase_rag.prompting import PromptAssembler
from codebase_rag.types import Chunk, ScoredChunk

from conftest import FakeEmbeddingClient


class BrokenEmbeddingClient(FakeEmbeddingClient):
    def embed_texts(self, texts, show_progress=True):
        raise EmbeddingUnavailable("quota exceeded")


def _indexer(embedder, chunk_size=500, overlap=1):
    return RepositoryIndexer(
        chunker=DocumentChunker(chunk_size=chunk_size, chunk_overlap=overlap),
        embedding_client=embedder,
        verbose=False,
    )


def _rules():
    return ExclusionRules.create().with_system_defaults()


def test_provenance_header():
    chunk = with_provenance(Chunk(source_label="src/a.js", text="let a = 1;", sequence_index=3))

    assert chunk.source_label == "src/a.js"
    assert chunk.sequence_index == 3
    assert chunk.text == "FILE NAME: src/a.js \n######\n let a = 1;"


def test_images_are_never_indexed(tmp_path, embedder):
    (tmp_path / "a.txt").write_text("hello world")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\xff\xfe")
    location = tmp_path / "vectorStore"

    index = _indexer(embedder).build_index(tmp_path, _rules(), location)

    assert {e.chunk.source_label for e in index.entries} == {"a.txt"}
    assert "hello world" in index.entries[0].chunk.text
    assert index.entries[0].chunk.text.startswith("FILE NAME: a.txt")
    assert location.is_dir()
    assert len(FAISSVectorIndex.load(location)) == len(index)


def test_every_chunk_is_embedded_in_one_pass(tmp_path, embedder):
    (tmp_path / "big.py").write_text("value = 1\n" * 200)
    (tmp_path / "small.py").write_text("print('hi')\n")

    indexer = _indexer(embedder, chunk_size=100, overlap=10)
    index = indexer.build_index(tmp_path, _rules(), tmp_path / "vectorStore")

    assert len(embedder.calls) == 1
    assert len(embedder.calls[0]) == len(index)
    assert indexer.last_stats["total_files"] == 2
    assert indexer.last_stats["total_chunks"] == len(index)
    big = [e.chunk for e in index.entries if e.chunk.source_label == "big.py"]
    assert [c.sequence_index for c in big] == list(range(len(big)))


def test_unreadable_file_aborts_without_saving(tmp_path, embedder):
    (tmp_path / "good.txt").write_text("fine")
    (tmp_path / "data.bin").write_bytes(b"\xff\xfe\xfa")
    location = tmp_path / "vectorStore"

    with pytest.raises(IndexBuildFailed) as exc_info:
        _indexer(embedder).build_index(tmp_path, _rules(), location)

    assert exc_info.value.path == "data.bin"
    assert not location.exists()
    assert embedder.calls == []


def test_failed_rebuild_keeps_previous_index(tmp_path, embedder):
    (tmp_path / "a.txt").write_text("hello world")
    location = tmp_path / "vectorStore"
    _indexer(embedder).build_index(tmp_path, _rules(), location)

    (tmp_path / "b.txt").write_text("more text")
    with pytest.raises(EmbeddingUnavailable):
        _indexer(BrokenEmbeddingClient()).build_index(tmp_path, _rules(), location)

    assert {e.chunk.source_label for e in FAISSVectorIndex.load(location).entries} == {"a.txt"}


def test_retraining_skips_its_own_store(tmp_path, embedder):
    (tmp_path / "a.txt").write_text("hello world")
    location = tmp_path / "vectorStore"
    _indexer(embedder).build_index(tmp_path, _rules(), location)

    index = _indexer(embedder).build_index(tmp_path, _rules(), location)

    assert {e.chunk.source_label for e in index.entries} == {"a.txt"}


def test_empty_tree_builds_empty_index(tmp_path, embedder):
    index = _indexer(embedder).build_index(tmp_path, _rules(), tmp_path / "vectorStore")

    assert len(index) == 0
    assert index.embedding_dim == embedder.embedding_dim


def test_every_chunk_names_its_file(tmp_path, embedder):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "math.js").write_text(
        "".join(f"function f{i}(a, b) {{ return a * {i} + b; }}\n" for i in range(40))
    )

    index = _indexer(embedder).build_index(tmp_path, _rules(), tmp_path / "vectorStore")

    chunks = [e.chunk for e in index.entries]
    assert len(chunks) > 1
    assert all(c.text.startswith("FILE NAME: src/math.js \n######\n ") for c in chunks)

    later = chunks[1]
    request = PromptAssembler().assemble([], "what does f30 do?", [ScoredChunk(chunk=later, score=0.9)])
    assert "src/math.js" in request.render()
