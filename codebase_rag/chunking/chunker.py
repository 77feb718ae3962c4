"""
Document Chunking Module

Provides fixed-size, overlapping character chunking that prefers to break on
paragraph, line, or word boundaries.
"""

import tiktoken
from typing import List, Dict, Any, Optional, Sequence, Tuple

from ..exceptions import InvalidConfig
from ..types import Chunk, Document

# Break preference, strongest boundary first
DEFAULT_SEPARATORS = ("\n\n", "\n", " ")


class DocumentChunker:
    """
    Chunks documents into pieces of at most `chunk_size` characters.

    Consecutive chunks of a document share exactly `chunk_overlap` characters,
    so dropping that prefix from every chunk but the first and concatenating
    gives back the original content.
    """

    def __init__(
        self,
        chunk_size: int = 500,
        chunk_overlap: int = 1,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
        encoding_name: str = "cl100k_base"  # only used for stats
    ):
        """
        Initialize the chunker.

        Args:
            chunk_size: Maximum size of each chunk, in characters
            chunk_overlap: Number of characters shared by neighbouring chunks
            separators: Preferred break strings, tried in order
            encoding_name: Tokenizer encoding used to report token counts

        Raises:
            InvalidConfig: If the size/overlap combination cannot make progress
        """
        if chunk_size <= 0:
            raise InvalidConfig(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise InvalidConfig(f"chunk_overlap must not be negative, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise InvalidConfig(
                f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = tuple(s for s in separators if s)
        self.encoding_name = encoding_name
        self._encoding = None

    def chunk_document(self, document: Document) -> List[Chunk]:
        """
        Chunk a single document into overlapping pieces.

        Args:
            document: Document to chunk

        Returns:
            Chunks in document order; empty content yields no chunks
        """
        text = document.content
        return [
            Chunk(source_label=document.path, text=text[start:end], sequence_index=idx)
            for idx, (start, end) in enumerate(self._split_spans(text))
        ]

    def chunk_documents(self, documents: Sequence[Document]) -> List[Chunk]:
        """
        Chunk multiple documents, keeping document order.

        Args:
            documents: Documents to chunk

        Returns:
            List of all chunks
        """
        all_chunks = []
        for doc in documents:
            all_chunks.extend(self.chunk_document(doc))
        return all_chunks

    def _split_spans(self, text: str) -> List[Tuple[int, int]]:
        """Compute (start, end) character spans for every chunk."""
        spans = []
        length = len(text)
        start = 0

        while start < length:
            if length - start <= self.chunk_size:
                spans.append((start, length))
                break

            end = self._find_break(text, start)
            spans.append((start, end))

            # Next chunk re-reads the tail of this one
            start = end - self.chunk_overlap

        return spans

    def _find_break(self, text: str, start: int) -> int:
        """Pick the end of the chunk starting at `start`."""
        hard_end = start + self.chunk_size
        window = text[start:hard_end]

        for separator in self.separators:
            pos = window.rfind(separator)
            if pos == -1:
                continue
            cut = pos + len(separator)
            # Must be longer than the overlap or the walk would stall
            if cut > self.chunk_overlap:
                return start + cut

        return hard_end

    def _count_tokens(self, texts: List[str]) -> Optional[List[int]]:
        if self._encoding is None:
            try:
                self._encoding = tiktoken.get_encoding(self.encoding_name)
            except Exception as e:
                print(f"Warning: Failed to load tokenizer ({e}), reporting character stats only")
                self._encoding = False
        if self._encoding is False:
            return None
        return [len(self._encoding.encode(t)) for t in texts]

    def get_stats(self, chunks: List[Chunk], count_tokens: bool = True) -> Dict[str, Any]:
        """
        Get statistics about chunked documents.

        Args:
            chunks: List of chunks
            count_tokens: Also report token counts (needs the tiktoken encoding)

        Returns:
            Statistics dictionary
        """
        sizes = [len(c.text) for c in chunks]
        sources = {}
        for c in chunks:
            sources[c.source_label] = sources.get(c.source_label, 0) + 1

        stats = {
            "total_chunks": len(chunks),
            "unique_documents": len(sources),
            "chunks_per_document": sources,
            "avg_chunk_size": sum(sizes) / len(sizes) if sizes else 0,
            "min_chunk_size": min(sizes) if sizes else 0,
            "max_chunk_size": max(sizes) if sizes else 0,
            "chunk_size": self.chunk_size,
            "chunk_overlap": self.chunk_overlap,
        }

        if count_tokens and chunks:
            token_counts = self._count_tokens([c.text for c in chunks])
            if token_counts is not None:
                stats["total_tokens"] = sum(token_counts)
                stats["max_chunk_tokens"] = max(token_counts)

        return stats


def reconstruct(chunks: Sequence[Chunk], chunk_overlap: int) -> str:
    """Rebuild a document's content from its ordered chunks."""
    ordered = sorted(chunks, key=lambda c: c.sequence_index)
    if not ordered:
        return ""
    return ordered[0].text + "".join(c.text[chunk_overlap:] for c in ordered[1:])
