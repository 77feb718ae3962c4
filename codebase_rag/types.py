"""Core data types shared across the pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

import numpy as np


@dataclass(frozen=True)
class Document:
    """A source file that survived the exclusion filters."""

    path: str
    content: str


@dataclass(frozen=True)
class Chunk:
    """An overlap-linked slice of a document, the unit of retrieval."""

    source_label: str
    text: str
    sequence_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_label": self.source_label,
            "text": self.text,
            "sequence_index": self.sequence_index,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        return cls(
            source_label=str(data["source_label"]),
            text=str(data["text"]),
            sequence_index=int(data["sequence_index"]),
        )


@dataclass(frozen=True)
class IndexEntry:
    """A chunk together with its embedding vector."""

    chunk: Chunk
    embedding: np.ndarray


@dataclass(frozen=True)
class ScoredChunk:
    """One search hit; higher score means more similar."""

    chunk: Chunk
    score: float


# Most relevant first, length <= k
RetrievalResult = List[ScoredChunk]


class Role(str, Enum):
    HUMAN = "Human"
    ASSISTANT = "Assistant"


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    text: str

    def render(self) -> str:
        return f"{self.role.value}: {self.text}"
