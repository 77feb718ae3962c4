"""
Chat Session Module

Turn-based question answering over a previously built index.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .config import DEFAULT_LANGUAGE, DEFAULT_TOP_K, EXIT_COMMAND
from .exceptions import IndexNotFound
from .indexing import FAISSVectorIndex
from .prompting import GenerationRequest, PromptAssembler
from .retrieval import VectorRetriever
from .types import ConversationTurn, Role


class SessionState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    TERMINATED = "terminated"


def is_exit_command(query: str) -> bool:
    return query.strip().lower() == EXIT_COMMAND


class ChatSession:
    """
    One interactive conversation with the codebase.

    Each non-exit query runs retrieve -> assemble -> complete and, only when
    all three succeed, appends the Human/Assistant pair to the history. A
    failed turn raises and leaves the history as it was; the session stays
    ready for the next query. The exit query ends the session for good.

    Callers must not pass blank queries; the interactive boundary rejects
    them before they get here.
    """

    def __init__(
        self,
        retriever: VectorRetriever,
        assembler: PromptAssembler,
        generator,  # GenerationClient instance
        language: str = DEFAULT_LANGUAGE,
        top_k: int = DEFAULT_TOP_K
    ):
        self.retriever = retriever
        self.assembler = assembler
        self.generator = generator
        self.language = (language or "").strip() or DEFAULT_LANGUAGE
        self.top_k = top_k

        self.state = SessionState.AWAITING_INPUT
        self._history: List[ConversationTurn] = []
        self.last_request: Optional[GenerationRequest] = None

    @classmethod
    def open(
        cls,
        location: Union[str, Path],
        embedding_client,
        generator,
        assembler: Optional[PromptAssembler] = None,
        language: str = DEFAULT_LANGUAGE,
        top_k: int = DEFAULT_TOP_K,
        embedding_dim: Optional[int] = None,
        verbose: bool = False
    ) -> "ChatSession":
        """
        Load the saved index and start a session on it.

        Raises:
            IndexNotFound: Nothing has been trained at location yet
            IndexIncompatible: The saved index is corrupt or has the wrong dimension
        """
        if not Path(location).is_dir():
            raise IndexNotFound(str(location))

        if embedding_dim is None:
            embedding_dim = embedding_client.embedding_dim
        if not embedding_dim:
            # The client has not embedded anything yet; one query tells us
            embedding_dim = int(embedding_client.embed_query("dimension check").shape[0])

        index = FAISSVectorIndex.load(location, embedding_dim=embedding_dim, verbose=verbose)
        return cls(
            retriever=VectorRetriever(index, embedding_client),
            assembler=assembler or PromptAssembler(),
            generator=generator,
            language=language,
            top_k=top_k
        )

    @property
    def history(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._history)

    @property
    def is_terminated(self) -> bool:
        return self.state is SessionState.TERMINATED

    def submit(self, query: str) -> Optional[str]:
        """
        Handle one user query.

        Args:
            query: Non-blank question, or the exit command

        Returns:
            The answer, or None once the session has terminated

        Raises:
            ValueError: Blank query
            EmbeddingUnavailable, IndexIncompatible, GenerationUnavailable:
                The turn failed; history is unchanged
        """
        if self.is_terminated:
            return None
        if not query or not query.strip():
            raise ValueError("Blank queries must be rejected before reaching the session")

        if is_exit_command(query):
            self.state = SessionState.TERMINATED
            return None

        retrieved = self.retriever.retrieve(query, k=self.top_k)
        request = self.assembler.assemble(self.history, query, retrieved, self.language)
        self.last_request = request
        answer = self.generator.complete(request)

        self._history.append(ConversationTurn(Role.HUMAN, query))
        self._history.append(ConversationTurn(Role.ASSISTANT, answer))
        return answer
