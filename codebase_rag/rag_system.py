"""
Codebase RAG - Main Module

Provides the two top-level operations: train an index over the working tree,
and chat with it.
"""

from typing import Any, Dict, Iterable, Optional

from .config import Settings
from .chunking import DocumentChunker
from .embedding import EmbeddingClient
from .generation import GenerationClient
from .indexing import ExclusionRules, FAISSVectorIndex, RepositoryIndexer
from .prompting import PromptAssembler
from .session import ChatSession


class CodebaseRAG:
    """
    Complete codebase question-answering system.

    Wires chunking, embedding, indexing, retrieval, prompting and generation
    together from one Settings object.
    """

    def __init__(
        self,
        settings: Settings,
        embedding_client: Optional[EmbeddingClient] = None,
        generation_client: Optional[GenerationClient] = None,
        assembler: Optional[PromptAssembler] = None
    ):
        """
        Initialize the system.

        Clients are created from settings unless given; creating them checks
        the API key, so a missing key fails here before any work starts.

        Args:
            settings: Runtime settings
            embedding_client: Optional pre-built embedding client
            generation_client: Optional pre-built generation client
            assembler: Optional prompt assembler
        """
        self.settings = settings
        self.verbose = settings.verbose

        self._log("🔧 Initializing embedding client...")
        self.embedding_client = embedding_client or EmbeddingClient(
            api_url=settings.embedding_api_url,
            model_name=settings.embedding_model,
            api_key=settings.api_key
        )

        self._log("🔧 Initializing generation client...")
        self.generation_client = generation_client or GenerationClient(
            api_url=settings.generation_api_url,
            model_name=settings.generation_model,
            api_key=settings.api_key,
            temperature=settings.temperature
        )

        self.assembler = assembler or PromptAssembler()

    def _log(self, message: str):
        """Print log message if verbose."""
        if self.verbose:
            print(message)

    def train(
        self,
        exclude_dirs: Iterable[str] = (),
        exclude_extensions: Iterable[str] = (),
        exclude_files: Iterable[str] = ()
    ) -> Dict[str, Any]:
        """
        Rebuild the index for the working root from scratch.

        The system exclusions (dependency folders, the vector store itself,
        lockfiles, images and audio) are always applied on top of the given
        ones.

        Returns:
            Statistics about the indexing run
        """
        self._log("=" * 60)
        self._log("📚 Starting training...")
        self._log("=" * 60)

        rules = ExclusionRules.create(exclude_dirs, exclude_extensions, exclude_files)
        indexer = RepositoryIndexer(
            chunker=DocumentChunker(
                chunk_size=self.settings.chunk_size,
                chunk_overlap=self.settings.chunk_overlap
            ),
            embedding_client=self.embedding_client,
            index_factory=lambda dim: FAISSVectorIndex(dim, verbose=self.verbose),
            verbose=self.verbose
        )
        indexer.build_index(
            self.settings.root,
            rules.with_system_defaults(),
            self.settings.index_location
        )

        self._log("=" * 60)
        self._log("✅ Training complete!")
        self._log("=" * 60)
        return indexer.last_stats

    def chat(self, language: Optional[str] = None) -> ChatSession:
        """
        Start a chat session on the saved index.

        Raises:
            IndexNotFound: train() has not been run for this root
            IndexIncompatible: The saved index cannot be used
        """
        session = ChatSession.open(
            self.settings.index_location,
            embedding_client=self.embedding_client,
            generator=self.generation_client,
            assembler=self.assembler,
            language=language,
            top_k=self.settings.top_k,
            embedding_dim=self.settings.embedding_dim,
            verbose=self.verbose
        )
        self._log(f"✅ Loaded vector store from {self.settings.index_location}")
        return session

    def get_stats(self) -> Dict[str, Any]:
        """Get system configuration."""
        return {
            "chunker_config": {
                "chunk_size": self.settings.chunk_size,
                "chunk_overlap": self.settings.chunk_overlap,
            },
            "top_k": self.settings.top_k,
            "index_location": str(self.settings.index_location),
            "index_exists": self.settings.index_location.is_dir(),
            "embedding_info": self.embedding_client.get_info(),
            "generation_info": self.generation_client.get_info(),
        }
