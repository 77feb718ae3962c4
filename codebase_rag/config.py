"""
Configuration

Well-known constants and environment-driven settings.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import InvalidConfig, MissingCredential

VECTOR_STORE_NAME = "vectorStore"
# Saves are written here first, then swapped into place
STAGING_SUFFIX = ".tmp"

# Always excluded from training, unioned with whatever the user asks for
SYSTEM_EXCLUDE_DIRS = ("node_modules", VECTOR_STORE_NAME, VECTOR_STORE_NAME + STAGING_SUFFIX, ".git")
SYSTEM_EXCLUDE_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".ico", ".svg", ".webp",
    ".mp3", ".wav",
)
SYSTEM_EXCLUDE_FILES = ("package-lock.json",)

DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 1
DEFAULT_TOP_K = 1
DEFAULT_LANGUAGE = "English"
EXIT_COMMAND = "exit"

DEFAULT_API_BASE = "https://api.openai.com/v1"
DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
DEFAULT_CHAT_MODEL = "gpt-3.5-turbo"


@dataclass
class Settings:
    """
    Runtime settings for training and chat.

    Args:
        api_key: Credential for both the embedding and the completion endpoints
        embedding_api_url: Full URL of the embeddings endpoint
        embedding_model: Embedding model name
        embedding_dim: Expected embedding dimension; when unset the client's own is checked on index load
        generation_api_url: Full URL of the chat completions endpoint
        generation_model: Chat model name
        temperature: Sampling temperature (0 for reproducible answers)
        chunk_size: Maximum chunk length in characters
        chunk_overlap: Characters shared by consecutive chunks
        top_k: Chunks of context retrieved per question
        root: Working root that gets indexed and holds the vector store
        verbose: Print progress messages
    """

    api_key: str
    embedding_api_url: str = f"{DEFAULT_API_BASE}/embeddings"
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_dim: Optional[int] = None
    generation_api_url: str = f"{DEFAULT_API_BASE}/chat/completions"
    generation_model: str = DEFAULT_CHAT_MODEL
    temperature: float = 0.0
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    top_k: int = DEFAULT_TOP_K
    root: Path = Path(".")
    verbose: bool = True

    @property
    def index_location(self) -> Path:
        return Path(self.root) / VECTOR_STORE_NAME


def _int_setting(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidConfig(f"{name} must be an integer, got {raw!r}") from e


def load_settings(
    root: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    verbose: bool = True
) -> Settings:
    """
    Build settings from the environment.

    A `.env` file in the current directory is loaded first when `env` is not
    given explicitly.

    Raises:
        MissingCredential: OPENAI_API_KEY is absent or blank
        InvalidConfig: A numeric variable is malformed
    """
    if env is None:
        load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    api_key = env.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise MissingCredential("Please provide a valid API key (OPENAI_API_KEY).")

    api_base = env.get("OPENAI_API_BASE", "").strip().rstrip("/") or DEFAULT_API_BASE

    return Settings(
        api_key=api_key,
        embedding_api_url=f"{api_base}/embeddings",
        embedding_model=env.get("CODEBASE_RAG_EMBEDDING_MODEL", "").strip() or DEFAULT_EMBEDDING_MODEL,
        embedding_dim=_int_setting(env, "CODEBASE_RAG_EMBEDDING_DIM", None),
        generation_api_url=f"{api_base}/chat/completions",
        generation_model=env.get("CODEBASE_RAG_CHAT_MODEL", "").strip() or DEFAULT_CHAT_MODEL,
        chunk_size=_int_setting(env, "CODEBASE_RAG_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        chunk_overlap=_int_setting(env, "CODEBASE_RAG_CHUNK_OVERLAP", DEFAULT_CHUNK_OVERLAP),
        top_k=_int_setting(env, "CODEBASE_RAG_TOP_K", DEFAULT_TOP_K),
        root=Path(root) if root is not None else Path.cwd(),
        verbose=verbose,
    )
