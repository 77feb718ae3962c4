"""
Error Taxonomy

Every failure the pipeline reports deliberately is one of these.
"""

from typing import Optional


class CodebaseRAGError(Exception):
    """Base class for all codebase_rag errors."""


class InvalidConfig(CodebaseRAGError):
    """Bad chunking parameters or malformed settings."""


class MissingCredential(InvalidConfig):
    """No usable API key was configured."""


class EmbeddingUnavailable(CodebaseRAGError):
    """The embedding service call failed or returned something unusable."""


class GenerationUnavailable(CodebaseRAGError):
    """The completion service call failed or returned something unusable."""


class IndexBuildFailed(CodebaseRAGError):
    """A source file could not be read while building the index."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class IndexIncompatible(CodebaseRAGError):
    """A persisted index is corrupt or does not match the expected dimension/metric."""


class IndexNotFound(CodebaseRAGError):
    """Chat was requested before any index was built."""

    def __init__(self, location: str):
        super().__init__(
            f"No index found at {location}. You need to run the training first before continuing."
        )
        self.location = location
