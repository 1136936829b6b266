"""Error taxonomy for the tender RAG pipeline."""
from typing import Optional


class TenderRAGError(Exception):
    """Base class for all pipeline errors."""

    pass


class NotFound(TenderRAGError):
    """The requested tender does not exist."""

    pass


class InvalidState(TenderRAGError):
    """The tender is not in a state that permits indexing or questions."""

    pass


class NoContent(TenderRAGError):
    """The tender produced no text to index."""

    pass


class InvalidInput(TenderRAGError):
    """Empty question, empty text to embed, or an unusable parameter."""

    pass


class ConfigurationError(TenderRAGError):
    """A backend is not configured (e.g. missing credential)."""

    pass


class UpstreamError(TenderRAGError):
    """An embedding or chat backend call did not succeed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DimensionMismatch(TenderRAGError):
    """An embedding vector does not have the expected dimensionality."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class StorageError(TenderRAGError):
    """The content store failed or timed out."""

    pass
