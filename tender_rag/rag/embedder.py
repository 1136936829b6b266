"""Embedding boundary: text in, fixed-dimension vector out.

No retries happen here; callers own any retry policy.
"""
from typing import List
import structlog

from tender_rag import config
from tender_rag.errors import DimensionMismatch, InvalidInput
from tender_rag.llm_client import LLMClient

logger = structlog.get_logger()


class Embedder:
    """Turns text into embedding vectors of a known dimensionality."""

    def __init__(
        self,
        client: LLMClient,
        model: str = None,
        dimension: int = None,
    ):
        """Initialize the embedder.

        Args:
            client: Embedding backend client
            model: Embedding model name (default from config)
            dimension: Expected vector length (default from config)
        """
        self.client = client
        self.model = model or config.EMBEDDING_MODEL
        self.dimension = dimension or config.EMBEDDING_DIMENSION

    async def embed(self, text: str) -> List[float]:
        """Embed a non-empty text.

        Raises:
            InvalidInput: If text is empty or whitespace-only
            ConfigurationError: If the backend has no credential
            UpstreamError: If the backend call fails
            DimensionMismatch: If the vector has the wrong length
        """
        if not text or not text.strip():
            raise InvalidInput("Cannot generate embedding for empty text")

        embedding = await self.client.embeddings(text, model=self.model)

        if len(embedding) != self.dimension:
            logger.error(
                "embedding_dimension_mismatch",
                model=self.model,
                expected=self.dimension,
                actual=len(embedding),
            )
            raise DimensionMismatch(self.dimension, len(embedding))

        return embedding
