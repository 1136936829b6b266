"""Retriever for semantic search within one tender.

Handles:
- Precondition checks mirroring ingestion
- Question embedding
- Exact similarity search scoped to the tender
- Context formatting for the answer prompt
"""
from typing import List, Optional
import structlog

from tender_rag import config
from tender_rag.documents import DocumentSource, require_published
from tender_rag.errors import InvalidInput
from tender_rag.rag.embedder import Embedder
from tender_rag.rag.store import ChunkStore, StoredChunk

logger = structlog.get_logger()


class Retriever:
    """Semantic retriever for tender questions."""

    def __init__(
        self,
        documents: DocumentSource,
        embedder: Embedder,
        store: ChunkStore,
        top_k: int = None,
    ):
        """Initialize the retriever.

        Args:
            documents: Source of tenders
            embedder: Embedding boundary
            store: Content store to search
            top_k: Default number of results (default from config)
        """
        self.documents = documents
        self.embedder = embedder
        self.store = store
        self.top_k = top_k or config.RETRIEVAL_TOP_K

    async def retrieve(
        self,
        document_id: str,
        question: str,
        k: Optional[int] = None,
    ) -> List[StoredChunk]:
        """Retrieve a tender's chunks most relevant to a question.

        Args:
            document_id: Tender to search
            question: User question
            k: Number of results (overrides default)

        Returns:
            Chunks by ascending distance; empty if the tender has no index

        Raises:
            InvalidInput: If the question is empty or k < 1
            NotFound, InvalidState: If the tender is missing or unpublished
            ConfigurationError, UpstreamError, DimensionMismatch: From embedding
            StorageError: If the similarity query fails
        """
        if not question or not question.strip():
            logger.warning("empty_question_provided", document_id=document_id)
            raise InvalidInput("Question cannot be empty")

        if k is None:
            k = self.top_k
        if k < 1:
            raise InvalidInput(f"k must be at least 1, got {k}")

        await require_published(self.documents, document_id)

        logger.info(
            "retrieval_started",
            document_id=document_id,
            question_length=len(question),
            top_k=k,
        )

        query_vector = await self.embedder.embed(question)
        results = await self.store.query_nearest(document_id, query_vector, k)

        logger.info(
            "retrieval_completed",
            document_id=document_id,
            results_returned=len(results),
            top_distance=results[0].distance if results else None,
        )

        return results


def format_context(chunks: List[StoredChunk]) -> str:
    """Format retrieved chunks as a numbered context block."""
    parts = [
        f"[Source {i}: {chunk.source}]\n{chunk.content.strip()}\n"
        for i, chunk in enumerate(chunks, 1)
    ]
    return "\n".join(parts)
