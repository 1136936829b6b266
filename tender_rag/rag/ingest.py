"""Ingest pipeline for indexing a published tender.

Orchestrates:
- Precondition checks (tender exists and is published)
- Tender chunking
- Embedding generation (bounded concurrent fan-out)
- Atomic replacement of the tender's chunk set
"""
import time
from typing import List
from dataclasses import dataclass
import asyncio
import structlog

from tender_rag import config
from tender_rag.documents import DocumentSource, require_published
from tender_rag.errors import NoContent
from tender_rag.rag.chunker import TextChunker
from tender_rag.rag.embedder import Embedder
from tender_rag.rag.store import ChunkRecord, ChunkStore

logger = structlog.get_logger()


@dataclass
class IngestReport:
    """Outcome of one successful ingestion."""

    document_id: str
    chunk_count: int
    section_count: int
    dimension: int
    elapsed_seconds: float


class IngestPipeline:
    """Pipeline for indexing tenders into the content store."""

    def __init__(
        self,
        documents: DocumentSource,
        embedder: Embedder,
        store: ChunkStore,
        chunker: TextChunker = None,
        concurrency: int = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            documents: Source of tenders
            embedder: Embedding boundary
            store: Content store receiving the chunk set
            chunker: Text chunker (default bounds from config)
            concurrency: Maximum embedding calls in flight (default from config)
        """
        self.documents = documents
        self.embedder = embedder
        self.store = store
        self.chunker = chunker or TextChunker()
        self.concurrency = max(1, concurrency or config.EMBEDDING_CONCURRENCY)

    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Embed texts concurrently, preserving input order.

        The first failure cancels every outstanding call and is re-raised.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def embed_one(text: str) -> List[float]:
            async with semaphore:
                return await self.embedder.embed(text)

        tasks = [asyncio.ensure_future(embed_one(text)) for text in texts]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def ingest(self, document_id: str) -> IngestReport:
        """Index a published tender, replacing any previous index for it.

        Embedding finishes before the store is touched, so no storage
        transaction is held across network calls and a failed run leaves the
        previous index authoritative.

        Raises:
            NotFound: If the tender does not exist
            InvalidState: If the tender is not published
            NoContent: If the tender has no text to index
            ConfigurationError, UpstreamError, DimensionMismatch: From embedding
            StorageError: If the replacement fails
        """
        started = time.monotonic()
        logger.info("ingest_started", document_id=document_id)

        document = await require_published(self.documents, document_id)

        chunks = self.chunker.chunk_document(document)
        if not chunks:
            logger.warning("no_chunks_created", document_id=document_id)
            raise NoContent(f"Tender {document_id} has no text to index")

        try:
            vectors = await self.generate_embeddings([chunk.content for chunk in chunks])
        except Exception as e:
            logger.error(
                "ingest_embedding_failed",
                document_id=document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        records = [
            ChunkRecord(
                sub_section_id=chunk.sub_section_id,
                content=chunk.content,
                chunk_index=chunk.chunk_index,
                vector=vector,
            )
            for chunk, vector in zip(chunks, vectors)
        ]

        await self.store.replace_chunks(
            document_id,
            records,
            run_metadata={
                "embedding_model": self.embedder.model,
                "min_tokens": self.chunker.min_tokens,
                "max_tokens": self.chunker.max_tokens,
            },
        )

        report = IngestReport(
            document_id=document_id,
            chunk_count=len(records),
            section_count=len(document.sections),
            dimension=self.embedder.dimension,
            elapsed_seconds=time.monotonic() - started,
        )

        logger.info(
            "ingest_completed",
            document_id=document_id,
            chunk_count=report.chunk_count,
            elapsed_seconds=round(report.elapsed_seconds, 3),
        )

        return report
