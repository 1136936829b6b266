"""Question-answering service over published tenders.

This is the surface offered to callers such as a tender chat feature:
ingest a tender when it is published, then ask questions about it.
"""
from pathlib import Path
from typing import Optional
import structlog

from tender_rag import llm_client
from tender_rag.documents import DocumentSource, MarkdownTenderSource
from tender_rag.errors import UpstreamError
from tender_rag.rag.answer import Answer, AnswerSynthesizer, degraded_answer
from tender_rag.rag.chunker import TextChunker
from tender_rag.rag.embedder import Embedder
from tender_rag.rag.ingest import IngestPipeline, IngestReport
from tender_rag.rag.retriever import Retriever
from tender_rag.rag.store import ChunkStore

logger = structlog.get_logger()


class TenderQAService:
    """Ingest tenders and answer questions grounded in them."""

    def __init__(
        self,
        documents: DocumentSource,
        store: ChunkStore,
        embedder: Embedder,
        synthesizer: AnswerSynthesizer,
        chunker: TextChunker = None,
        top_k: int = None,
    ):
        self.store = store
        self.pipeline = IngestPipeline(documents, embedder, store, chunker=chunker)
        self.retriever = Retriever(documents, embedder, store, top_k=top_k)
        self.synthesizer = synthesizer

    async def ingest_document(self, document_id: str) -> IngestReport:
        """Index (or re-index) a published tender."""
        return await self.pipeline.ingest(document_id)

    async def ask_question(
        self,
        document_id: str,
        question: str,
        k: Optional[int] = None,
        allow_degraded: bool = False,
    ) -> Answer:
        """Answer a question about one tender.

        Args:
            document_id: Tender the question is about
            question: User question
            k: Number of chunks to retrieve (default from config)
            allow_degraded: Turn a chat backend failure into a typed
                degraded answer instead of raising

        Returns:
            Answer whose grounded_chunk_count is the number of chunks the
            model was given (0 unless the answer is grounded)
        """
        chunks = await self.retriever.retrieve(document_id, question, k=k)

        try:
            answer = await self.synthesizer.synthesize(question, chunks)
        except UpstreamError as e:
            if not allow_degraded:
                raise
            logger.warning(
                "answer_degraded",
                document_id=document_id,
                error=str(e),
                status_code=e.status_code,
            )
            return degraded_answer()

        logger.info(
            "question_answered",
            document_id=document_id,
            mode=answer.mode.value,
            grounded_chunk_count=answer.grounded_chunk_count,
        )
        return answer


def build_service(
    tenders_dir: Path = None,
    db_path: Path = None,
    documents: DocumentSource = None,
) -> TenderQAService:
    """Wire the default collaborators from configuration."""
    store = ChunkStore(db_path=db_path)
    return TenderQAService(
        documents=documents or MarkdownTenderSource(tenders_dir),
        store=store,
        embedder=Embedder(llm_client.embedding_client(), dimension=store.dimension),
        synthesizer=AnswerSynthesizer(llm_client.chat_client()),
    )
