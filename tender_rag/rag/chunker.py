"""Token-windowed text chunking for the RAG pipeline.

Tokens are whitespace-delimited words, so chunk boundaries never depend on a
model tokenizer and re-chunking unchanged text is deterministic.
"""
from typing import List, Optional
from dataclasses import dataclass
import structlog

from tender_rag import config
from tender_rag.documents import TenderDocument

logger = structlog.get_logger()


@dataclass
class TextChunk:
    """A chunk of tender text with its owning section."""

    sub_section_id: Optional[str]
    content: str
    chunk_index: int

    @property
    def token_count(self) -> int:
        return len(self.content.split())


class TextChunker:
    """Whitespace-token chunker with remainder merge-back."""

    def __init__(
        self,
        min_tokens: int = None,
        max_tokens: int = None,
    ):
        """Initialize the text chunker.

        Args:
            min_tokens: Smallest trailing chunk kept on its own (default from config)
            max_tokens: Size at which a chunk is emitted (default from config)
        """
        self.min_tokens = config.MIN_TOKENS if min_tokens is None else min_tokens
        self.max_tokens = config.MAX_TOKENS if max_tokens is None else max_tokens

        if self.min_tokens < 1 or self.min_tokens > self.max_tokens:
            raise ValueError(
                f"Invalid chunk bounds: min_tokens ({self.min_tokens}) must be "
                f"between 1 and max_tokens ({self.max_tokens})"
            )

    def chunk_text(self, text: str) -> List[str]:
        """Split text into chunks of min_tokens..max_tokens words.

        A trailing remainder shorter than min_tokens is folded into the
        previous chunk. The only chunk of a short text is kept as-is.

        Args:
            text: Text to chunk

        Returns:
            List of chunk strings (tokens joined by single spaces)
        """
        if not text or not text.strip():
            return []

        chunks: List[List[str]] = []
        buffer: List[str] = []

        for token in text.split():
            buffer.append(token)
            if len(buffer) >= self.max_tokens:
                chunks.append(buffer)
                buffer = []

        if buffer:
            if len(buffer) < self.min_tokens and chunks:
                chunks[-1] = chunks[-1] + buffer
            else:
                chunks.append(buffer)

        return [" ".join(tokens) for tokens in chunks]

    def chunk_document(self, document: TenderDocument) -> List[TextChunk]:
        """Chunk a tender: overview chunks first, then each section in order.

        Args:
            document: Tender to chunk

        Returns:
            List of TextChunk objects with sequential chunk_index
        """
        sources = [(None, f"{document.title or ''}\n\n{document.description or ''}")]
        for section in document.ordered_sections():
            sources.append((section.id, f"{section.title or ''}\n\n{section.body or ''}"))

        chunks: List[TextChunk] = []
        for sub_section_id, text in sources:
            for content in self.chunk_text(text.strip()):
                chunks.append(
                    TextChunk(
                        sub_section_id=sub_section_id,
                        content=content,
                        chunk_index=len(chunks),
                    )
                )

        logger.info(
            "tender_chunked",
            document_id=document.id,
            section_count=len(document.sections),
            **self.get_chunk_stats(chunks),
        )

        return chunks

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Get token statistics about a set of chunks."""
        if not chunks:
            return {
                "chunk_count": 0,
                "total_tokens": 0,
                "avg_chunk_tokens": 0,
                "min_chunk_tokens": 0,
                "max_chunk_tokens": 0,
            }

        sizes = [c.token_count for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_tokens": sum(sizes),
            "avg_chunk_tokens": sum(sizes) // len(chunks),
            "min_chunk_tokens": min(sizes),
            "max_chunk_tokens": max(sizes),
        }
