"""Grounded answer synthesis over retrieved tender chunks."""
from enum import Enum
from typing import List
from pydantic import BaseModel, Field
import structlog

from tender_rag import config
from tender_rag.errors import InvalidInput
from tender_rag.llm_client import LLMClient
from tender_rag.rag.retriever import format_context
from tender_rag.rag.store import StoredChunk

logger = structlog.get_logger()

INSUFFICIENT_INFORMATION_ANSWER = (
    "I don't have enough information in this tender to answer that question."
)

DEGRADED_ANSWER = (
    "The answering service is temporarily unavailable. Please try again later."
)

SYSTEM_PROMPT = f"""You answer questions about a single government tender.

RULES:
- The CONTEXT below is your only source of truth. Do not use outside knowledge.
- Answer only with facts stated in the CONTEXT. Quote amounts, dates and names exactly.
- If the CONTEXT does not contain the answer, reply with exactly this sentence and nothing else:
{INSUFFICIENT_INFORMATION_ANSWER}
- Never guess."""


class AnswerMode(str, Enum):
    GROUNDED = "grounded"
    INSUFFICIENT_CONTEXT = "insufficient_context"
    DEGRADED = "degraded"


class Answer(BaseModel):
    """An answer and how it was produced."""

    text: str
    mode: AnswerMode
    grounded_chunk_count: int = Field(default=0, ge=0)

    @property
    def is_grounded(self) -> bool:
        return self.mode == AnswerMode.GROUNDED


def insufficient_answer() -> Answer:
    return Answer(
        text=INSUFFICIENT_INFORMATION_ANSWER,
        mode=AnswerMode.INSUFFICIENT_CONTEXT,
    )


def degraded_answer() -> Answer:
    return Answer(text=DEGRADED_ANSWER, mode=AnswerMode.DEGRADED)


class AnswerSynthesizer:
    """Calls the chat model with retrieved context as the only source of truth."""

    def __init__(
        self,
        client: LLMClient,
        model: str = None,
        temperature: float = None,
        max_tokens: int = None,
    ):
        self.client = client
        self.model = model or config.CHAT_MODEL
        self.temperature = config.CHAT_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or config.CHAT_MAX_TOKENS

    def build_messages(self, question: str, chunks: List[StoredChunk]) -> List[dict]:
        user_content = (
            f"CONTEXT:\n{format_context(chunks)}\n"
            f"QUESTION:\n{question}"
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ]

    async def answer(self, question: str, chunks: List[StoredChunk]) -> str:
        """Answer a question from retrieved chunks, returning only the text."""
        return (await self.synthesize(question, chunks)).text

    async def synthesize(self, question: str, chunks: List[StoredChunk]) -> Answer:
        """Answer a question from retrieved chunks.

        No chunks means no model call: the fixed insufficient-information
        answer is returned. Backend errors propagate unchanged.

        Raises:
            InvalidInput: If the question is empty
            ConfigurationError: If the chat backend has no credential
            UpstreamError: If the chat backend call fails
        """
        if not question or not question.strip():
            raise InvalidInput("Question cannot be empty")

        if not chunks:
            logger.info("answer_without_context")
            return insufficient_answer()

        text = await self.client.chat(
            self.build_messages(question, chunks),
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        text = text.strip()

        if not text or text == INSUFFICIENT_INFORMATION_ANSWER:
            logger.info("answer_declined", context_chunks=len(chunks), empty=not text)
            return insufficient_answer()

        logger.info(
            "answer_generated",
            context_chunks=len(chunks),
            answer_length=len(text),
        )

        return Answer(
            text=text,
            mode=AnswerMode.GROUNDED,
            grounded_chunk_count=len(chunks),
        )
