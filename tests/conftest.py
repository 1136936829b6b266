"""Shared fixtures: fake backends, a temporary content store and sample tenders."""
import pytest

from tender_rag.documents import InMemoryDocumentSource, TenderDocument, TenderSection
from tender_rag.llm_client import LLMClient
from tender_rag.rag.answer import AnswerSynthesizer
from tender_rag.rag.chunker import TextChunker
from tender_rag.rag.embedder import Embedder
from tender_rag.rag.store import ChunkStore
from tender_rag.service import TenderQAService
from tests.fakes import (
    DIMENSION,
    DRAFT_TENDER_ID,
    EMPTY_TENDER_ID,
    ROAD_TENDER_ID,
    FakeBackend,
    words,
)


@pytest.fixture
def embedding_backend():
    return FakeBackend()


@pytest.fixture
def chat_backend():
    return FakeBackend(chat_reply="The bid security amount is INR 50,000.")


@pytest.fixture
def embedder(embedding_backend):
    client = LLMClient(
        "https://embeddings.test/v1",
        "test-key",
        name="embedding",
        transport=embedding_backend.transport,
    )
    return Embedder(client, model="test-embedding", dimension=DIMENSION)


@pytest.fixture
def synthesizer(chat_backend):
    client = LLMClient(
        "https://chat.test/v1",
        "test-key",
        name="chat",
        transport=chat_backend.transport,
    )
    return AnswerSynthesizer(client, model="test-chat", temperature=0.0, max_tokens=256)


@pytest.fixture
def store(tmp_path):
    return ChunkStore(db_path=tmp_path / "chunks.sqlite", dimension=DIMENSION, timeout=5.0)


@pytest.fixture
def chunker():
    return TextChunker(min_tokens=300, max_tokens=500)


@pytest.fixture
def road_tender():
    return TenderDocument(
        id=ROAD_TENDER_ID,
        title="Road Maintenance Tender",
        description=(
            "Periodic maintenance and resurfacing of district roads. " + words(1150, "scope")
        ),
        status="published",
        sections=[
            TenderSection(
                id="eligibility",
                title="Eligibility",
                body="Bidders must have 3 years experience and valid registration.",
                order=1,
            ),
            TenderSection(
                id="bid-security",
                title="Bid Security",
                body="The bid security amount is INR 50,000 payable by demand draft.",
                order=2,
            ),
            TenderSection(
                id="timeline",
                title="Timeline",
                body="Work must be completed within nine months of the award letter.",
                order=3,
            ),
        ],
    )


@pytest.fixture
def documents(road_tender):
    return InMemoryDocumentSource(
        [
            road_tender,
            TenderDocument(
                id=DRAFT_TENDER_ID,
                title="Bridge Repair",
                description="Repair of the river bridge.",
                status="draft",
            ),
            TenderDocument(
                id=EMPTY_TENDER_ID,
                title="",
                description="   ",
                status="published",
            ),
        ]
    )


@pytest.fixture
def service(documents, store, embedder, synthesizer, chunker):
    return TenderQAService(
        documents=documents,
        store=store,
        embedder=embedder,
        synthesizer=synthesizer,
        chunker=chunker,
        top_k=3,
    )
