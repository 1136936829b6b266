"""Tests for the ingestion pipeline."""
import asyncio

import httpx
import pytest

from tender_rag.errors import InvalidState, NoContent, NotFound, UpstreamError
from tender_rag.rag.ingest import IngestPipeline
from tests.fakes import DIMENSION, DRAFT_TENDER_ID, EMPTY_TENDER_ID, ROAD_TENDER_ID, bag_of_words


@pytest.fixture
def pipeline(documents, embedder, store, chunker):
    return IngestPipeline(documents, embedder, store, chunker=chunker, concurrency=2)


class CountingEmbedder:
    """Embedder stand-in that tracks how many calls are in flight."""

    model = "counting"
    dimension = DIMENSION

    def __init__(self):
        self.in_flight = 0
        self.peak = 0

    async def embed(self, text):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return bag_of_words(text)


@pytest.mark.asyncio
async def test_ingest_stores_ordered_chunks(pipeline, store, embedding_backend):
    report = await pipeline.ingest(ROAD_TENDER_ID)

    chunks = await store.list_chunks(ROAD_TENDER_ID)
    assert report.chunk_count == len(chunks) == 5
    assert report.section_count == 3
    assert report.dimension == DIMENSION
    assert [c.sub_section_id for c in chunks] == [
        None,
        None,
        "eligibility",
        "bid-security",
        "timeline",
    ]
    assert chunks[2].content == (
        "Eligibility Bidders must have 3 years experience and valid registration."
    )
    assert len(embedding_backend.calls("/embeddings")) == 5

    run = await store.latest_run(ROAD_TENDER_ID)
    assert run["embedding_model"] == "test-embedding"
    assert (run["min_tokens"], run["max_tokens"]) == (300, 500)


@pytest.mark.asyncio
async def test_reingest_unchanged_document_is_identical(pipeline, store):
    await pipeline.ingest(ROAD_TENDER_ID)
    first = [c.content for c in await store.list_chunks(ROAD_TENDER_ID)]

    await pipeline.ingest(ROAD_TENDER_ID)
    second = [c.content for c in await store.list_chunks(ROAD_TENDER_ID)]

    assert first == second
    assert await store.count_chunks(ROAD_TENDER_ID) == 5


@pytest.mark.asyncio
async def test_missing_document_is_not_found(pipeline, embedding_backend):
    with pytest.raises(NotFound):
        await pipeline.ingest("no-such-tender")

    assert embedding_backend.requests == []


@pytest.mark.asyncio
async def test_unpublished_document_is_invalid_state(pipeline, embedding_backend):
    with pytest.raises(InvalidState):
        await pipeline.ingest(DRAFT_TENDER_ID)

    assert embedding_backend.requests == []


@pytest.mark.asyncio
async def test_document_without_text_is_no_content(pipeline, store):
    with pytest.raises(NoContent):
        await pipeline.ingest(EMPTY_TENDER_ID)

    assert await store.latest_run(EMPTY_TENDER_ID) is None


@pytest.mark.asyncio
async def test_embedding_failure_keeps_previous_index(pipeline, store, embedding_backend):
    await pipeline.ingest(ROAD_TENDER_ID)
    before = [c.content for c in await store.list_chunks(ROAD_TENDER_ID)]

    def fail_on_bid_security(request, payload):
        if "Bid Security" in payload["input"]:
            return httpx.Response(503, text="unavailable")
        return httpx.Response(200, json={"data": [{"embedding": bag_of_words(payload["input"])}]})

    embedding_backend.fail_with = fail_on_bid_security

    with pytest.raises(UpstreamError):
        await pipeline.ingest(ROAD_TENDER_ID)

    assert [c.content for c in await store.list_chunks(ROAD_TENDER_ID)] == before


@pytest.mark.asyncio
async def test_embedding_fan_out_is_bounded(documents, store, chunker):
    embedder = CountingEmbedder()
    pipeline = IngestPipeline(documents, embedder, store, chunker=chunker, concurrency=2)

    report = await pipeline.ingest(ROAD_TENDER_ID)

    assert report.chunk_count == 5
    assert embedder.peak == 2


@pytest.mark.asyncio
async def test_generate_embeddings_preserves_order(documents, store, chunker):
    pipeline = IngestPipeline(documents, CountingEmbedder(), store, chunker=chunker, concurrency=3)
    texts = ["alpha", "beta gamma", "delta"]

    vectors = await pipeline.generate_embeddings(texts)

    assert vectors == [bag_of_words(t) for t in texts]
