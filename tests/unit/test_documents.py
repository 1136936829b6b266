"""Tests for tender loading and the published-only precondition."""
import textwrap

import pytest

from tender_rag.documents import (
    InMemoryDocumentSource,
    MarkdownTenderSource,
    TenderDocument,
    require_published,
    slugify,
)
from tender_rag.errors import ConfigurationError, InvalidState, NotFound
from tender_rag.rag.ingest import IngestPipeline

ROAD_MARKDOWN = textwrap.dedent(
    """\
    ---
    id: road-2024
    status: Published
    ---
    # Road Maintenance Tender

    Periodic maintenance of district roads.

    ## Eligibility {#elig}

    Bidders must have 3 years experience and valid registration.

    ## Bid Security

    The bid security amount is INR 50,000.

    ## Bid Security

    Refunded after award.
    """
)


@pytest.fixture
def tenders_dir(tmp_path):
    (tmp_path / "road.md").write_text(ROAD_MARKDOWN, encoding="utf-8")
    (tmp_path / "bridge-draft.md").write_text("# Bridge Repair\n\nDraft text.\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def source(tenders_dir):
    return MarkdownTenderSource(tenders_dir)


@pytest.mark.asyncio
async def test_markdown_tender_is_parsed(source):
    document = await source.get_document("road-2024")

    assert document.title == "Road Maintenance Tender"
    assert document.description == "Periodic maintenance of district roads."
    assert document.is_published
    assert [(s.id, s.title, s.order) for s in document.sections] == [
        ("elig", "Eligibility", 0),
        ("bid-security", "Bid Security", 1),
        ("bid-security-2", "Bid Security", 2),
    ]
    assert document.sections[0].body == (
        "Bidders must have 3 years experience and valid registration."
    )


@pytest.mark.asyncio
async def test_file_without_frontmatter_uses_stem_and_draft_status(source):
    document = await source.get_document("bridge-draft")

    assert document.title == "Bridge Repair"
    assert document.status == "draft"
    assert document.sections == []


@pytest.mark.asyncio
async def test_unknown_tender_is_none(source):
    assert await source.get_document("nope") is None


def test_list_document_ids(source):
    assert sorted(source.list_document_ids()) == ["bridge-draft", "road-2024"]


def test_missing_directory_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="Tenders directory not found"):
        MarkdownTenderSource(tmp_path / "absent").list_document_ids()


@pytest.mark.asyncio
async def test_ingest_from_missing_directory_is_configuration_error(
    tmp_path, embedder, store, chunker, embedding_backend
):
    pipeline = IngestPipeline(
        MarkdownTenderSource(tmp_path / "absent"), embedder, store, chunker=chunker
    )

    with pytest.raises(ConfigurationError):
        await pipeline.ingest("road-2024")

    assert embedding_backend.requests == []


@pytest.mark.asyncio
async def test_new_and_moved_files_are_found(source, tenders_dir):
    assert await source.get_document("late-tender") is None

    (tenders_dir / "late.md").write_text(
        "---\nid: late-tender\nstatus: published\n---\n# Late Tender\n", encoding="utf-8"
    )
    (tenders_dir / "road.md").rename(tenders_dir / "road-final.md")

    assert (await source.get_document("late-tender")).title == "Late Tender"
    assert (await source.get_document("road-2024")).title == "Road Maintenance Tender"


@pytest.mark.asyncio
async def test_changed_id_is_not_served_from_stale_path(source, tenders_dir):
    assert await source.get_document("road-2024") is not None

    road = tenders_dir / "road.md"
    road.write_text(road.read_text(encoding="utf-8").replace("road-2024", "road-2025"), encoding="utf-8")

    assert await source.get_document("road-2024") is None
    assert (await source.get_document("road-2025")).id == "road-2025"


def test_slugify():
    assert slugify("Scope of Work (Phase 1)") == "scope-of-work-phase-1"
    assert slugify("***") == "section"


@pytest.mark.asyncio
async def test_require_published():
    published = TenderDocument(id="a", title="A", description="", status=" published ")
    draft = TenderDocument(id="b", title="B", description="", status="closed")
    source = InMemoryDocumentSource([published, draft])

    assert await require_published(source, "a") is published
    with pytest.raises(InvalidState):
        await require_published(source, "b")
    with pytest.raises(NotFound):
        await require_published(source, "c")
