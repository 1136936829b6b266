"""Tender documents consumed by the RAG pipeline.

Handles:
- The read-only tender model (title, description, status, sections)
- The DocumentSource boundary to the document-management collaborator
- Loading tenders from markdown files with YAML frontmatter
- The "published only" precondition shared by ingestion and retrieval
"""
import asyncio
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Any
from dataclasses import dataclass, field
import yaml
import structlog

from tender_rag import config
from tender_rag.errors import ConfigurationError, InvalidState, NotFound

logger = structlog.get_logger()

PUBLISHED_STATUS = "published"


@dataclass
class TenderSection:
    """A titled sub-section of a tender."""

    id: str
    title: str
    body: str
    order: int = 0


@dataclass
class TenderDocument:
    """A tender as provided by the document-management collaborator."""

    id: str
    title: str
    description: str
    status: str
    sections: List[TenderSection] = field(default_factory=list)

    @property
    def is_published(self) -> bool:
        return (self.status or "").strip().lower() == PUBLISHED_STATUS

    def ordered_sections(self) -> List[TenderSection]:
        """Sections by ascending order; ties keep their source position."""
        return sorted(self.sections, key=lambda s: s.order)


class DocumentSource(Protocol):
    """Read-only access to tenders."""

    async def get_document(self, document_id: str) -> Optional[TenderDocument]:
        ...


class InMemoryDocumentSource:
    """Dictionary-backed document source."""

    def __init__(self, documents: Iterable[TenderDocument] = ()):
        self._documents: Dict[str, TenderDocument] = {doc.id: doc for doc in documents}

    def put(self, document: TenderDocument) -> None:
        self._documents[document.id] = document

    async def get_document(self, document_id: str) -> Optional[TenderDocument]:
        return self._documents.get(document_id)


class MarkdownTenderSource:
    """Loads tenders from markdown files.

    File layout::

        ---
        id: road-maintenance-2024
        status: published
        ---
        # Road Maintenance Tender

        Description paragraphs...

        ## Eligibility {#eligibility}

        Section body...

    The first ``#`` heading is the title, text before the first ``##`` heading
    is the description, and each ``##`` heading opens a section. A section id
    comes from a trailing ``{#id}`` or, failing that, a slug of the heading.
    """

    # Regex for YAML frontmatter (must be at start of file)
    FRONTMATTER_PATTERN = re.compile(
        r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL | re.MULTILINE
    )

    TITLE_PATTERN = re.compile(r"^#\s+(.+?)\s*$", re.MULTILINE)
    SECTION_PATTERN = re.compile(r"^##\s+(.+?)\s*$", re.MULTILINE)
    SECTION_ID_PATTERN = re.compile(r"\s*\{#([\w-]+)\}$")

    def __init__(self, tenders_dir: Path = None):
        """Initialize the source.

        Args:
            tenders_dir: Directory containing tender markdown files (default from config)
        """
        self.tenders_dir = Path(tenders_dir or config.TENDERS_DIR)
        self._paths: Dict[str, Path] = {}

    def _files(self) -> List[Path]:
        if not self.tenders_dir.is_dir():
            logger.error("tenders_dir_missing", tenders_dir=str(self.tenders_dir))
            raise ConfigurationError(f"Tenders directory not found: {self.tenders_dir}")
        return sorted(self.tenders_dir.rglob("*.md"))

    def _scan(self) -> Dict[str, Path]:
        """Map tender ids to files; the first file claiming an id wins."""
        paths: Dict[str, Path] = {}
        for path in self._files():
            paths.setdefault(self.parse_file(path).id, path)
        self._paths = paths
        return paths

    def list_document_ids(self) -> List[str]:
        """List the ids of every tender in the directory.

        Raises:
            ConfigurationError: If the tenders directory does not exist
        """
        return list(self._scan())

    async def get_document(self, document_id: str) -> Optional[TenderDocument]:
        return await asyncio.to_thread(self._load, document_id)

    def _load(self, document_id: str) -> Optional[TenderDocument]:
        path = self._paths.get(document_id)
        if path is not None and path.exists():
            document = self.parse_file(path)
            if document.id == document_id:
                return document

        # Unknown or moved: rescan the directory once
        path = self._scan().get(document_id)
        return self.parse_file(path) if path is not None else None

    def parse_file(self, file_path: Path) -> TenderDocument:
        """Parse a tender markdown file.

        Raises:
            FileNotFoundError: If file doesn't exist
            UnicodeDecodeError: If file encoding is invalid
        """
        if not file_path.exists():
            raise FileNotFoundError(f"Tender file not found: {file_path}")

        try:
            content = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.error("tender_encoding_error", path=str(file_path), error=str(e))
            raise

        frontmatter, text = self._parse_frontmatter(content)
        document = self.parse_text(
            text,
            document_id=str(frontmatter.get("id") or file_path.stem),
            status=str(frontmatter.get("status") or "draft"),
        )

        logger.debug(
            "tender_parsed",
            path=str(file_path),
            document_id=document.id,
            status=document.status,
            section_count=len(document.sections),
        )

        return document

    def parse_text(self, text: str, document_id: str, status: str) -> TenderDocument:
        """Split markdown (without frontmatter) into title, description and sections."""
        section_matches = list(self.SECTION_PATTERN.finditer(text))
        head_end = section_matches[0].start() if section_matches else len(text)
        head = text[:head_end]

        title = ""
        title_match = self.TITLE_PATTERN.search(head)
        if title_match:
            title = title_match.group(1).strip()
            description = head[title_match.end():]
        else:
            description = head

        sections = []
        seen_ids: Dict[str, int] = {}
        for position, match in enumerate(section_matches):
            body_end = (
                section_matches[position + 1].start()
                if position + 1 < len(section_matches)
                else len(text)
            )
            heading, section_id = self._split_section_id(match.group(1))

            # Keep ids unique within a tender
            if section_id in seen_ids:
                seen_ids[section_id] += 1
                section_id = f"{section_id}-{seen_ids[section_id]}"
            else:
                seen_ids[section_id] = 1

            sections.append(
                TenderSection(
                    id=section_id,
                    title=heading,
                    body=text[match.end():body_end].strip(),
                    order=position,
                )
            )

        return TenderDocument(
            id=document_id,
            title=title,
            description=description.strip(),
            status=status,
            sections=sections,
        )

    def _split_section_id(self, heading: str) -> Tuple[str, str]:
        match = self.SECTION_ID_PATTERN.search(heading)
        if match:
            return heading[: match.start()].strip(), match.group(1)
        return heading.strip(), slugify(heading)

    def _parse_frontmatter(self, content: str) -> Tuple[Dict[str, Any], str]:
        """Extract YAML frontmatter from markdown content.

        Returns:
            Tuple of (frontmatter_dict, content_without_frontmatter)
        """
        match = self.FRONTMATTER_PATTERN.match(content)

        if not match:
            return {}, content

        yaml_content = match.group(1)
        try:
            frontmatter = yaml.safe_load(yaml_content)
            if not isinstance(frontmatter, dict):
                frontmatter = {}
        except yaml.YAMLError as e:
            logger.warning(
                "frontmatter_parse_error",
                error=str(e),
                yaml_preview=yaml_content[:100],
            )
            frontmatter = {}

        return frontmatter, content[match.end():]


def slugify(text: str) -> str:
    """Lowercase, hyphen-separated identifier for a heading."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "section"


async def require_published(source: DocumentSource, document_id: str) -> TenderDocument:
    """Load a tender and check it may be indexed or queried.

    Raises:
        NotFound: If the tender does not exist
        InvalidState: If the tender is not published
    """
    document = await source.get_document(document_id)

    if document is None:
        logger.warning("tender_not_found", document_id=document_id)
        raise NotFound(f"Tender not found: {document_id}")

    if not document.is_published:
        logger.warning(
            "tender_not_published",
            document_id=document_id,
            status=document.status,
        )
        raise InvalidState(
            f"Tender {document_id} is '{document.status}', only published tenders can be used"
        )

    return document
