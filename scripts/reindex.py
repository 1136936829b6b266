#!/usr/bin/env python
"""Index published tenders for question answering.

Usage:
    python scripts/reindex.py                      # Index every tender in the tenders directory
    python scripts/reindex.py --tender road-2024   # Index one tender
    python scripts/reindex.py --tenders-dir ./t    # Use another tenders directory
"""
import argparse
import asyncio
import sys
from pathlib import Path
from datetime import datetime

from tender_rag import config
from tender_rag.documents import MarkdownTenderSource
from tender_rag.errors import ConfigurationError, TenderRAGError
from tender_rag.logs import configure_logging
from tender_rag.service import build_service


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self):
        self.start_time = None

    def start(self, message: str):
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, document_id: str, outcome: str):
        print(f"  ({current}/{total}) {document_id[:40]:<40} {outcome}")

    def finish(self, stats: dict):
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()

        print(f"\n{'=' * 60}")
        print("  Indexing Complete")
        print(f"{'=' * 60}\n")
        print(f"  Tenders indexed:  {stats['tenders_indexed']}")
        print(f"  Tenders failed:   {stats['tenders_failed']}")
        print(f"  Chunks stored:    {stats['chunks_stored']}")
        print(f"  Time elapsed:     {elapsed_seconds:.1f}s")
        print(f"\n  Database at: {config.DB_PATH}\n")


async def main():
    """Main entry point for reindex script."""
    parser = argparse.ArgumentParser(
        description="Index published tenders for question answering",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--tender",
        action="append",
        dest="tenders",
        help="Tender id to index (repeatable; default: all tenders)",
    )
    parser.add_argument(
        "--tenders-dir",
        type=Path,
        default=None,
        help=f"Tenders directory (default: {config.TENDERS_DIR})",
    )
    args = parser.parse_args()

    configure_logging()

    source = MarkdownTenderSource(args.tenders_dir)
    progress = ProgressReporter()
    stats = {"tenders_indexed": 0, "tenders_failed": 0, "chunks_stored": 0}

    try:
        service = build_service(documents=source)
        document_ids = args.tenders or source.list_document_ids()

        print("\nConfiguration:")
        print(f"   Tenders directory: {source.tenders_dir}")
        print(f"   Embedding model:   {config.EMBEDDING_MODEL}")
        print(f"   Chunk tokens:      {config.MIN_TOKENS}-{config.MAX_TOKENS}")

        progress.start("Indexing Tenders")

        for idx, document_id in enumerate(document_ids, 1):
            try:
                report = await service.ingest_document(document_id)
            except TenderRAGError as e:
                stats["tenders_failed"] += 1
                progress.update(idx, len(document_ids), document_id, f"FAILED ({type(e).__name__}: {e})")
                continue

            stats["tenders_indexed"] += 1
            stats["chunks_stored"] += report.chunk_count
            progress.update(idx, len(document_ids), document_id, f"{report.chunk_count} chunks")

        progress.finish(stats)

        if stats["tenders_failed"] > 0:
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\nIndexing cancelled by user.\n")
        sys.exit(1)

    except ConfigurationError as e:
        print(f"\nError: {e}\n")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
