#!/usr/bin/env python
"""Ask a question about an indexed tender.

Usage:
    python scripts/ask.py road-2024 "What is the EMD amount?"
    python scripts/ask.py road-2024 "Who may bid?" --top-k 8 --degraded-ok
"""
import argparse
import asyncio
import sys
from pathlib import Path

from tender_rag import config
from tender_rag.errors import TenderRAGError
from tender_rag.logs import configure_logging
from tender_rag.service import build_service


async def main():
    parser = argparse.ArgumentParser(description="Ask a question about a tender")
    parser.add_argument("tender", help="Tender id")
    parser.add_argument("question", help="Question text")
    parser.add_argument("--top-k", type=int, default=None, help=f"Chunks to retrieve (default: {config.RETRIEVAL_TOP_K})")
    parser.add_argument("--tenders-dir", type=Path, default=None)
    parser.add_argument(
        "--degraded-ok",
        action="store_true",
        help="Print a degraded answer instead of failing when the chat backend is down",
    )
    args = parser.parse_args()

    configure_logging()

    try:
        service = build_service(tenders_dir=args.tenders_dir)
        answer = await service.ask_question(
            args.tender,
            args.question,
            k=args.top_k,
            allow_degraded=args.degraded_ok,
        )
    except TenderRAGError as e:
        print(f"\nError ({type(e).__name__}): {e}\n")
        sys.exit(1)

    print(f"\n{answer.text}\n")
    print(f"  mode: {answer.mode.value}, grounded chunks: {answer.grounded_chunk_count}\n")


if __name__ == "__main__":
    asyncio.run(main())
