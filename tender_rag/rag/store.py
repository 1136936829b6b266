"""Content store: tender chunks with embeddings, searched per tender.

Handles:
- Atomic replacement of a tender's whole chunk set
- Exact cosine-distance search over one tender's chunks (FAISS flat index)
- Index run bookkeeping
"""
import asyncio
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Dict, Any, Sequence
from dataclasses import dataclass
import numpy as np
import faiss
import structlog

from tender_rag import config, db
from tender_rag.errors import DimensionMismatch, InvalidInput, StorageError

logger = structlog.get_logger()


@dataclass
class ChunkRecord:
    """A chunk ready to be stored."""

    sub_section_id: Optional[str]
    content: str
    chunk_index: int
    vector: Sequence[float]


@dataclass
class StoredChunk:
    """A chunk read back from the store."""

    id: int
    document_id: str
    sub_section_id: Optional[str]
    chunk_index: int
    content: str
    distance: Optional[float] = None

    @property
    def source(self) -> str:
        return self.sub_section_id or "overview"

    @property
    def relevance_score(self) -> float:
        """Map cosine distance (0..2) onto a 0-1 relevance score."""
        if self.distance is None:
            return 0.0
        return max(0.0, min(1.0, 1.0 - self.distance / 2.0))


class ChunkStore:
    """SQLite-backed chunk store with exact per-tender similarity search."""

    def __init__(
        self,
        db_path: Path = None,
        dimension: int = None,
        timeout: float = None,
    ):
        """Initialize the store and create the schema if needed.

        Args:
            db_path: SQLite database file (default from config)
            dimension: Embedding dimension every vector must have (default from config)
            timeout: Query timeout and write-lock wait in seconds (default from config)
        """
        self.db_path = Path(db_path or config.DB_PATH)
        self.dimension = dimension or config.EMBEDDING_DIMENSION
        self.timeout = timeout or config.STORE_TIMEOUT

        db.init_database(self.db_path)

        logger.info(
            "chunk_store_initialized",
            db_path=str(self.db_path),
            dimension=self.dimension,
        )

    def _connect(self) -> sqlite3.Connection:
        return db.get_connection(self.db_path, timeout=self.timeout)

    def _check_dimension(self, vector: Sequence[float]) -> None:
        if len(vector) != self.dimension:
            raise DimensionMismatch(self.dimension, len(vector))

    def _encode_row(self, document_id: str, record: ChunkRecord) -> tuple:
        return (
            document_id,
            record.sub_section_id,
            record.chunk_index,
            record.content,
            np.asarray(record.vector, dtype=np.float32).tobytes(),
        )

    async def replace_chunks(
        self,
        document_id: str,
        records: List[ChunkRecord],
        run_metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Atomically swap a tender's chunk set for a new one.

        Delete, insert and run bookkeeping happen in one transaction; on any
        failure the previous set stays in place.

        Args:
            document_id: Tender whose chunks are replaced
            records: Complete new chunk set
            run_metadata: Optional embedding_model/min_tokens/max_tokens for index_runs

        Returns:
            Number of chunks stored

        Raises:
            DimensionMismatch: If any vector has the wrong length (nothing written)
            StorageError: If the transaction fails (nothing written)
        """
        for record in records:
            self._check_dimension(record.vector)

        return await asyncio.to_thread(
            self._replace_sync, document_id, records, run_metadata or {}
        )

    def _replace_sync(
        self,
        document_id: str,
        records: List[ChunkRecord],
        run_metadata: Dict[str, Any],
    ) -> int:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            deleted = conn.execute(
                "DELETE FROM chunks WHERE document_id = ?", (document_id,)
            ).rowcount
            conn.executemany(
                """
                INSERT INTO chunks (
                    document_id, sub_section_id, chunk_index, content, embedding
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (self._encode_row(document_id, record) for record in records),
            )
            conn.execute(
                """
                INSERT INTO index_runs (
                    document_id, indexed_at, embedding_model, embedding_dimension,
                    min_tokens, max_tokens, chunk_count
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    document_id,
                    datetime.now(timezone.utc).isoformat(),
                    run_metadata.get("embedding_model"),
                    self.dimension,
                    run_metadata.get("min_tokens"),
                    run_metadata.get("max_tokens"),
                    len(records),
                ),
            )
            conn.commit()

        except Exception as e:
            conn.rollback()
            logger.error(
                "chunk_replace_failed",
                document_id=document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageError(f"Failed to replace chunks for {document_id}: {e}") from e
        finally:
            conn.close()

        logger.info(
            "chunks_replaced",
            document_id=document_id,
            deleted=deleted,
            inserted=len(records),
        )
        return len(records)

    async def query_nearest(
        self, document_id: str, query_vector: Sequence[float], k: int = None
    ) -> List[StoredChunk]:
        """Find a tender's chunks closest to a query vector.

        Args:
            document_id: Tender to search
            query_vector: Query embedding
            k: Maximum number of results (default from config)

        Returns:
            Up to k StoredChunk objects by ascending cosine distance;
            empty if the tender has no chunks

        Raises:
            InvalidInput: If k < 1
            DimensionMismatch: If the query vector has the wrong length
            StorageError: If the read fails or times out
        """
        if k is None:
            k = config.RETRIEVAL_TOP_K
        if k < 1:
            raise InvalidInput(f"k must be at least 1, got {k}")

        self._check_dimension(query_vector)

        try:
            rows = await asyncio.wait_for(
                asyncio.to_thread(self._load_rows, document_id, True),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("chunk_query_timeout", document_id=document_id, timeout=self.timeout)
            raise StorageError(f"Similarity query timed out after {self.timeout}s") from e

        if not rows:
            logger.info("no_chunks_indexed", document_id=document_id)
            return []

        vectors = np.stack(
            [np.frombuffer(row["embedding"], dtype=np.float32) for row in rows]
        )
        if vectors.shape[1] != self.dimension:
            raise DimensionMismatch(self.dimension, vectors.shape[1])

        query = np.array([query_vector], dtype=np.float32)

        # Cosine similarity is inner product over unit vectors
        faiss.normalize_L2(vectors)
        faiss.normalize_L2(query)

        index = faiss.IndexFlatIP(self.dimension)
        index.add(vectors)

        top_k = min(k, index.ntotal)
        similarities, positions = index.search(query, top_k)

        results = []
        for similarity, position in zip(similarities[0].tolist(), positions[0].tolist()):
            row = rows[position]
            results.append(
                StoredChunk(
                    id=row["id"],
                    document_id=row["document_id"],
                    sub_section_id=row["sub_section_id"],
                    chunk_index=row["chunk_index"],
                    content=row["content"],
                    distance=1.0 - similarity,
                )
            )

        logger.info(
            "vector_search_completed",
            document_id=document_id,
            top_k=top_k,
            candidates=len(rows),
        )

        return results

    def _load_rows(self, document_id: str, with_embeddings: bool) -> List[sqlite3.Row]:
        columns = "id, document_id, sub_section_id, chunk_index, content"
        if with_embeddings:
            columns += ", embedding"

        conn = self._connect()
        try:
            return conn.execute(
                f"SELECT {columns} FROM chunks WHERE document_id = ? ORDER BY chunk_index",
                (document_id,),
            ).fetchall()
        except sqlite3.Error as e:
            logger.error("chunks_retrieval_failed", document_id=document_id, error=str(e))
            raise StorageError(f"Failed to read chunks for {document_id}: {e}") from e
        finally:
            conn.close()

    async def list_chunks(self, document_id: str) -> List[StoredChunk]:
        """List a tender's chunks in chunk order."""
        rows = await asyncio.to_thread(self._load_rows, document_id, False)
        return [
            StoredChunk(
                id=row["id"],
                document_id=row["document_id"],
                sub_section_id=row["sub_section_id"],
                chunk_index=row["chunk_index"],
                content=row["content"],
            )
            for row in rows
        ]

    async def count_chunks(self, document_id: str) -> int:
        """Number of chunks indexed for a tender."""
        return await asyncio.to_thread(self._count_sync, document_id)

    def _count_sync(self, document_id: str) -> int:
        conn = self._connect()
        try:
            return conn.execute(
                "SELECT COUNT(*) FROM chunks WHERE document_id = ?", (document_id,)
            ).fetchone()[0]
        finally:
            conn.close()

    async def latest_run(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Most recent successful index run for a tender, if any."""
        return await asyncio.to_thread(self._latest_run_sync, document_id)

    def _latest_run_sync(self, document_id: str) -> Optional[Dict[str, Any]]:
        conn = self._connect()
        try:
            row = conn.execute(
                """
                SELECT * FROM index_runs
                WHERE document_id = ?
                ORDER BY id DESC
                LIMIT 1
                """,
                (document_id,),
            ).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()
