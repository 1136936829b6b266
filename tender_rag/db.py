"""SQLite schema and connection helpers for the content store.

Tables:
- chunks: one row per tender chunk with its float32 embedding blob
- index_runs: one row per successful ingestion of a tender
"""
import sqlite3
from pathlib import Path
import structlog

logger = structlog.get_logger()


def get_connection(db_path: Path, timeout: float = 10.0) -> sqlite3.Connection:
    """Get a connection to the SQLite database.

    Args:
        db_path: Database file path
        timeout: Seconds to wait for a competing writer's lock

    Returns:
        sqlite3.Connection with row_factory set to sqlite3.Row
    """
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    conn.row_factory = sqlite3.Row
    return conn


def init_database(db_path: Path) -> None:
    """Initialize the database schema.

    Creates tables if they don't exist and switches the file to WAL mode so
    readers never block on (or observe) an in-flight replacement.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    cursor = conn.cursor()

    try:
        cursor.execute("PRAGMA journal_mode=WAL")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS chunks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                document_id TEXT NOT NULL,
                sub_section_id TEXT,
                chunk_index INTEGER NOT NULL,
                content TEXT NOT NULL,
                embedding BLOB NOT NULL,
                UNIQUE(document_id, chunk_index)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_chunks_document_id
            ON chunks(document_id)
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS index_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                document_id TEXT NOT NULL,
                indexed_at TEXT NOT NULL,
                embedding_model TEXT,
                embedding_dimension INTEGER NOT NULL,
                min_tokens INTEGER,
                max_tokens INTEGER,
                chunk_count INTEGER NOT NULL
            )
        """)

        conn.commit()
        logger.info("database_initialized", db_path=str(db_path))

    except Exception as e:
        conn.rollback()
        logger.error("database_init_failed", error=str(e))
        raise
    finally:
        conn.close()
