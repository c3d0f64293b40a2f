"""SQLite bookkeeping for the local FAISS vector database.

Stores:
- Registered indexes with their dimension and metric
- Vector records (values + metadata) keyed by index name and record id
- The integer id each record occupies in its FAISS index
"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import structlog

logger = structlog.get_logger()

# SQLite caps bound parameters per statement
_MAX_PARAMS = 500


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Get a connection to the SQLite database.

    Returns:
        sqlite3.Connection with row_factory set to sqlite3.Row
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(db_path: Path) -> Iterator[sqlite3.Connection]:
    """Connection that commits when the block exits cleanly and rolls back otherwise."""
    conn = get_connection(db_path)

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def init_database(db_path: Path) -> None:
    """Create tables if they don't exist.

    - indexes: one row per named vector index
    - vectors: records with their FAISS ids
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    cursor = conn.cursor()

    try:
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS indexes (
                name TEXT PRIMARY KEY,
                dimension INTEGER NOT NULL,
                metric TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)

        # The autoincrement id doubles as the FAISS vector id
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS vectors (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                index_name TEXT NOT NULL,
                record_id TEXT NOT NULL,
                values_json TEXT NOT NULL,
                metadata_json TEXT,
                updated_at TEXT NOT NULL,
                UNIQUE(index_name, record_id)
            )
        """)

        conn.commit()
        logger.debug("database_initialized", db_path=str(db_path))

    except Exception as e:
        conn.rollback()
        logger.error("database_init_failed", error=str(e))
        raise
    finally:
        conn.close()


def insert_index(db_path: Path, name: str, dimension: int, metric: str) -> None:
    """Register a new index."""
    conn = get_connection(db_path)

    try:
        conn.execute(
            "INSERT INTO indexes (name, dimension, metric, created_at) VALUES (?, ?, ?, ?)",
            (name, dimension, metric, _now()),
        )
        conn.commit()
        logger.info("index_registered", name=name, dimension=dimension, metric=metric)

    except Exception as e:
        conn.rollback()
        logger.error("index_register_failed", name=name, error=str(e))
        raise
    finally:
        conn.close()


def list_indexes(db_path: Path) -> List[Dict[str, Any]]:
    """Return every registered index."""
    conn = get_connection(db_path)

    try:
        rows = conn.execute("SELECT name, dimension, metric, created_at FROM indexes").fetchall()
        return [dict(row) for row in rows]
    finally:
        conn.close()


def get_index(db_path: Path, name: str) -> Optional[Dict[str, Any]]:
    """Return one registered index, or None."""
    conn = get_connection(db_path)

    try:
        row = conn.execute(
            "SELECT name, dimension, metric, created_at FROM indexes WHERE name = ?",
            (name,),
        ).fetchone()
        return dict(row) if row else None
    finally:
        conn.close()


def upsert_vectors(
    conn: sqlite3.Connection,
    index_name: str,
    records: List[Dict[str, Any]],
) -> List[int]:
    """Insert or overwrite records, keyed by (index_name, record id).

    Runs inside the caller's transaction (see transaction()); nothing is
    committed here, so the caller can write the FAISS index first.

    Args:
        conn: Open connection
        index_name: Target index
        records: Dicts with 'id', 'values' and 'metadata'

    Returns:
        FAISS ids aligned with records. An existing record keeps its id.
    """
    if not records:
        return []

    cursor = conn.cursor()

    try:
        now = _now()
        cursor.executemany("""
            INSERT INTO vectors (index_name, record_id, values_json, metadata_json, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(index_name, record_id) DO UPDATE SET
                values_json = excluded.values_json,
                metadata_json = excluded.metadata_json,
                updated_at = excluded.updated_at
        """, [
            (
                index_name,
                record["id"],
                json.dumps(record["values"]),
                json.dumps(record["metadata"]) if record.get("metadata") else None,
                now,
            )
            for record in records
        ])

        record_ids = [record["id"] for record in records]
        id_map: Dict[str, int] = {}
        for i in range(0, len(record_ids), _MAX_PARAMS):
            batch = record_ids[i : i + _MAX_PARAMS]
            placeholders = ",".join("?" * len(batch))
            cursor.execute(
                f"SELECT id, record_id FROM vectors "
                f"WHERE index_name = ? AND record_id IN ({placeholders})",
                [index_name, *batch],
            )
            id_map.update({row["record_id"]: row["id"] for row in cursor.fetchall()})

        return [id_map[record_id] for record_id in record_ids]

    except Exception as e:
        logger.error("vector_upsert_failed", index_name=index_name, error=str(e))
        raise


def get_vectors_by_ids(
    db_path: Path,
    index_name: str,
    vector_ids: List[int],
) -> Dict[int, Dict[str, Any]]:
    """Fetch records by FAISS id.

    Returns:
        Mapping of FAISS id to a dict with 'record_id', 'values' and 'metadata'
    """
    if not vector_ids:
        return {}

    conn = get_connection(db_path)

    try:
        records: Dict[int, Dict[str, Any]] = {}
        for i in range(0, len(vector_ids), _MAX_PARAMS):
            batch = vector_ids[i : i + _MAX_PARAMS]
            placeholders = ",".join("?" * len(batch))
            rows = conn.execute(
                f"SELECT id, record_id, values_json, metadata_json FROM vectors "
                f"WHERE index_name = ? AND id IN ({placeholders})",
                [index_name, *batch],
            ).fetchall()

            for row in rows:
                records[row["id"]] = {
                    "record_id": row["record_id"],
                    "values": json.loads(row["values_json"]),
                    "metadata": json.loads(row["metadata_json"]) if row["metadata_json"] else {},
                }

        return records

    except Exception as e:
        logger.error("vectors_retrieval_failed", index_name=index_name, error=str(e))
        raise
    finally:
        conn.close()


def count_vectors(db_path: Path, index_name: str) -> int:
    """Number of records stored for an index."""
    conn = get_connection(db_path)

    try:
        row = conn.execute(
            "SELECT COUNT(*) FROM vectors WHERE index_name = ?", (index_name,)
        ).fetchone()
        return row[0]
    finally:
        conn.close()
