"""SQLite-backed vector index."""

import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

import numpy as np

from docrag.errors import IndexCorruption
from docrag.models import IndexEntry, SearchHit
from docrag.storage.schema import SCHEMA

logger = logging.getLogger(__name__)

DIMENSION_KEY = "dimension"


def now_millis() -> int:
    return int(time.time() * 1000)


class VectorIndex:
    """Chunk embeddings keyed by (document path, offset).

    Every document is replaced as a unit: ``upsert_document`` deletes the
    previous entries and inserts the new ones in one transaction, so readers
    see either the old version or the new one, never a mix.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        # Serialises writers within this process; sqlite handles readers.
        self._write_lock = threading.Lock()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create schema if not exists."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)

    def upsert_document(
        self,
        path: str,
        entries: Sequence[IndexEntry],
        updated_at: Optional[int] = None,
    ) -> bool:
        """Replace every entry of ``path`` with ``entries``.

        Concurrent upserts of the same document resolve last-write-wins on
        ``updated_at``: a version older than the stored one is discarded.

        The first non-empty upsert fixes the index's vector dimension; it
        can change only once no other document holds entries.

        Returns:
            True if the new version was stored, False if it was stale.

        Raises:
            IndexCorruption: an entry belongs to another document, or the
                entries disagree with each other or with the index on
                vector dimension.
        """
        if updated_at is None:
            updated_at = max((e.updated_at for e in entries), default=now_millis())

        dims = set()
        for entry in entries:
            if entry.document_path != path:
                raise IndexCorruption(
                    path, f"entry {entry.chunk_id} belongs to another document"
                )
            dims.add(int(np.asarray(entry.vector).size))
        if len(dims) > 1:
            raise IndexCorruption(path, f"mixed vector dimensions {sorted(dims)}")
        dimension = dims.pop() if dims else None

        with self._write_lock, self.connection() as conn:
            row = conn.execute(
                "SELECT updated_at FROM documents WHERE path = ?", (path,)
            ).fetchone()
            if row is not None and row["updated_at"] > updated_at:
                logger.debug(f"Discarding stale upsert of {path}")
                return False

            if dimension is not None:
                recorded = self._recorded_dimension(conn)
                if recorded != dimension:
                    others = conn.execute(
                        "SELECT 1 FROM entries WHERE document_path != ? LIMIT 1", (path,)
                    ).fetchone()
                    if recorded is not None and others is not None:
                        raise IndexCorruption(
                            path,
                            f"vector dimension {dimension} does not match index dimension {recorded}",
                        )
                    conn.execute(
                        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                        (DIMENSION_KEY, str(dimension)),
                    )

            conn.execute("DELETE FROM entries WHERE document_path = ?", (path,))
            conn.execute(
                "INSERT OR REPLACE INTO documents (path, updated_at, chunk_count) VALUES (?, ?, ?)",
                (path, updated_at, len(entries)),
            )
            conn.executemany(
                """INSERT INTO entries
                   (document_path, offset_start, offset_end, text, embedding, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [
                    (
                        path,
                        entry.offset_start,
                        entry.offset_end,
                        entry.text,
                        np.asarray(entry.vector, dtype=np.float32).tobytes(),
                        entry.updated_at,
                    )
                    for entry in entries
                ],
            )
        return True

    def delete_document(self, path: str) -> None:
        """Remove all entries for a document."""
        with self._write_lock, self.connection() as conn:
            conn.execute("DELETE FROM entries WHERE document_path = ?", (path,))
            conn.execute("DELETE FROM documents WHERE path = ?", (path,))

    def prune(self, keep_paths: Iterable[str]) -> list[str]:
        """Delete every document not in ``keep_paths`` and return the removed paths."""
        keep = set(keep_paths)
        removed = [path for path in self.document_paths() if path not in keep]
        for path in removed:
            self.delete_document(path)
        return removed

    def clear(self) -> None:
        with self._write_lock, self.connection() as conn:
            conn.execute("DELETE FROM entries")
            conn.execute("DELETE FROM documents")
            conn.execute("DELETE FROM metadata WHERE key = ?", (DIMENSION_KEY,))

    def dimension(self) -> Optional[int]:
        """Vector dimension of the stored entries, None before the first one."""
        with self.connection() as conn:
            return self._recorded_dimension(conn)

    def count(self) -> int:
        """Number of distinct documents indexed."""
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]

    def document_paths(self) -> list[str]:
        with self.connection() as conn:
            cursor = conn.execute("SELECT path FROM documents ORDER BY path")
            return [row["path"] for row in cursor]

    def get_entries(self, path: str) -> list[IndexEntry]:
        """Entries of one document in offset order."""
        with self.connection() as conn:
            cursor = conn.execute(
                """SELECT document_path, offset_start, offset_end, text, embedding, updated_at
                   FROM entries WHERE document_path = ? ORDER BY offset_start""",
                (path,),
            )
            return [self._row_to_entry(row) for row in cursor]

    def search(self, query_vector: np.ndarray, top_k: int) -> list[SearchHit]:
        """Find the entries most similar to ``query_vector``.

        Ordered by cosine similarity descending; ties go to the most recently
        updated entry, then to the lexicographically smaller path.

        A query whose dimension differs from the index's matches nothing.
        Documents with undecodable vectors, or vectors of another dimension
        than the index's, are corrupt: they are dropped from the index so the
        next save or reindex rebuilds them, unless a newer version was
        stored meanwhile.
        """
        if top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float32).ravel()
        with self.connection() as conn:
            dimension = self._recorded_dimension(conn)
            rows = conn.execute(
                """SELECT e.document_path AS document_path, e.offset_start AS offset_start,
                          e.offset_end AS offset_end, e.text AS text, e.embedding AS embedding,
                          e.updated_at AS updated_at, d.updated_at AS version
                   FROM entries e JOIN documents d ON d.path = e.document_path"""
            ).fetchall()

        if dimension is not None and query.size != dimension:
            logger.warning(
                f"Query vector dimension {query.size} does not match index dimension {dimension}"
            )
            return []

        hits = []
        corrupt: dict[str, tuple[str, int]] = {}
        for row in rows:
            path = row["document_path"]
            if path in corrupt:
                continue
            try:
                entry = self._row_to_entry(row)
            except IndexCorruption as e:
                corrupt[path] = (e.reason, row["version"])
                continue
            if entry.vector.size != query.size:
                if dimension is not None:
                    corrupt[path] = (
                        f"vector dimension {entry.vector.size} does not match "
                        f"index dimension {dimension}",
                        row["version"],
                    )
                continue
            hits.append(SearchHit(entry=entry, score=self._cosine_similarity(query, entry.vector)))

        for path, (reason, version) in corrupt.items():
            if self._drop_corrupt(path, version):
                logger.warning(f"Dropped corrupt index entries of {path}: {reason}")
            else:
                logger.debug(f"Corrupt entries of {path} were replaced meanwhile, keeping them")
        if corrupt:
            hits = [hit for hit in hits if hit.entry.document_path not in corrupt]

        hits.sort(
            key=lambda hit: (
                -hit.score,
                -hit.entry.updated_at,
                hit.entry.document_path,
                hit.entry.offset_start,
            )
        )
        return hits[:top_k]

    def set_metadata(self, key: str, value: str) -> None:
        """Store a metadata key-value pair."""
        with self._write_lock, self.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_metadata(self, key: str) -> Optional[str]:
        """Retrieve a metadata value by key."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT value FROM metadata WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def _drop_corrupt(self, path: str, version: int) -> bool:
        """Delete ``path`` only if its stored version is still ``version``."""
        with self._write_lock, self.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE path = ? AND updated_at = ?", (path, version)
            )
            if cursor.rowcount == 0:
                return False
            conn.execute("DELETE FROM entries WHERE document_path = ?", (path,))
        return True

    @staticmethod
    def _recorded_dimension(conn: sqlite3.Connection) -> Optional[int]:
        row = conn.execute(
            "SELECT value FROM metadata WHERE key = ?", (DIMENSION_KEY,)
        ).fetchone()
        return int(row["value"]) if row else None

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> IndexEntry:
        blob = row["embedding"]
        if len(blob) % 4:
            raise IndexCorruption(row["document_path"], "embedding blob is not float32")
        return IndexEntry(
            document_path=row["document_path"],
            offset_start=row["offset_start"],
            offset_end=row["offset_end"],
            text=row["text"],
            vector=np.frombuffer(blob, dtype=np.float32),
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
        """Compute cosine similarity between two vectors."""
        norm_a = np.linalg.norm(a)
        norm_b = np.linalg.norm(b)
        if norm_a == 0 or norm_b == 0:
            return 0.0
        return float(np.dot(a, b) / (norm_a * norm_b))
