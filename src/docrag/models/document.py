"""Core data models for documents, chunks and index entries."""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class Document:
    """A document read from the corpus."""

    path: str  # corpus-relative, forward slashes
    content: str
    modified_at: Optional[float] = None


@dataclass(frozen=True)
class Chunk:
    """A window of a document's text."""

    document_path: str
    offset_start: int
    offset_end: int
    text: str

    @property
    def chunk_id(self) -> str:
        return f"{self.document_path}#{self.offset_start}"


@dataclass
class IndexEntry:
    """A chunk together with its embedding, as stored in the vector index."""

    document_path: str
    offset_start: int
    offset_end: int
    text: str
    vector: np.ndarray
    updated_at: int  # epoch millis

    @property
    def chunk_id(self) -> str:
        return f"{self.document_path}#{self.offset_start}"

    @classmethod
    def from_chunk(cls, chunk: Chunk, vector: np.ndarray, updated_at: int) -> "IndexEntry":
        return cls(
            document_path=chunk.document_path,
            offset_start=chunk.offset_start,
            offset_end=chunk.offset_end,
            text=chunk.text,
            vector=vector,
            updated_at=updated_at,
        )


@dataclass(frozen=True)
class SearchHit:
    """An index entry returned by a similarity search."""

    entry: IndexEntry
    score: float


@dataclass(frozen=True)
class Keyword:
    """A query term with its relative weight, as produced by keyword extraction."""

    text: str
    weight: float = 1.0
