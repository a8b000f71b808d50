"""Data models for docrag."""

from docrag.models.document import Chunk, Document, IndexEntry, Keyword, SearchHit
from docrag.models.state import EngineState, ProcessResult, RagSettings

__all__ = [
    "Document",
    "Chunk",
    "IndexEntry",
    "SearchHit",
    "Keyword",
    "RagSettings",
    "EngineState",
    "ProcessResult",
]
