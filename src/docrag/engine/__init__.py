"""Indexing and retrieval engine."""

from docrag.engine.pipeline import CancellationToken, IndexingPipeline
from docrag.engine.rag_engine import RagEngine
from docrag.engine.retrieval import RetrievalService, build_query, format_context
from docrag.engine.state import EngineStateController
from docrag.engine.worker import IndexingWorker

__all__ = [
    "RagEngine",
    "EngineStateController",
    "IndexingPipeline",
    "IndexingWorker",
    "RetrievalService",
    "CancellationToken",
    "build_query",
    "format_context",
]
