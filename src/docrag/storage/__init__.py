"""Persistent vector index."""

from docrag.storage.index import VectorIndex, now_millis

__all__ = ["VectorIndex", "now_millis"]
