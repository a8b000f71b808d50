"""Chunking strategies."""

from docrag.chunkers.window_chunker import WindowChunker, check_window, iter_windows

__all__ = ["WindowChunker", "check_window", "iter_windows"]
