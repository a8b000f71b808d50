"""Protocol for text chunking strategies."""

from typing import Protocol, runtime_checkable

from docrag.models import Chunk


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Protocol for text chunking strategies."""

    def chunk(self, text: str, document_path: str) -> list[Chunk]:
        """Split text into chunks with their offsets."""
        ...
