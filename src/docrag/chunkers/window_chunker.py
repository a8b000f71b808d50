"""Fixed-size sliding window chunking."""

from typing import Iterator

from docrag.errors import InvalidConfig
from docrag.models import Chunk


def check_window(size: int, overlap: int) -> None:
    """Raise InvalidConfig unless 0 <= overlap < size."""
    if size <= 0:
        raise InvalidConfig(f"chunk size must be > 0, got {size}")
    if overlap < 0:
        raise InvalidConfig(f"chunk overlap must be >= 0, got {overlap}")
    if overlap >= size:
        raise InvalidConfig(f"chunk overlap ({overlap}) must be smaller than chunk size ({size})")


def iter_windows(text: str, size: int, overlap: int) -> Iterator[tuple[int, int, str]]:
    """Yield (offset_start, offset_end, text) windows covering [0, len(text)).

    Consecutive windows overlap by ``overlap`` characters and the last one
    may be shorter than ``size``. Text no longer than ``size`` (including
    empty text) yields exactly one window.
    """
    check_window(size, overlap)

    length = len(text)
    step = size - overlap
    start = 0
    while True:
        end = min(start + size, length)
        yield start, end, text[start:end]
        if end >= length:
            return
        start += step


class WindowChunker:
    """Split text into overlapping windows of ``size`` characters.

    For a text of length L > size the number of chunks is
    ceil((L - overlap) / (size - overlap)).
    """

    def __init__(self, size: int = 1000, overlap: int = 200):
        check_window(size, overlap)
        self.size = size
        self.overlap = overlap

    def chunk(self, text: str, document_path: str) -> list[Chunk]:
        """Split text into chunks with their offsets.

        Args:
            text: The document content
            document_path: Corpus-relative path of the document

        Returns:
            List of Chunk objects in offset order
        """
        return [
            Chunk(
                document_path=document_path,
                offset_start=start,
                offset_end=end,
                text=window,
            )
            for start, end, window in iter_windows(text, self.size, self.overlap)
        ]
