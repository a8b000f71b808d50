"""Tests for chunkers/window_chunker.py."""

from __future__ import annotations

import math

import pytest

from docrag.chunkers import WindowChunker, iter_windows
from docrag.errors import InvalidConfig


def expected_count(length: int, size: int, overlap: int) -> int:
    if length <= size:
        return 1
    return math.ceil((length - overlap) / (size - overlap))


class TestIterWindows:
    """Tests for iter_windows."""

    @pytest.mark.parametrize(
        ("length", "size", "overlap"),
        [
            (1800, 1000, 200),
            (1000, 1000, 200),
            (1001, 1000, 200),
            (2600, 1000, 200),
            (37, 5, 0),
            (37, 5, 4),
            (10, 3, 1),
        ],
    )
    def test_windows_cover_text_without_gaps(self, length: int, size: int, overlap: int) -> None:
        """Offsets increase, cover [0, L) and the count matches the formula."""
        text = "".join(chr(ord("a") + i % 26) for i in range(length))
        windows = list(iter_windows(text, size, overlap))

        assert len(windows) == expected_count(length, size, overlap)
        assert windows[0][0] == 0
        assert windows[-1][1] == length
        for (start, end, chunk), (next_start, next_end, _) in zip(windows, windows[1:]):
            assert next_start > start
            assert next_start <= end  # no gap
            assert end - next_start == overlap
            assert end - start == size
        for start, end, chunk in windows:
            assert chunk == text[start:end]

    def test_short_text_gives_one_chunk(self) -> None:
        """Text shorter than the window is a single chunk."""
        assert list(iter_windows("hello", 1000, 200)) == [(0, 5, "hello")]

    def test_empty_text_gives_one_empty_chunk(self) -> None:
        """Empty text yields exactly one empty chunk."""
        assert list(iter_windows("", 1000, 200)) == [(0, 0, "")]

    def test_is_lazy_and_restartable(self) -> None:
        """Each call produces a fresh generator over the same windows."""
        first = iter_windows("abcdefghij", 4, 1)
        assert next(first) == (0, 4, "abcd")
        assert list(iter_windows("abcdefghij", 4, 1)) == [
            (0, 4, "abcd"),
            (3, 7, "defg"),
            (6, 10, "ghij"),
        ]

    @pytest.mark.parametrize(
        ("size", "overlap"),
        [(0, 0), (-5, 0), (10, -1), (10, 10), (10, 11)],
    )
    def test_rejects_invalid_parameters(self, size: int, overlap: int) -> None:
        """Invalid size/overlap raise InvalidConfig."""
        with pytest.raises(InvalidConfig):
            list(iter_windows("some text", size, overlap))


class TestWindowChunker:
    """Tests for WindowChunker."""

    def test_chunks_carry_document_path_and_offsets(self) -> None:
        chunker = WindowChunker(size=1000, overlap=200)
        chunks = chunker.chunk("x" * 1800, "notes/a.md")

        assert [(c.offset_start, c.offset_end) for c in chunks] == [(0, 1000), (800, 1800)]
        assert all(c.document_path == "notes/a.md" for c in chunks)
        assert chunks[1].chunk_id == "notes/a.md#800"

    def test_rejects_overlap_not_smaller_than_size(self) -> None:
        with pytest.raises(InvalidConfig):
            WindowChunker(size=100, overlap=100)
