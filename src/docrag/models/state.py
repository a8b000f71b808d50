"""Engine settings, state and batch results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from docrag.config.keys import (
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    RESULT_COUNT,
    SIMILARITY_THRESHOLD,
)
from docrag.errors import InvalidConfig

if TYPE_CHECKING:
    from docrag.protocols import SettingsStore


@dataclass(frozen=True)
class RagSettings:
    """Chunking and retrieval parameters.

    Changing these affects subsequent indexing and retrieval only; documents
    already indexed keep their chunks until they are reprocessed.
    """

    chunk_size: int = 1000
    chunk_overlap: int = 200
    result_count: int = 5
    similarity_threshold: float = 0.7

    def validate(self) -> "RagSettings":
        """Raise InvalidConfig unless every parameter is in range."""
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int):
            raise InvalidConfig(f"chunk_size must be an integer, got {self.chunk_size!r}")
        if isinstance(self.chunk_overlap, bool) or not isinstance(self.chunk_overlap, int):
            raise InvalidConfig(
                f"chunk_overlap must be an integer, got {self.chunk_overlap!r}"
            )
        if self.chunk_size <= 0:
            raise InvalidConfig(f"chunk_size must be > 0, got {self.chunk_size}")
        if self.chunk_overlap < 0:
            raise InvalidConfig(f"chunk_overlap must be >= 0, got {self.chunk_overlap}")
        if self.chunk_overlap >= self.chunk_size:
            raise InvalidConfig(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        if isinstance(self.result_count, bool) or not isinstance(self.result_count, int):
            raise InvalidConfig(f"result_count must be an integer, got {self.result_count!r}")
        if self.result_count <= 0:
            raise InvalidConfig(f"result_count must be > 0, got {self.result_count}")
        if isinstance(self.similarity_threshold, bool) or not isinstance(
            self.similarity_threshold, (int, float)
        ):
            raise InvalidConfig(
                f"similarity_threshold must be a number, got {self.similarity_threshold!r}"
            )
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise InvalidConfig(
                f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}"
            )
        return self

    @classmethod
    def from_store(cls, store: SettingsStore) -> "RagSettings":
        """Load settings, falling back to defaults for missing keys."""
        defaults = cls()
        return cls(
            chunk_size=store.get(CHUNK_SIZE, defaults.chunk_size),
            chunk_overlap=store.get(CHUNK_OVERLAP, defaults.chunk_overlap),
            result_count=store.get(RESULT_COUNT, defaults.result_count),
            similarity_threshold=store.get(SIMILARITY_THRESHOLD, defaults.similarity_threshold),
        )

    def save(self, store: SettingsStore) -> None:
        store.set(CHUNK_SIZE, self.chunk_size)
        store.set(CHUNK_OVERLAP, self.chunk_overlap)
        store.set(RESULT_COUNT, self.result_count)
        store.set(SIMILARITY_THRESHOLD, self.similarity_threshold)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EngineState:
    """Snapshot of the engine's feature flags and indexing status."""

    vector_db_enabled: bool = False
    rag_enabled: bool = False
    is_processing: bool = False
    last_process_time: Optional[int] = None  # epoch millis
    document_count: int = 0
    has_rerank_model: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ProcessResult:
    """Counters reported by a full reindex."""

    total: int = 0
    success: int = 0
    failed: int = 0
    pruned: list[str] = field(default_factory=list)
    cancelled: bool = False
    error: Optional[str] = None

    @property
    def completed(self) -> bool:
        """True when every document in the corpus was visited."""
        return not self.cancelled and self.error is None
