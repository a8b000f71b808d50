"""Shared fixtures and provider fakes.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
import threading
from pathlib import Path
from typing import Callable, Optional, Sequence

import numpy as np
import pytest

_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from docrag.config import MemorySettingsStore  # noqa: E402
from docrag.corpus import MemoryCorpus  # noqa: E402
from docrag.engine import RagEngine  # noqa: E402
from docrag.errors import ModelUnavailable, ProviderError  # noqa: E402
from docrag.storage import VectorIndex  # noqa: E402


def letter_vector(text: str) -> np.ndarray:
    """Bag-of-letters embedding: cosine similarity tracks shared letters."""
    vector = np.zeros(26, dtype=np.float32)
    for char in text.lower():
        if "a" <= char <= "z":
            vector[ord(char) - ord("a")] += 1.0
    return vector


class FakeEmbedder:
    """Deterministic embedding provider with failure switches and call counts."""

    model_name = "fake-letters"

    def __init__(self, embed_fn: Callable[[str], np.ndarray] = letter_vector):
        self.embed_fn = embed_fn
        self.available = True
        self.fail = False
        self.fail_texts: set[str] = set()
        self.gate: Optional[threading.Event] = None
        self.calls: list[list[str]] = []
        self.availability_checks = 0

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        self.calls.append(list(texts))
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if not self.available:
            raise ModelUnavailable("fake model offline")
        if self.fail or any(text in self.fail_texts for text in texts):
            raise ProviderError("fake provider error")
        return np.stack([self.embed_fn(text) for text in texts])

    def is_available(self) -> bool:
        self.availability_checks += 1
        return self.available


class FakeReranker:
    """Scores documents by a caller-supplied function."""

    def __init__(self, score_fn: Callable[[str], float], available: bool = True):
        self.score_fn = score_fn
        self.available = available
        self.fail = False
        self.calls = 0

    def rerank(self, query: str, documents: Sequence[str]) -> list[float]:
        self.calls += 1
        if self.fail:
            raise ProviderError("fake rerank error")
        return [self.score_fn(doc) for doc in documents]

    def is_available(self) -> bool:
        return self.available


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def store() -> MemorySettingsStore:
    return MemorySettingsStore()


@pytest.fixture
def index(tmp_path: Path) -> VectorIndex:
    idx = VectorIndex(tmp_path / "index.db")
    idx.initialize()
    return idx


@pytest.fixture
def corpus() -> MemoryCorpus:
    return MemoryCorpus()


@pytest.fixture
def engine(store, index, corpus, embedder):
    """Initialized engine over an in-memory corpus, worker running."""
    eng = RagEngine(store, index, corpus, embedder)
    eng.initialize()
    eng.start()
    yield eng
    eng.close(drain=False)
