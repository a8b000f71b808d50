"""Protocol definitions for extensible components."""

from docrag.protocols.chunker import ChunkingStrategy
from docrag.protocols.corpus import Corpus
from docrag.protocols.embedder import EmbeddingProvider
from docrag.protocols.reranker import RerankProvider
from docrag.protocols.settings import SettingsStore

__all__ = ["Corpus", "EmbeddingProvider", "RerankProvider", "ChunkingStrategy", "SettingsStore"]
