"""Engine facade wiring settings, index, pipeline and retrieval together."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Optional, Sequence

from docrag.config import JsonSettingsStore
from docrag.corpus import FolderCorpus
from docrag.engine.pipeline import CancellationToken, IndexingPipeline
from docrag.engine.retrieval import QueryTerm, RetrievalService
from docrag.engine.state import EngineStateController
from docrag.engine.worker import IndexingWorker
from docrag.models import EngineState, ProcessResult, RagSettings, SearchHit
from docrag.protocols import Corpus, EmbeddingProvider, RerankProvider, SettingsStore
from docrag.storage import VectorIndex

logger = logging.getLogger(__name__)

DATA_DIR = ".docrag"
INDEX_FILE = "index.db"
SETTINGS_FILE = "store.json"


class RagEngine:
    """One engine per corpus: the object a host application holds on to."""

    def __init__(
        self,
        store: SettingsStore,
        index: VectorIndex,
        corpus: Corpus,
        embedder: EmbeddingProvider,
        reranker: Optional[RerankProvider] = None,
        queue_size: int = 256,
    ):
        self.index = index
        self.corpus = corpus
        self.controller = EngineStateController(store, embedder, reranker)
        self.pipeline = IndexingPipeline(self.controller, index, embedder, corpus)
        self.retrieval = RetrievalService(self.controller, index, embedder, reranker)
        self.worker = IndexingWorker(self.pipeline, maxsize=queue_size)

    @classmethod
    def open(
        cls,
        root: Path | str,
        embedder: EmbeddingProvider,
        reranker: Optional[RerankProvider] = None,
    ) -> "RagEngine":
        """Build an engine over a notes folder, keeping its data in ``<root>/.docrag``."""
        root = Path(root)
        data_dir = root / DATA_DIR
        store = JsonSettingsStore(data_dir / SETTINGS_FILE)
        index = VectorIndex(data_dir / INDEX_FILE)
        return cls(store, index, FolderCorpus(root), embedder, reranker)

    @property
    def state(self) -> EngineState:
        return self.controller.state

    @property
    def settings(self) -> RagSettings:
        return self.controller.settings

    def initialize(self) -> EngineState:
        """Create the index and load persisted state; call once at startup."""
        self.index.initialize()
        state = self.controller.initialize()
        self.controller.set_document_count(self.index.count())
        return state

    def start(self) -> None:
        self.worker.start()

    def close(self, drain: bool = True) -> None:
        self.worker.stop(drain=drain)

    def __enter__(self) -> "RagEngine":
        self.initialize()
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Feature toggles

    def set_vector_db_enabled(self, enabled: bool) -> EngineState:
        return self.controller.set_vector_db_enabled(enabled)

    def set_rag_enabled(self, enabled: bool) -> EngineState:
        return self.controller.set_rag_enabled(enabled)

    def update_settings(self, **changes) -> RagSettings:
        return self.controller.update_settings(**changes)

    # Indexing

    def process_document(
        self, path: str, content: str, updated_at: Optional[int] = None
    ) -> bool:
        """Index one document on the calling thread."""
        return self.pipeline.process_document(path, content, updated_at)

    def process_all_documents(
        self, cancel: Optional[CancellationToken] = None
    ) -> Optional[ProcessResult]:
        """Reindex the whole corpus on the calling thread."""
        return self.pipeline.process_all_documents(cancel)

    def start_reindex(
        self,
        cancel: Optional[CancellationToken] = None,
        on_complete: Optional[Callable[[Optional[ProcessResult]], None]] = None,
    ) -> Future:
        """Reindex the whole corpus in the background."""
        return self.worker.submit_reindex(cancel, on_complete)

    def handle_file_update(self, path: str, content: str) -> bool:
        """Queue a saved document for indexing; non-markdown files are ignored."""
        if not path.lower().endswith(".md"):
            return False
        if not self.state.vector_db_enabled:
            return False
        return self.worker.submit(path, content)

    def remove_document(self, path: str) -> None:
        """Drop a deleted document from the index."""
        self.index.delete_document(path)
        self.controller.set_document_count(self.index.count())

    # Retrieval

    def retrieve(self, query_terms: Sequence[QueryTerm]) -> str:
        return self.retrieval.retrieve(query_terms)

    def search(
        self, query_terms: Sequence[QueryTerm], limit: Optional[int] = None
    ) -> list[SearchHit]:
        return self.retrieval.search(query_terms, limit)
