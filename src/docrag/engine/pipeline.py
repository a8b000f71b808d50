"""Chunk, embed and store documents."""

import logging
import threading
from typing import Callable, Optional

import numpy as np

from docrag.chunkers import WindowChunker
from docrag.engine.state import EMBEDDING_UNAVAILABLE, EngineStateController
from docrag.errors import IndexCorruption, ModelUnavailable, ProviderError
from docrag.models import IndexEntry, ProcessResult
from docrag.protocols import Corpus, EmbeddingProvider
from docrag.storage import VectorIndex, now_millis

logger = logging.getLogger(__name__)

EMBEDDING_MODEL_KEY = "embedding_model"


class CancellationToken:
    """Cooperative cancellation for a full reindex, checked between documents."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class IndexingPipeline:
    """Orchestrates chunker -> embedding provider -> vector index."""

    def __init__(
        self,
        controller: EngineStateController,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        corpus: Corpus,
        clock: Callable[[], int] = now_millis,
    ):
        self.controller = controller
        self.index = index
        self.embedder = embedder
        self.corpus = corpus
        self.clock = clock

    def process_document(
        self, path: str, content: str, updated_at: Optional[int] = None
    ) -> bool:
        """Reindex one document after it was saved.

        Does nothing while the vector database is disabled. On failure the
        document's previous entries are left untouched.

        Args:
            path: Document path relative to the corpus root
            content: Document text as saved
            updated_at: Version stamp of ``content`` in epoch millis; defaults
                to now. A stored version newer than this one is kept.

        Returns:
            True if the document's entries were replaced.
        """
        if not self.controller.state.vector_db_enabled:
            return False
        if updated_at is None:
            updated_at = self.clock()
        ok = self._index_document(path, content, updated_at)
        if ok:
            self.controller.set_document_count(self.index.count())
        return ok

    def process_all_documents(
        self, cancel: Optional[CancellationToken] = None
    ) -> Optional[ProcessResult]:
        """Reindex the whole corpus.

        At most one reindex runs at a time: a call made while one is running
        returns None without doing anything. Documents that are no longer in
        the corpus are pruned from the index after a complete pass.

        Args:
            cancel: Optional token checked between documents

        Returns:
            Success/failure counters, or None if a reindex was already running

        Raises:
            ModelUnavailable: the embedding model failed its health check
        """
        if self.controller.state.is_processing:
            logger.info("Reindex already running, ignoring request")
            return None

        if not self.controller.check_embedding_model():
            raise ModelUnavailable(EMBEDDING_UNAVAILABLE)

        if not self.controller.begin_processing():
            logger.info("Reindex already running, ignoring request")
            return None

        logger.info("Processing all documents...")
        result = ProcessResult()
        seen: set[str] = set()
        try:
            model = self.embedder.model_name
            previous = self.index.get_metadata(EMBEDDING_MODEL_KEY)
            if previous is not None and previous != model:
                # Vectors of different models are not comparable
                logger.info(f"Embedding model changed from {previous} to {model}, rebuilding index")
                self.index.clear()
            self.index.set_metadata(EMBEDDING_MODEL_KEY, model)
            # Contents are read after this instant, so a save stamped later wins
            read_at = self.clock()
            try:
                for doc in self.corpus.read_all_documents():
                    if cancel is not None and cancel.cancelled:
                        result.cancelled = True
                        logger.info("Reindex cancelled")
                        break

                    result.total += 1
                    seen.add(doc.path)
                    try:
                        ok = self._index_document(doc.path, doc.content, read_at)
                    except Exception:
                        logger.exception(f"Processing {doc.path} failed")
                        ok = False

                    if ok:
                        result.success += 1
                    else:
                        result.failed += 1
            except Exception as e:
                logger.exception("Reading the corpus failed")
                result.error = str(e)

            if result.completed:
                result.pruned = self.index.prune(seen)
                for path in result.pruned:
                    logger.info(f"  pruned {path}")
        finally:
            self.controller.finish_processing(self.clock(), self.index.count())

        logger.info(
            f"Processed {result.success} documents, {result.failed} failed "
            f"({len(result.pruned)} pruned)"
        )
        return result

    def _index_document(self, path: str, content: str, updated_at: int) -> bool:
        settings = self.controller.settings
        chunker = WindowChunker(settings.chunk_size, settings.chunk_overlap)
        chunks = chunker.chunk(content, path)

        try:
            vectors = np.asarray(self.embedder.embed([c.text for c in chunks]))
        except (ModelUnavailable, ProviderError) as e:
            logger.error(f"Cannot embed {path}: {e}")
            return False

        if len(vectors) != len(chunks):
            logger.error(f"Cannot embed {path}: got {len(vectors)} vectors for {len(chunks)} chunks")
            return False

        entries = [
            IndexEntry.from_chunk(chunk, vector, updated_at)
            for chunk, vector in zip(chunks, vectors)
        ]
        try:
            stored = self.index.upsert_document(path, entries, updated_at=updated_at)
        except IndexCorruption as e:
            logger.error(f"Index corruption for {path}, dropping its entries: {e.reason}")
            self.index.delete_document(path)
            return False

        if not stored:
            logger.debug(f"A newer version of {path} is already indexed")
        logger.debug(f"  {path}: {len(entries)} chunks")
        return True
