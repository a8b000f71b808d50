"""Feature flags and settings of the engine, with their persistence."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Any, Callable, Optional

from docrag.config.keys import LAST_PROCESS_TIME, RAG_ENABLED, VECTOR_DB_ENABLED
from docrag.errors import InvalidConfig, ModelUnavailable
from docrag.models import EngineState, RagSettings
from docrag.protocols import EmbeddingProvider, RerankProvider, SettingsStore

logger = logging.getLogger(__name__)

EMBEDDING_UNAVAILABLE = (
    "No embedding model is configured or the model is unavailable. "
    "Configure an embedding model first."
)

StateListener = Callable[[EngineState], None]


class EngineStateController:
    """Single owner of EngineState and RagSettings.

    Every mutation goes through this class, which keeps ``rag_enabled``
    implying ``vector_db_enabled`` and writes the change to the settings
    store before returning.
    """

    def __init__(
        self,
        store: SettingsStore,
        embedder: EmbeddingProvider,
        reranker: Optional[RerankProvider] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.reranker = reranker
        self._state = EngineState()
        self._settings = RagSettings()
        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def settings(self) -> RagSettings:
        return self._settings

    def subscribe(self, listener: StateListener) -> None:
        """Call ``listener`` with a snapshot after every state change."""
        self._listeners.append(listener)

    def load(self) -> EngineState:
        """Read persisted state and settings, defaulting what is absent."""
        with self._lock:
            try:
                self._settings = RagSettings.from_store(self.store).validate()
            except (InvalidConfig, TypeError, ValueError) as e:
                logger.warning(f"Ignoring invalid persisted settings ({e}), using defaults")
                self._settings = RagSettings()

            vector_db = bool(self.store.get(VECTOR_DB_ENABLED, False))
            rag = bool(self.store.get(RAG_ENABLED, False)) and vector_db
            last = self.store.get(LAST_PROCESS_TIME)
            if last is not None and (isinstance(last, bool) or not isinstance(last, (int, float))):
                logger.warning(f"Ignoring invalid persisted {LAST_PROCESS_TIME}: {last!r}")
                last = None
            self._update(
                vector_db_enabled=vector_db,
                rag_enabled=rag,
                last_process_time=int(last) if last is not None else None,
            )
            return self._state

    def initialize(self) -> EngineState:
        """Load persisted state and reconcile it with provider availability.

        A vector database persisted as enabled whose model has since gone
        away is switched off, RAG with it. The reranker is probed once.
        """
        self.load()
        if self._state.vector_db_enabled and not self.check_embedding_model():
            logger.warning("Embedding model unavailable, disabling vector database and RAG")
            self.set_vector_db_enabled(False)
        self.check_rerank_model()
        return self._state

    def check_embedding_model(self) -> bool:
        try:
            return bool(self.embedder.is_available())
        except Exception:
            logger.exception("Embedding model check failed")
            return False

    def check_rerank_model(self) -> bool:
        available = False
        if self.reranker is not None:
            try:
                available = bool(self.reranker.is_available())
            except Exception:
                logger.exception("Rerank model check failed")
        with self._lock:
            self._update(has_rerank_model=available)
        return available

    def set_vector_db_enabled(self, enabled: bool) -> EngineState:
        """Enable or disable the vector database.

        Disabling also disables RAG.

        Raises:
            ModelUnavailable: enabling while the embedding model is unavailable;
                the state is left unchanged.
        """
        with self._lock:
            if enabled:
                if not self._state.vector_db_enabled and not self.check_embedding_model():
                    raise ModelUnavailable(EMBEDDING_UNAVAILABLE)
                self.store.set(VECTOR_DB_ENABLED, True)
                self._update(vector_db_enabled=True)
                logger.info("Vector database enabled")
            else:
                self.store.set(VECTOR_DB_ENABLED, False)
                self.store.set(RAG_ENABLED, False)
                self._update(vector_db_enabled=False, rag_enabled=False)
                logger.info("Vector database disabled")
            return self._state

    def set_rag_enabled(self, enabled: bool) -> EngineState:
        """Enable or disable retrieval-augmented generation.

        Enabling turns the vector database on first when needed; if that
        fails both flags keep their previous values.

        Raises:
            ModelUnavailable: the cascading vector database enable failed.
        """
        with self._lock:
            if enabled:
                if not self._state.vector_db_enabled:
                    self.set_vector_db_enabled(True)
                self.store.set(RAG_ENABLED, True)
                self._update(rag_enabled=True)
                logger.info("RAG enabled")
            else:
                self.store.set(RAG_ENABLED, False)
                self._update(rag_enabled=False)
                logger.info("RAG disabled")
            return self._state

    def update_settings(self, **changes: Any) -> RagSettings:
        """Apply and persist new settings.

        Raises:
            InvalidConfig: the merged settings are invalid; nothing is persisted.
        """
        with self._lock:
            try:
                settings = replace(self._settings, **changes)
            except TypeError as e:
                raise InvalidConfig(f"Unknown setting in {sorted(changes)}: {e}") from e
            settings = settings.validate()
            settings.save(self.store)
            self._settings = settings
            logger.info(f"Settings updated: {changes}")
            return settings

    def begin_processing(self) -> bool:
        """Set ``is_processing`` unless a reindex is already running.

        Returns:
            False if another reindex holds the flag.
        """
        with self._lock:
            if self._state.is_processing:
                return False
            self._update(is_processing=True)
            return True

    def finish_processing(self, process_time: int, document_count: int) -> None:
        with self._lock:
            self.store.set(LAST_PROCESS_TIME, process_time)
            self._update(
                is_processing=False,
                last_process_time=process_time,
                document_count=document_count,
            )

    def set_document_count(self, document_count: int) -> None:
        with self._lock:
            self._update(document_count=document_count)

    def _update(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        snapshot = self._state
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("State listener failed")
