"""Query-time retrieval of context for the chat pipeline."""

import logging
from typing import Optional, Sequence, Union

import numpy as np

from docrag.engine.state import EngineStateController
from docrag.errors import ModelUnavailable, ProviderError
from docrag.models import Keyword, SearchHit
from docrag.protocols import EmbeddingProvider, RerankProvider
from docrag.storage import VectorIndex

logger = logging.getLogger(__name__)

QueryTerm = Union[str, Keyword]

CONTEXT_SEPARATOR = "\n---\n\n"


def build_query(terms: Sequence[QueryTerm]) -> str:
    """Join query terms into one query text, heaviest keywords first."""
    keywords = [t if isinstance(t, Keyword) else Keyword(text=t) for t in terms]
    # sorted() is stable: equally weighted terms keep their order
    keywords = sorted(keywords, key=lambda k: k.weight, reverse=True)
    return " ".join(k.text.strip() for k in keywords if k.text.strip())


def format_context(hits: Sequence[SearchHit]) -> str:
    return CONTEXT_SEPARATOR.join(
        f"File: {hit.entry.document_path}\n{hit.entry.text}\n" for hit in hits
    )


class RetrievalService:
    """Embeds a query, searches the index and assembles a context string.

    Retrieval is best-effort: provider failures degrade to an empty context
    and are never raised to the caller.
    """

    def __init__(
        self,
        controller: EngineStateController,
        index: VectorIndex,
        embedder: EmbeddingProvider,
        reranker: Optional[RerankProvider] = None,
    ):
        self.controller = controller
        self.index = index
        self.embedder = embedder
        self.reranker = reranker

    def retrieve(self, query_terms: Sequence[QueryTerm]) -> str:
        """Return the context string for ``query_terms``.

        An empty string means "no context": RAG is disabled, nothing matched
        above the similarity threshold, or a provider failed.
        """
        if not self.controller.state.rag_enabled:
            return ""
        return format_context(self.search(query_terms))

    def search(
        self, query_terms: Sequence[QueryTerm], limit: Optional[int] = None
    ) -> list[SearchHit]:
        """Ranked hits for ``query_terms``, after thresholding and reranking.

        Args:
            query_terms: Plain strings or weighted keywords
            limit: Number of nearest entries to consider; defaults to the
                ``result_count`` setting

        Never raises: a failure while embedding the query or searching the
        index yields no hits, and a failing reranker keeps similarity order.
        """
        if not self.controller.state.rag_enabled:
            return []

        query = build_query(query_terms)
        if not query:
            return []

        query_vector = self._embed_query(query)
        if query_vector is None:
            return []

        settings = self.controller.settings
        top_k = settings.result_count if limit is None else limit
        try:
            candidates = self.index.search(query_vector, top_k)
        except Exception as e:
            logger.warning(f"Index search failed, retrieving no context: {e}", exc_info=True)
            return []

        hits = [hit for hit in candidates if hit.score >= settings.similarity_threshold]
        if not hits:
            return []

        if self.reranker is not None and self.controller.state.has_rerank_model:
            hits = self._rerank(query, hits)

        return self._dedupe(hits)

    def _embed_query(self, query: str) -> Optional[np.ndarray]:
        """Embed the query, collapsing provider failures to None."""
        try:
            vectors = np.asarray(self.embedder.embed([query]), dtype=np.float32)
        except (ModelUnavailable, ProviderError) as e:
            logger.debug(f"Query embedding failed, retrieving no context: {e}")
            return None
        except Exception as e:
            logger.warning(f"Query embedding failed, retrieving no context: {e}", exc_info=True)
            return None
        if vectors.ndim != 2 or len(vectors) != 1:
            logger.debug(f"Query embedding has shape {vectors.shape}, retrieving no context")
            return None
        return vectors[0]

    def _rerank(self, query: str, hits: list[SearchHit]) -> list[SearchHit]:
        """Reorder by reranker score; keep similarity order if the reranker fails."""
        try:
            scores = [float(s) for s in self.reranker.rerank(query, [hit.entry.text for hit in hits])]
        except (ModelUnavailable, ProviderError) as e:
            logger.warning(f"Reranking failed, keeping similarity order: {e}")
            return hits
        except Exception as e:
            logger.warning(f"Reranking failed, keeping similarity order: {e}", exc_info=True)
            return hits
        if len(scores) != len(hits):
            logger.warning("Reranker returned a score count mismatch, keeping similarity order")
            return hits

        ranked = sorted(zip(scores, range(len(hits))), key=lambda pair: (-pair[0], pair[1]))
        return [SearchHit(entry=hits[i].entry, score=float(score)) for score, i in ranked]

    @staticmethod
    def _dedupe(hits: list[SearchHit]) -> list[SearchHit]:
        # Windows of a repetitive document can open with the same passage
        seen = set()
        unique = []
        for hit in hits:
            key = (hit.entry.document_path, hit.entry.text[:100])
            if key not in seen:
                seen.add(key)
                unique.append(hit)
        return unique
