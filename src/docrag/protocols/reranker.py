"""Protocol for reranking model providers."""

from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class RerankProvider(Protocol):
    """Scores candidate passages against a query with a relevance model."""

    def rerank(self, query: str, documents: Sequence[str]) -> list[float]:
        """Return one relevance score per document, in input order."""
        ...

    def is_available(self) -> bool:
        """Health check; absence of a reranker is never an error."""
        ...
